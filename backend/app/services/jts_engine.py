"""
Jobtolk Score (JTS) Engine

Combines the four score components into one 0-100 score per user, or per
user-job pair, and manages the cached score snapshots.

Formula:
    JTS = skill_match * w1 + engagement * w2 + credibility * w3 + recency * w4

    Default weights: 0.35 / 0.25 / 0.25 / 0.15 (read through the weights
    provider, falling back to these on any lookup failure)

Job matching adds two signals that are reported alongside, not inside, the
JTS total: a proximity score (haversine distance tiers) and the raw
profile/job embedding similarity.

Caching:
    - General snapshots (user_jts_scores): 24hr TTL
    - Job-specific snapshots (job_match_jts): 24hr TTL
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from app.config import Settings, get_settings
from app.repositories import ScoreRepository, SourceRepository
from app.schemas import (
    BatchResult,
    EngagementTotals,
    Job,
    JobMatchResult,
    JTSComponents,
    Profile,
    ScoreSnapshot,
    SkillMatchBreakdown,
)
from app.schemas.base import utc_now
from app.services.errors import DependencyUnavailable, NotFound, PersistenceFailure
from app.services.geo import NEUTRAL_LOCATION_SCORE, proximity_score
from app.services.ranking_explainer import (
    RankingExplainer,
    analyze_job_match_factors,
    render_job_match_explanation,
)
from app.services.score_components import ComponentScorer
from app.services.vector_math import clamp

logger = logging.getLogger(__name__)


def job_location_score(profile: Optional[Profile], job: Job) -> float:
    """Proximity of a candidate to a job; remote jobs and missing coordinates score a neutral 50."""
    if job.is_remote or profile is None:
        return NEUTRAL_LOCATION_SCORE
    score, _ = proximity_score(profile.latitude, profile.longitude, job.latitude, job.longitude)
    return score


class JTSEngine:
    """
    Calculates, stores and ranks Jobtolk Scores.

    Attributes:
        sources: Profiles, jobs and content
        scores: Score snapshot storage
        scorer: Component calculator
        weights: Weight provider (WeightConfigProvider or StaticWeightProvider)
        embedding_store: Optional EmbeddingStore for match similarity
        explainer: Optional RankingExplainer for audit logging
    """

    def __init__(
        self,
        sources: SourceRepository,
        scores: ScoreRepository,
        scorer: ComponentScorer,
        weights,
        embedding_store=None,
        explainer: Optional[RankingExplainer] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sources = sources
        self.scores = scores
        self.scorer = scorer
        self.weights = weights
        self.embedding_store = embedding_store
        self.explainer = explainer
        self.settings = settings or get_settings()
        self.clock = clock

    # ==================== Calculation ====================

    async def _neutral_skill_match(self) -> SkillMatchBreakdown:
        neutral = self.settings.skill_default_score
        return SkillMatchBreakdown(keyword_score=neutral, score=neutral)

    async def _calculate(
        self,
        user_id: str,
        job: Optional[Job] = None,
        required_skills: Optional[Sequence[str]] = None,
        profile: Optional[Profile] = None,
    ) -> JTSComponents:
        weights = await self.weights.get_jts_weights()
        profile = profile or await self.scorer.load_profile(user_id)

        if required_skills is None and job is not None:
            required_skills = job.required_skills

        if required_skills is None:
            skill_task = self._neutral_skill_match()
        else:
            skill_task = self.scorer.skill_match(
                user_id,
                required_skills,
                job_id=job.id if job else None,
                job_category=job.category if job else None,
                profile=profile,
            )

        skill, (engagement, totals), credibility, recency = await asyncio.gather(
            skill_task,
            self.scorer.engagement(user_id),
            self.scorer.credibility(user_id, profile=profile),
            self.scorer.recency(user_id),
        )

        total = (
            skill.score * weights.skill_match
            + engagement * weights.engagement
            + credibility * weights.credibility
            + recency * weights.recency
        )
        return JTSComponents(
            skill_match=skill.score,
            engagement=engagement,
            credibility=credibility,
            recency=recency,
            total=clamp(total),
            weights=weights,
            skill_breakdown=skill,
            engagement_totals=totals,
        )

    async def _require_job(self, job_id: str) -> Job:
        job = await self.sources.get_job(job_id)
        if job is None:
            raise NotFound("job", job_id)
        return job

    async def _require_profile(self, user_id: str) -> Optional[Profile]:
        """
        Load the subject's profile, raising NotFound when it does not exist.

        A failed lookup is logged and returns None, leaving the components
        on their neutral defaults.
        """
        try:
            profile = await self.sources.get_profile(user_id)
        except DependencyUnavailable as e:
            logger.warning(f"Profile lookup failed for {user_id}: {e}")
            return None
        if profile is None:
            raise NotFound("profile", user_id)
        return profile

    async def calculate_jts(
        self,
        user_id: str,
        job_id: Optional[str] = None,
        required_skills: Optional[Sequence[str]] = None,
    ) -> JTSComponents:
        """
        Calculate a user's JTS, optionally against a job.

        Without a job or required skills the skill match is a neutral 50.
        When a job is given without required skills, the job's own required
        skills are used.

        Raises:
            NotFound: If the user does not exist, or if job_id is given,
                required_skills is not, and the job does not exist
        """
        profile = await self._require_profile(user_id)
        job = None
        if job_id and required_skills is None:
            job = await self._require_job(job_id)
        elif job_id:
            job = Job(id=job_id, required_skills=list(required_skills))
        return await self._calculate(user_id, job=job, required_skills=required_skills, profile=profile)

    # ==================== General Snapshots ====================

    async def _content_totals(self, user_id: str) -> EngagementTotals:
        try:
            return await self.sources.get_content_totals(user_id)
        except DependencyUnavailable as e:
            logger.warning(f"Content totals unavailable for {user_id}: {e}")
            return EngagementTotals()

    async def _general_snapshot(self, user_id: str) -> ScoreSnapshot:
        jts, totals = await asyncio.gather(self.calculate_jts(user_id), self._content_totals(user_id))
        return ScoreSnapshot(
            user_id=user_id,
            skill_match=jts.skill_match,
            engagement=jts.engagement,
            credibility=jts.credibility,
            recency=jts.recency,
            total_jts=jts.total,
            total_views=totals.views,
            total_likes=totals.likes,
            total_comments=totals.comments,
            total_shares=totals.shares,
            calculated_at=self.clock(),
        )

    async def update_stored_jts(self, user_id: str) -> ScoreSnapshot:
        """
        Recompute and store a user's general score.

        Raises:
            NotFound: If the user does not exist
            PersistenceFailure: If the snapshot cannot be written
        """
        snapshot = await self._general_snapshot(user_id)
        await self.scores.upsert_user_score(snapshot)
        return snapshot

    async def refresh_user_score(self, user_id: str) -> ScoreSnapshot:
        return await self.update_stored_jts(user_id)

    def _is_fresh(self, snapshot: ScoreSnapshot, ttl: timedelta) -> bool:
        return self.clock() - snapshot.calculated_at < ttl

    async def get_stored_jts(self, user_id: str) -> ScoreSnapshot:
        """Cached general score if younger than its TTL, otherwise computed and written through."""
        try:
            cached = await self.scores.get_user_score(user_id)
        except DependencyUnavailable as e:
            logger.warning(f"Score cache read failed for {user_id}: {e}")
            cached = None

        if cached and self._is_fresh(cached, timedelta(hours=self.settings.user_score_ttl_hours)):
            return cached

        snapshot = await self._general_snapshot(user_id)
        try:
            await self.scores.upsert_user_score(snapshot)
        except PersistenceFailure as e:
            logger.error(f"Score write-through failed for {user_id}: {e}")
        return snapshot

    # ==================== Job Matches ====================

    async def _embedding_similarity(self, user_id: str, job_id: str) -> float:
        default = self.settings.default_embedding_similarity
        if self.embedding_store is None:
            return default
        try:
            similarity = await self.embedding_store.embedding_similarity(user_id, job_id)
        except DependencyUnavailable as e:
            logger.warning(f"Embedding similarity unavailable for {user_id}/{job_id}: {e}")
            return default
        return default if similarity is None else similarity

    async def _match_snapshot(self, user_id: str, job: Job, profile: Optional[Profile] = None) -> ScoreSnapshot:
        profile = profile or await self.scorer.load_profile(user_id)
        jts, similarity = await asyncio.gather(
            self._calculate(user_id, job=job, profile=profile),
            self._embedding_similarity(user_id, job.id),
        )
        return ScoreSnapshot(
            user_id=user_id,
            job_id=job.id,
            skill_match=jts.skill_match,
            engagement=jts.engagement,
            credibility=jts.credibility,
            recency=jts.recency,
            total_jts=jts.total,
            location_score=job_location_score(profile, job),
            embedding_similarity=similarity,
            calculated_at=self.clock(),
        )

    async def score_job_match(self, user_id: str, job_id: str) -> ScoreSnapshot:
        """
        Compute a job-specific score and write it through to the cache.

        A failed cache write is logged, not raised.

        Raises:
            NotFound: If the user or the job does not exist
        """
        job = await self._require_job(job_id)
        profile = await self._require_profile(user_id)
        snapshot = await self._match_snapshot(user_id, job, profile=profile)
        try:
            await self.scores.upsert_job_match(snapshot)
        except PersistenceFailure as e:
            logger.error(f"Job match write-through failed for {user_id}/{job_id}: {e}")
        return snapshot

    async def get_job_match_score(self, user_id: str, job_id: str) -> ScoreSnapshot:
        """Cached job-specific score if younger than its TTL, otherwise recomputed."""
        try:
            cached = await self.scores.get_job_match(user_id, job_id)
        except DependencyUnavailable as e:
            logger.warning(f"Job match cache read failed for {user_id}/{job_id}: {e}")
            cached = None

        if cached and self._is_fresh(cached, timedelta(hours=self.settings.job_match_ttl_hours)):
            return cached
        return await self.score_job_match(user_id, job_id)

    async def find_job_matches(self, job_id: str, limit: int = 50, log_results: bool = False) -> List[JobMatchResult]:
        """
        Rank onboarded freelancers for a job.

        Candidates below the minimum JTS threshold are dropped. Results are
        ordered by total JTS, then skill match, then user id.

        Args:
            job_id: Job to match against
            limit: Maximum results
            log_results: Write each surfaced match to the ranking log

        Raises:
            NotFound: If the job does not exist
        """
        job = await self._require_job(job_id)
        thresholds, candidates = await asyncio.gather(
            self.weights.get_thresholds(),
            self.sources.list_freelancers(onboarded_only=True),
        )
        semaphore = asyncio.Semaphore(self.settings.batch_concurrency)

        async def evaluate(profile: Profile) -> JobMatchResult:
            async with semaphore:
                jts, similarity = await asyncio.gather(
                    self._calculate(profile.user_id, job=job, profile=profile),
                    self._embedding_similarity(profile.user_id, job.id),
                )
            return JobMatchResult(
                user_id=profile.user_id,
                job_id=job.id,
                profile=profile,
                jts=jts,
                location_score=job_location_score(profile, job),
                embedding_similarity=similarity,
            )

        evaluated = await asyncio.gather(*(evaluate(p) for p in candidates))
        matches = [m for m in evaluated if m.jts.total >= thresholds.min_jts]
        matches.sort(key=lambda m: (-m.jts.total, -m.jts.skill_match, m.user_id))
        matches = matches[:limit]

        for match in matches:
            match.factors = analyze_job_match_factors(match.jts, match.location_score, match.embedding_similarity)
            match.explanation = render_job_match_explanation(match.jts, match.factors)

        if log_results and self.explainer is not None:
            await asyncio.gather(*(
                self.explainer.log_job_match(
                    m.user_id, job.id, m.jts, m.location_score, m.embedding_similarity, ranking_position=i + 1
                )
                for i, m in enumerate(matches)
            ))

        logger.info(f"Job {job_id}: {len(matches)} matches from {len(candidates)} candidates")
        return matches

    # ==================== Batch ====================

    async def batch_refresh_user_scores(self, user_ids: Sequence[str]) -> BatchResult:
        """
        Refresh general scores concurrently under a concurrency cap.

        Per-user failures are collected into the result, never raised.
        """
        semaphore = asyncio.Semaphore(self.settings.batch_concurrency)

        async def refresh(user_id: str) -> ScoreSnapshot:
            async with semaphore:
                return await self.update_stored_jts(user_id)

        outcomes = await asyncio.gather(*(refresh(uid) for uid in user_ids), return_exceptions=True)

        result = BatchResult(total=len(user_ids))
        for user_id, outcome in zip(user_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to update JTS for user {user_id}: {outcome}")
                result.failed += 1
                result.errors[user_id] = str(outcome)
            else:
                result.succeeded += 1

        logger.info(f"Batch JTS refresh: {result.succeeded}/{result.total} succeeded, {result.failed} failed")
        return result

    async def batch_update_jts_scores(self, limit: int = 100) -> BatchResult:
        """Refresh the general score of the first `limit` freelancers."""
        profiles = await self.sources.list_freelancers(onboarded_only=False, limit=limit)
        return await self.batch_refresh_user_scores([p.user_id for p in profiles])
