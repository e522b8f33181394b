"""
Score Components - The four JTS inputs

Pure calculators (no I/O) for each component, plus ComponentScorer which
fetches their inputs and substitutes neutral defaults when a fetch fails.

Components (each 0-100 except recency, which is 0-15):
    - Skill match: keyword match blended 60/40 with embedding similarity
    - Engagement: log-scaled weighted events on the user's content (30 days)
    - Credibility: completeness 40 + verified 30 + jobs 15 + rating 15
    - Recency: step decay on hours since the last post
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app.config import Settings, get_settings
from app.repositories import SourceRepository
from app.schemas import EngagementEvent, EngagementTotals, Profile, SkillMatchBreakdown
from app.schemas.base import ensure_utc, utc_now
from app.services.errors import DependencyUnavailable
from app.services.vector_math import clamp, similarity_to_score

logger = logging.getLogger(__name__)

ENGAGEMENT_EVENT_WEIGHTS: Dict[str, float] = {
    "view": 1,
    "like": 3,
    "comment": 5,
    "share": 10,
    "save": 7,
    "click": 2,
}
ENGAGEMENT_WINDOW_DAYS = 30
# log10 of the weighted total that maps to a full 100
ENGAGEMENT_LOG_CEILING = math.log10(1000)

EXACT_MATCH_WEIGHT = 1.0
PARTIAL_MATCH_WEIGHT = 0.5

# (hours since last post, boost)
RECENCY_STEPS: List[Tuple[float, float]] = [
    (24, 15.0),
    (168, 10.0),
    (720, 5.0),
]

BIO_MIN_LENGTH = 50


def hours_since(moment: datetime, now: datetime) -> float:
    return (ensure_utc(now) - ensure_utc(moment)).total_seconds() / 3600


# ==================== Skill Match ====================

def _normalise(skills: Sequence[str]) -> List[str]:
    return [s.strip().lower() for s in skills if s and s.strip()]


def keyword_skill_match(
    candidate_skills: Sequence[str],
    required_skills: Sequence[str],
    candidate_categories: Sequence[str] = (),
    job_category: Optional[str] = None,
    no_requirements_score: float = 100.0,
    category_bonus: float = 10.0,
) -> SkillMatchBreakdown:
    """
    Keyword skill match.

    Each required skill counts 1.0 when the candidate has it exactly
    (case-insensitive), 0.5 when one contains the other, 0 otherwise.
    The score is the weighted count over the number of required skills.
    A shared service category adds a bonus, capped at 100.

    Example:
        >>> keyword_skill_match(["React", "Node"], ["react", "python"]).score
        50.0
    """
    candidates = _normalise(candidate_skills)
    required = _normalise(required_skills)

    breakdown = SkillMatchBreakdown()
    if not required:
        breakdown.keyword_score = no_requirements_score
    else:
        candidate_set = set(candidates)
        weighted = 0.0
        for skill in required:
            if skill in candidate_set:
                breakdown.exact_matches.append(skill)
                weighted += EXACT_MATCH_WEIGHT
            elif any(skill in c or c in skill for c in candidates):
                breakdown.partial_matches.append(skill)
                weighted += PARTIAL_MATCH_WEIGHT
            else:
                breakdown.missing_skills.append(skill)
        breakdown.keyword_score = weighted / len(required) * 100

    if job_category and job_category.strip().lower() in _normalise(candidate_categories):
        breakdown.category_bonus = category_bonus
        breakdown.keyword_score = min(100.0, breakdown.keyword_score + category_bonus)

    breakdown.score = breakdown.keyword_score
    return breakdown


def blend_skill_score(
    keyword_score: float,
    semantic_score: Optional[float],
    keyword_weight: float = 0.6,
    semantic_weight: float = 0.4,
    semantic_default: float = 50.0,
) -> float:
    """keyword * 0.6 + semantic * 0.4, with a neutral semantic score when none is available."""
    semantic = semantic_default if semantic_score is None else semantic_score
    return clamp(keyword_score * keyword_weight + semantic * semantic_weight)


# ==================== Engagement ====================

def summarise_events(events: Sequence[EngagementEvent]) -> EngagementTotals:
    totals = EngagementTotals()
    plural = {
        "view": "views",
        "like": "likes",
        "comment": "comments",
        "share": "shares",
        "save": "saves",
        "click": "clicks",
    }
    for event in events:
        field = plural.get(event.event_type)
        if field is None:
            continue
        setattr(totals, field, getattr(totals, field) + 1)
        totals.weighted_total += ENGAGEMENT_EVENT_WEIGHTS[event.event_type]
    return totals


def engagement_score(weighted_total: float) -> float:
    """Log-scale a weighted event total: 1000 weighted events or more scores 100."""
    return min(100.0, math.log10(weighted_total + 1) / ENGAGEMENT_LOG_CEILING * 100)


# ==================== Credibility ====================

def credibility_score(profile: Optional[Profile], default_score: float = 40.0) -> float:
    """
    Trust signals, each capped:
        - completeness (40): bio over 50 chars 15, avatar 10, full name 15
        - verified (30)
        - completed jobs (15): 3 per job
        - rating (15): avg_rating / 5 * 15

    Unknown profiles get the neutral default.
    """
    if profile is None:
        return default_score

    score = 0.0
    if profile.bio and len(profile.bio) > BIO_MIN_LENGTH:
        score += 15
    if profile.avatar_url:
        score += 10
    if profile.full_name:
        score += 15
    if profile.is_verified:
        score += 30
    score += min(15.0, profile.jobs_completed * 3)
    if profile.avg_rating:
        score += clamp(profile.avg_rating, 0, 5) / 5 * 15
    return clamp(score)


# ==================== Recency ====================

def recency_boost(last_post_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    if last_post_at is None:
        return 0.0
    hours = hours_since(last_post_at, now or utc_now())
    for max_hours, boost in RECENCY_STEPS:
        if hours < max_hours:
            return boost
    return 0.0


# ==================== Async Scorer ====================

class ComponentScorer:
    """
    Fetches component inputs and computes each component.

    Never raises for unavailable data: every failed fetch falls back to the
    component's neutral default and is logged at warning level.
    """

    def __init__(
        self,
        sources: SourceRepository,
        embedding_store=None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sources = sources
        self.embedding_store = embedding_store
        self.settings = settings or get_settings()
        self.clock = clock

    async def load_profile(self, user_id: str) -> Optional[Profile]:
        try:
            return await self.sources.get_profile(user_id)
        except DependencyUnavailable as e:
            logger.warning(f"Profile lookup failed for {user_id}: {e}")
            return None

    async def semantic_score(self, user_id: str, job_id: Optional[str]) -> Optional[float]:
        """Profile/job similarity rescaled to 0-100, or None when unavailable."""
        if not job_id or self.embedding_store is None:
            return None
        try:
            similarity = await self.embedding_store.embedding_similarity(user_id, job_id)
        except DependencyUnavailable as e:
            logger.warning(f"Embedding similarity unavailable for {user_id}/{job_id}: {e}")
            return None
        return None if similarity is None else similarity_to_score(similarity)

    async def skill_match(
        self,
        user_id: str,
        required_skills: Sequence[str],
        job_id: Optional[str] = None,
        job_category: Optional[str] = None,
        profile: Optional[Profile] = None,
    ) -> SkillMatchBreakdown:
        s = self.settings
        profile = profile or await self.load_profile(user_id)
        skills = (profile.skills + profile.service_categories) if profile else []
        categories = profile.service_categories if profile else []

        breakdown = keyword_skill_match(
            skills,
            required_skills,
            candidate_categories=categories,
            job_category=job_category,
            no_requirements_score=s.skill_no_requirements_score,
            category_bonus=s.skill_category_bonus,
        )
        breakdown.semantic_score = await self.semantic_score(user_id, job_id)
        breakdown.score = blend_skill_score(
            breakdown.keyword_score,
            breakdown.semantic_score,
            keyword_weight=s.skill_keyword_weight,
            semantic_weight=s.skill_semantic_weight,
            semantic_default=s.semantic_neutral_score,
        )
        return breakdown

    async def engagement(self, user_id: str) -> Tuple[float, EngagementTotals]:
        since = self.clock() - timedelta(days=ENGAGEMENT_WINDOW_DAYS)
        try:
            events = await self.sources.list_events_on_creator_content(user_id, since)
        except DependencyUnavailable as e:
            logger.warning(f"Engagement lookup failed for {user_id}: {e}")
            return self.settings.engagement_new_user_score, EngagementTotals()

        totals = summarise_events(events)
        if not events:
            return self.settings.engagement_new_user_score, totals
        return engagement_score(totals.weighted_total), totals

    async def credibility(self, user_id: str, profile: Optional[Profile] = None) -> float:
        profile = profile or await self.load_profile(user_id)
        return credibility_score(profile, self.settings.credibility_default_score)

    async def recency(self, user_id: str) -> float:
        try:
            last_post = await self.sources.get_latest_post_time(user_id)
        except DependencyUnavailable as e:
            logger.warning(f"Recency lookup failed for {user_id}: {e}")
            return 0.0
        return recency_boost(last_post, self.clock())
