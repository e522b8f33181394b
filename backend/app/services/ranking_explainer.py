"""
Ranking Explainer - Factor analysis, explanation text and audit logs

Every ranking decision surfaced to a user can be explained:
    1. Each score component is bucketed into positive / neutral / negative
       factors using the shared FACTOR_TIERS table
    2. The factors and scores render into deterministic multi-line text
    3. The decision is written to the ranking_logs audit table

Audit logging never blocks a ranking response: a failed write is logged and
returns None.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.repositories import RankingLogRepository
from app.schemas import (
    FeedScores,
    FeedWeights,
    JTSComponents,
    RankingFactors,
    RankingLogRecord,
    RankingStatistics,
)
from app.services.errors import DependencyUnavailable, PersistenceFailure

logger = logging.getLogger(__name__)

LOG_TYPES = ("job_match", "feed_rank", "search_result", "recommendation")
STATISTICS_LOG_LIMIT = 1000


@dataclass(frozen=True)
class Tier:
    """A value at or above minimum (strictly above when exclusive) lands in bucket with label."""

    minimum: float
    bucket: Optional[str]
    label: str = ""
    exclusive: bool = False

    def matches(self, value: float) -> bool:
        return value > self.minimum if self.exclusive else value >= self.minimum


NEG_INF = float("-inf")

FACTOR_TIERS: Dict[str, List[Tier]] = {
    # Job matching
    "skill_match": [
        Tier(80, "positive", "Excellent skill match ({value:.0f}%)"),
        Tier(60, "positive", "Good skill alignment ({value:.0f}%)"),
        Tier(40, "neutral", "Moderate skill match ({value:.0f}%)"),
        Tier(NEG_INF, "negative", "Limited skill overlap ({value:.0f}%)"),
    ],
    "engagement": [
        Tier(70, "positive", "High platform engagement ({value:.0f}/100)"),
        Tier(40, "neutral", "Moderate engagement ({value:.0f}/100)"),
        Tier(NEG_INF, "negative", "Low engagement history ({value:.0f}/100)"),
    ],
    "credibility": [
        Tier(80, "positive", "Highly credible with strong track record ({value:.0f}/100)"),
        Tier(60, "positive", "Established credibility ({value:.0f}/100)"),
        Tier(40, "neutral", "Building credibility ({value:.0f}/100)"),
        Tier(NEG_INF, "neutral", "New user establishing presence ({value:.0f}/100)"),
    ],
    "recency": [
        Tier(10, "positive", "Recently active on platform"),
        Tier(0, "neutral", "Active in the last month", exclusive=True),
        Tier(NEG_INF, "negative", "No recent activity"),
    ],
    "location": [
        Tier(90, "positive", "Nearby location (excellent proximity)"),
        Tier(70, "positive", "Close location (good proximity)"),
        Tier(40, "neutral", "Moderate distance"),
        Tier(NEG_INF, "negative", "Distant location"),
    ],
    "embedding_similarity": [
        Tier(0.8, "positive", "Strong semantic match with requirements"),
        Tier(0.6, "neutral", "Decent semantic alignment"),
    ],
    # Discovery feed
    "relevance": [
        Tier(70, "positive", "Highly relevant to your interests"),
        Tier(40, "neutral", "Moderately relevant"),
        Tier(NEG_INF, "neutral", "Exploring new content areas"),
    ],
    "feed_engagement": [
        Tier(70, "positive", "High engagement from community"),
        Tier(30, None),
        Tier(NEG_INF, "negative", "Lower community engagement"),
    ],
    "freshness": [
        Tier(80, "positive", "Very recently posted"),
        Tier(50, "positive", "Recent content"),
    ],
    "diversity": [
        Tier(70, "positive", "Discover new creator"),
    ],
    # Search
    "search_relevance": [
        Tier(70, "positive", 'Strong match for "{query}"'),
        Tier(40, "neutral", "Partial match for search query"),
    ],
    "popularity": [
        Tier(70, "positive", "Popular choice among users"),
    ],
    "quality": [
        Tier(70, "positive", "High quality rating"),
    ],
}

LOCAL_FACTOR = "From your local area"
TRENDING_FACTOR = "Trending right now"

JTS_LABELS = {
    "skill_match": "Skill Match",
    "engagement": "Engagement",
    "credibility": "Credibility",
    "recency": "Recency",
}
FEED_LABELS = {
    "relevance": "Relevance",
    "engagement": "Engagement",
    "freshness": "Freshness",
    "diversity": "Diversity",
    "local": "Local Relevance",
}


def classify(factor: str, value: float, factors: RankingFactors, **context: Any) -> None:
    """Append the label of the first tier matching value to its bucket."""
    for tier in FACTOR_TIERS[factor]:
        if tier.matches(value):
            if tier.bucket:
                getattr(factors, tier.bucket).append(tier.label.format(value=value, **context))
            return


def factor_key(factor: str) -> str:
    """Statistics key for a factor: its text before any parenthesis."""
    return factor.split("(")[0].strip()


# ==================== Factor Analysis ====================

def analyze_job_match_factors(
    jts: JTSComponents,
    location_score: Optional[float] = None,
    embedding_similarity: Optional[float] = None,
) -> RankingFactors:
    factors = RankingFactors()
    classify("skill_match", jts.skill_match, factors)
    classify("engagement", jts.engagement, factors)
    classify("credibility", jts.credibility, factors)
    classify("recency", jts.recency, factors)
    if location_score is not None:
        classify("location", location_score, factors)
    if embedding_similarity is not None:
        classify("embedding_similarity", embedding_similarity, factors)
    return factors


def analyze_feed_factors(scores: FeedScores, is_local: bool, is_trending: bool) -> RankingFactors:
    factors = RankingFactors()
    classify("relevance", scores.relevance, factors)
    classify("feed_engagement", scores.engagement, factors)
    classify("freshness", scores.freshness, factors)
    classify("diversity", scores.diversity, factors)
    if is_local:
        factors.positive.append(LOCAL_FACTOR)
    if is_trending:
        factors.positive.append(TRENDING_FACTOR)
    return factors


def analyze_search_factors(scores: Dict[str, float], search_query: str) -> RankingFactors:
    factors = RankingFactors()
    if scores.get("relevance"):
        classify("search_relevance", scores["relevance"], factors, query=search_query)
    if scores.get("popularity"):
        classify("popularity", scores["popularity"], factors)
    if scores.get("quality"):
        classify("quality", scores["quality"], factors)
    return factors


# ==================== Rendering ====================

def _render_factor_sections(factors: RankingFactors, strengths_heading: str = "Strengths:") -> List[str]:
    lines: List[str] = []
    for heading, items in (
        (strengths_heading, factors.positive),
        ("Considerations:", factors.neutral),
        ("Areas to note:", factors.negative),
    ):
        if items:
            lines.append("")
            lines.append(heading)
            lines.extend(f"- {item}" for item in items)
    return lines


def _contribution_line(label: str, value: float, weight: float) -> str:
    return f"- {label}: {value:.1f} × {weight * 100:.0f}% = {value * weight:.1f}"


def render_job_match_explanation(jts: JTSComponents, factors: RankingFactors) -> str:
    """
    Example:
        This freelancer was ranked with a Jobtolk Score of 62/100.

        Strengths:
        - Good skill alignment (65%)
        ...

        How the score was calculated:
        - Skill Match: 65.0 × 35% = 22.8
        ...
        Total: 62.0/100
    """
    lines = [f"This freelancer was ranked with a Jobtolk Score of {jts.total:.0f}/100."]
    lines.extend(_render_factor_sections(factors))
    lines.append("")
    lines.append("How the score was calculated:")
    weights = jts.weights.model_dump()
    values = {
        "skill_match": jts.skill_match,
        "engagement": jts.engagement,
        "credibility": jts.credibility,
        "recency": jts.recency,
    }
    for key, label in JTS_LABELS.items():
        lines.append(_contribution_line(label, values[key], weights[key]))
    lines.append(f"Total: {jts.total:.1f}/100")
    return "\n".join(lines)


def render_feed_explanation(scores: FeedScores, factors: RankingFactors, weights: FeedWeights) -> str:
    lines = [f"This content was ranked with a score of {scores.total:.0f}/100 in your feed."]
    lines.extend(_render_factor_sections(factors, strengths_heading="Why you're seeing this:"))
    lines.append("")
    lines.append("Score breakdown:")
    values = scores.model_dump()
    weight_values = weights.model_dump()
    for key, label in FEED_LABELS.items():
        lines.append(_contribution_line(label, values[key], weight_values[key]))
    lines.append(f"Total: {scores.total:.1f}/100")
    return "\n".join(lines)


def render_search_explanation(search_query: str, scores: Dict[str, float], factors: RankingFactors) -> str:
    lines = [f'Result for search: "{search_query}"']
    lines.extend(_render_factor_sections(factors, strengths_heading="Why this result:"))
    lines.append("")
    lines.append("Ranking factors:")
    for key, value in scores.items():
        lines.append(f"- {key.replace('_', ' ').capitalize()}: {value:.1f}/100")
    return "\n".join(lines)


def short_feed_explanation(scores: FeedScores, is_local: bool, is_trending: bool) -> str:
    """One-line reason shown next to a feed item."""
    reasons = []
    if scores.relevance > 70:
        reasons.append("highly relevant to your interests")
    if scores.engagement > 70:
        reasons.append("popular with other users")
    if scores.freshness > 80:
        reasons.append("newly posted")
    if is_local:
        reasons.append("from your local area")
    if is_trending:
        reasons.append("trending right now")
    if scores.diversity > 70:
        reasons.append("from a creator you haven't seen yet")

    if not reasons:
        return "Recommended based on overall platform activity"
    return f"Recommended because it's {', '.join(reasons)}"


def average_score(scores: Dict[str, float]) -> float:
    """Explicit total when present, otherwise the mean of the components."""
    if scores.get("total"):
        return scores["total"]
    return sum(scores.values()) / len(scores) if scores else 0.0


# ==================== Explainer ====================

class RankingExplainer:
    """
    Writes and reads the ranking audit log.

    Attributes:
        logs: ranking_logs storage
    """

    def __init__(self, logs: RankingLogRepository):
        self.logs = logs

    async def _insert(self, record: RankingLogRecord) -> Optional[str]:
        try:
            return await self.logs.insert(record)
        except PersistenceFailure as e:
            logger.error(f"Failed to write {record.log_type} ranking log for {record.user_id}: {e}")
            return None

    async def log_job_match(
        self,
        user_id: str,
        job_id: str,
        jts: JTSComponents,
        location_score: float,
        embedding_similarity: float,
        ranking_position: Optional[int] = None,
    ) -> Optional[str]:
        factors = analyze_job_match_factors(jts, location_score, embedding_similarity)
        return await self._insert(
            RankingLogRecord(
                user_id=user_id,
                log_type="job_match",
                target_id=job_id,
                target_type="job",
                score_components={
                    "skill_match": jts.skill_match,
                    "engagement": jts.engagement,
                    "credibility": jts.credibility,
                    "recency": jts.recency,
                    "location": location_score,
                    "embedding_similarity": embedding_similarity,
                    "total_jts": jts.total,
                },
                total_score=jts.total,
                ranking_position=ranking_position,
                explanation_text=render_job_match_explanation(jts, factors),
                factors=factors,
            )
        )

    async def log_feed_ranking(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        scores: FeedScores,
        weights: FeedWeights,
        ranking_position: Optional[int] = None,
        is_local: bool = False,
        is_trending: bool = False,
    ) -> Optional[str]:
        factors = analyze_feed_factors(scores, is_local, is_trending)
        return await self._insert(
            RankingLogRecord(
                user_id=user_id,
                log_type="feed_rank",
                target_id=content_id,
                target_type=content_type,
                score_components=scores.model_dump(),
                total_score=scores.total,
                ranking_position=ranking_position,
                explanation_text=render_feed_explanation(scores, factors, weights),
                factors=factors,
            )
        )

    async def log_search_result(
        self,
        user_id: str,
        target_id: str,
        target_type: str,
        search_query: str,
        scores: Dict[str, float],
        ranking_position: Optional[int] = None,
        filters_applied: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        factors = analyze_search_factors(scores, search_query)
        return await self._insert(
            RankingLogRecord(
                user_id=user_id,
                log_type="search_result",
                target_id=target_id,
                target_type=target_type,
                score_components=scores,
                total_score=average_score(scores),
                ranking_position=ranking_position,
                explanation_text=render_search_explanation(search_query, scores, factors),
                factors=factors,
                search_query=search_query,
                filters_applied=filters_applied or {},
            )
        )

    async def log_recommendation(
        self,
        user_id: str,
        target_id: str,
        target_type: str,
        scores: Dict[str, float],
        reason: str,
    ) -> Optional[str]:
        return await self._insert(
            RankingLogRecord(
                user_id=user_id,
                log_type="recommendation",
                target_id=target_id,
                target_type=target_type,
                score_components=scores,
                total_score=average_score(scores),
                explanation_text=reason,
                factors=RankingFactors(positive=[reason]),
            )
        )

    # ==================== Retrieval ====================

    async def get_user_ranking_logs(
        self,
        user_id: str,
        log_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[RankingLogRecord]:
        try:
            return await self.logs.list_for_user(user_id, log_type=log_type, limit=limit, offset=offset)
        except DependencyUnavailable as e:
            logger.warning(f"Failed to fetch ranking logs for {user_id}: {e}")
            return []

    async def get_ranking_explanation(self, log_id: str) -> Optional[RankingLogRecord]:
        try:
            return await self.logs.get(log_id)
        except DependencyUnavailable as e:
            logger.warning(f"Failed to fetch ranking explanation {log_id}: {e}")
            return None

    async def get_target_ranking_logs(self, target_id: str, limit: int = 50) -> List[RankingLogRecord]:
        try:
            return await self.logs.list_for_target(target_id, limit=limit)
        except DependencyUnavailable as e:
            logger.warning(f"Failed to fetch ranking logs for target {target_id}: {e}")
            return []

    async def get_ranking_statistics(self, user_id: str) -> RankingStatistics:
        """
        Aggregate a user's recent ranking logs.

        Averages are per component over the logs that carry it; factor counts
        key on the factor text before any parenthesis.
        """
        logs = await self.get_user_ranking_logs(user_id, limit=STATISTICS_LOG_LIMIT)

        by_type: Counter = Counter()
        sums: Dict[str, float] = defaultdict(float)
        counts: Counter = Counter()
        positive: Counter = Counter()
        negative: Counter = Counter()

        for log in logs:
            by_type[log.log_type] += 1
            for key, value in log.score_components.items():
                sums[key] += value
                counts[key] += 1
            positive.update(factor_key(f) for f in log.factors.positive)
            negative.update(factor_key(f) for f in log.factors.negative)

        return RankingStatistics(
            total_logs=len(logs),
            by_type=dict(by_type),
            avg_scores={key: sums[key] / counts[key] for key in sums},
            top_positive_factors=dict(positive.most_common()),
            top_negative_factors=dict(negative.most_common()),
        )
