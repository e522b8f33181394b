from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.base import Record, utc_now
from app.schemas.weights import JTSWeights


class SkillMatchBreakdown(BaseModel):
    exact_matches: List[str] = Field(default_factory=list)
    partial_matches: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    keyword_score: float = 50.0
    semantic_score: Optional[float] = None
    category_bonus: float = 0.0
    score: float = 50.0


class EngagementTotals(BaseModel):
    """Event counts on a subject's content over the scoring window."""

    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    saves: int = 0
    clicks: int = 0
    weighted_total: float = 0.0


class JTSComponents(BaseModel):
    skill_match: float
    engagement: float
    credibility: float
    recency: float
    total: float
    weights: JTSWeights = Field(default_factory=JTSWeights)
    skill_breakdown: Optional[SkillMatchBreakdown] = None
    engagement_totals: Optional[EngagementTotals] = None

    def contributions(self) -> Dict[str, float]:
        """Weighted contribution of each component to the total."""
        return {
            "skill_match": self.skill_match * self.weights.skill_match,
            "engagement": self.engagement * self.weights.engagement,
            "credibility": self.credibility * self.weights.credibility,
            "recency": self.recency * self.weights.recency,
        }


class ScoreSnapshot(Record):
    """Stored JTS; job_id is None for a user's general score."""

    user_id: str
    job_id: Optional[str] = None
    skill_match: float
    engagement: float
    credibility: float
    recency: float
    total_jts: float
    location_score: Optional[float] = None
    embedding_similarity: Optional[float] = None
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    calculated_at: datetime = Field(default_factory=utc_now)

    def to_components(self) -> JTSComponents:
        return JTSComponents(
            skill_match=self.skill_match,
            engagement=self.engagement,
            credibility=self.credibility,
            recency=self.recency,
            total=self.total_jts,
        )


class BatchResult(BaseModel):
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)
