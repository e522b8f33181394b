from typing import Any, Dict, Optional

from pydantic import BaseModel

from app.schemas.base import Record


class JTSWeights(BaseModel):
    """JTS component weights; the defaults sum to 1.0."""

    skill_match: float = 0.35
    engagement: float = 0.25
    credibility: float = 0.25
    recency: float = 0.15


class FeedWeights(BaseModel):
    relevance: float = 0.30
    engagement: float = 0.25
    freshness: float = 0.20
    diversity: float = 0.15
    local: float = 0.10


class MatchingThresholds(BaseModel):
    min_skill_match: float = 30.0
    min_jts: float = 40.0
    min_embedding_similarity: float = 0.5


class WeightConfig(Record):
    id: Optional[str] = None
    config_name: str
    config_type: str
    version: int = 1
    config_value: Dict[str, Any]
    description: Optional[str] = None
    is_active: bool = True
