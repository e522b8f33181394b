from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.base import Record, utc_now
from app.schemas.scores import JTSComponents
from app.schemas.source import Profile


class RankingFactors(BaseModel):
    positive: List[str] = Field(default_factory=list)
    negative: List[str] = Field(default_factory=list)
    neutral: List[str] = Field(default_factory=list)


class RankingLogRecord(Record):
    id: Optional[str] = None
    user_id: str
    log_type: str
    target_id: str
    target_type: str
    score_components: Dict[str, float] = Field(default_factory=dict)
    total_score: float
    ranking_position: Optional[int] = None
    explanation_text: Optional[str] = None
    factors: RankingFactors = Field(default_factory=RankingFactors)
    search_query: Optional[str] = None
    filters_applied: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("factors", mode="before")
    @classmethod
    def _none_to_empty_factors(cls, value):
        return value or {}

    @field_validator("score_components", mode="before")
    @classmethod
    def _none_to_empty_components(cls, value):
        return value or {}


class RankingStatistics(BaseModel):
    total_logs: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    avg_scores: Dict[str, float] = Field(default_factory=dict)
    top_positive_factors: Dict[str, int] = Field(default_factory=dict)
    top_negative_factors: Dict[str, int] = Field(default_factory=dict)


class JobMatchResult(BaseModel):
    user_id: str
    job_id: str
    profile: Optional[Profile] = None
    jts: JTSComponents
    location_score: float
    embedding_similarity: float
    factors: RankingFactors = Field(default_factory=RankingFactors)
    explanation: str = ""

    @property
    def total(self) -> float:
        return self.jts.total
