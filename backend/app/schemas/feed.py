from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.base import Record, utc_now
from app.schemas.source import ContentItem


class FeedScores(BaseModel):
    relevance: float
    engagement: float
    freshness: float
    diversity: float
    local: float
    total: float


class FeedItem(BaseModel):
    content_id: str
    content_type: str = "video"
    creator_id: Optional[str] = None
    created_at: Optional[datetime] = None
    scores: Optional[FeedScores] = None
    total_score: float
    is_local: bool = False
    is_trending: bool = False
    explanation: str = ""
    content: Optional[ContentItem] = None


class FeedCacheItem(BaseModel):
    content_id: str
    content_type: str = "video"
    total_score: float
    is_local: bool = False
    is_trending: bool = False


class FeedCacheEntry(Record):
    user_id: str
    feed_data: List[FeedCacheItem] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    version: int = 1
