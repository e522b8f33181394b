from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.base import Record, utc_now


class ProfileEmbeddingRecord(Record):
    user_id: str
    skills_embedding: Optional[List[float]] = None
    bio_embedding: Optional[List[float]] = None
    combined_embedding: Optional[List[float]] = None
    updated_at: datetime = Field(default_factory=utc_now)


class JobEmbeddingRecord(Record):
    job_id: str
    requirements_embedding: Optional[List[float]] = None
    description_embedding: Optional[List[float]] = None
    combined_embedding: Optional[List[float]] = None
    updated_at: datetime = Field(default_factory=utc_now)


class ContentEmbeddingRecord(Record):
    content_id: str
    content_type: str = "video"
    text_embedding: Optional[List[float]] = None
    tags_embedding: Optional[List[float]] = None
    combined_embedding: Optional[List[float]] = None
    updated_at: datetime = Field(default_factory=utc_now)


class SimilarProfile(Record):
    user_id: str
    similarity: float
