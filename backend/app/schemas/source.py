from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from app.schemas.base import Record, utc_now


class Profile(Record):
    user_id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    role: str = "freelancer"
    skills: List[str] = Field(default_factory=list)
    service_categories: List[str] = Field(default_factory=list)
    location_city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_verified: bool = False
    avg_rating: Optional[float] = None
    total_ratings: int = 0
    jobs_completed: int = 0
    response_rate: Optional[float] = None
    onboarding_completed: bool = False

    @field_validator("skills", "service_categories", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @field_validator("is_verified", "onboarding_completed", mode="before")
    @classmethod
    def _none_to_false(cls, value):
        return bool(value)

    @field_validator("total_ratings", "jobs_completed", mode="before")
    @classmethod
    def _none_to_zero(cls, value):
        return value or 0

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Job(Record):
    id: str
    title: str = ""
    description: str = ""
    required_skills: List[str] = Field(default_factory=list)
    optional_skills: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    job_type: str = "local"
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("required_skills", "optional_skills", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @field_validator("title", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""

    @property
    def is_remote(self) -> bool:
        return self.job_type == "remote"


class ContentItem(Record):
    id: str
    user_id: str
    content_type: str = "video"
    title: str = ""
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    thumbnail_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    views_count: int = 0
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0

    @field_validator("tags", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return value or []

    @field_validator("title", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""

    @field_validator("views_count", "likes_count", "comments_count", "shares_count", mode="before")
    @classmethod
    def _none_to_zero(cls, value):
        return value or 0

    @field_validator("created_at", mode="before")
    @classmethod
    def _none_to_now(cls, value):
        return value or utc_now()


class EngagementEvent(Record):
    id: Optional[str] = None
    user_id: str
    target_id: str
    target_type: str = "video"
    event_type: str
    created_at: datetime = Field(default_factory=utc_now)
