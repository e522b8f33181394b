"""
Score Models - Cached Jobtolk Scores and feed caches

UserJTSScore holds a user's general score (one row per user).
JobMatchJTS holds user-job scores (unique per job/user pair).
FeedCache holds one ranked feed per viewing user.

All three are upserted by primary key; concurrent writers race and the most
recent write wins.
"""

from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base
import uuid


class UserJTSScore(Base):
    __tablename__ = "user_jts_scores"

    user_id = Column(String, primary_key=True)
    skill_match_avg = Column(Float, nullable=False, default=50.0)
    engagement_score = Column(Float, nullable=False, default=50.0)
    credibility_score = Column(Float, nullable=False, default=50.0)
    recency_boost = Column(Float, nullable=False, default=0.0)
    total_jts = Column(Float, nullable=False, default=50.0)
    total_views = Column(Integer, nullable=False, default=0)
    total_likes = Column(Integer, nullable=False, default=0)
    total_comments = Column(Integer, nullable=False, default=0)
    total_shares = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class JobMatchJTS(Base):
    __tablename__ = "job_match_jts"
    __table_args__ = (UniqueConstraint("job_id", "user_id", name="uq_job_match_job_user"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    skill_match_score = Column(Float, nullable=False)
    engagement_score = Column(Float, nullable=False)
    credibility_score = Column(Float, nullable=False)
    recency_boost = Column(Float, nullable=False)
    total_jts = Column(Float, nullable=False)
    location_score = Column(Float, nullable=True)
    embedding_similarity = Column(Float, nullable=True)
    calculated_at = Column(DateTime(timezone=True), nullable=False)


class FeedCache(Base):
    """
    Cached discovery feed.

    feed_data is an ordered list of
    {content_id, content_type, total_score, is_local, is_trending}.
    """

    __tablename__ = "feed_cache"

    user_id = Column(String, primary_key=True)
    feed_data = Column(JSON, nullable=False, default=list)
    generated_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
