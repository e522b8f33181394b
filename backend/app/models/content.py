"""
Content Model - Videos shown in the discovery feed

Engagement counters are maintained by the surrounding application; the
ranking core reads them for content engagement and trending detection.
"""

from sqlalchemy import Column, String, Integer, Text, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base
import uuid


class ContentItem(Base):
    """
    Video content entity.

    Attributes:
        id: UUID primary key
        user_id: Owning profile (the creator, indexed)
        title / description / tags: Text used for content embeddings
        created_at: Posting time (drives freshness and recency)
        views_count / likes_count / comments_count / shares_count: Counters
    """

    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    title = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    thumbnail_url = Column(String(2000), nullable=True)
    views_count = Column(Integer, nullable=False, default=0)
    likes_count = Column(Integer, nullable=False, default=0)
    comments_count = Column(Integer, nullable=False, default=0)
    shares_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
