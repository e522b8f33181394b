"""
Engagement Event Model - Append-only interaction log

Rows are written by the surrounding application and never mutated. The
ranking core reads them for engagement scoring (events on a creator's
content) and for behavioural/diversity signals (events by a viewer).
"""

from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func
from app.database import Base
import uuid


class EngagementEvent(Base):
    """
    A single interaction.

    Attributes:
        user_id: Actor (the person who engaged)
        target_id / target_type: What was engaged with
        event_type: view, like, comment, share, save or click
    """

    __tablename__ = "engagement_events"
    __table_args__ = (
        Index("ix_engagement_user_created", "user_id", "created_at"),
        Index("ix_engagement_target", "target_type", "target_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    target_id = Column(String, nullable=False)
    target_type = Column(String(20), nullable=False, default="video")
    event_type = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
