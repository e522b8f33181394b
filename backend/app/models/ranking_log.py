"""
Ranking Log Model - Immutable audit trail of ranking decisions

One row per ranking decision surfaced to a user. Rows are inserted and never
updated or deleted by the ranking core; retention is handled elsewhere.
"""

from sqlalchemy import Column, String, Integer, Float, Text, DateTime, JSON, Index
from sqlalchemy.sql import func
from app.database import Base
import uuid


class RankingLog(Base):
    """
    Attributes:
        user_id: The user the ranking was shown to
        log_type: job_match, feed_rank, search_result or recommendation
        target_id / target_type: What was ranked
        score_components: Full component score map
        factors: {"positive": [...], "negative": [...], "neutral": [...]}
        search_query / filters_applied: Search context (search results only)
    """

    __tablename__ = "ranking_logs"
    __table_args__ = (
        Index("ix_ranking_logs_user_created", "user_id", "created_at"),
        Index("ix_ranking_logs_target", "target_id", "log_type"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    log_type = Column(String(30), nullable=False)
    target_id = Column(String, nullable=False)
    target_type = Column(String(30), nullable=False)
    score_components = Column(JSON, nullable=False, default=dict)
    total_score = Column(Float, nullable=False)
    ranking_position = Column(Integer, nullable=True)
    explanation_text = Column(Text, nullable=True)
    factors = Column(JSON, nullable=False, default=dict)
    search_query = Column(Text, nullable=True)
    filters_applied = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
