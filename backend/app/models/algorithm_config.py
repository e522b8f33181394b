"""
Algorithm Config Model - Named, versioned weight configurations

Rows:
    - jts_weights_v1 (jts_weights): skill_match, engagement, credibility, recency
    - feed_weights_v1 (feed_weights): relevance, engagement, freshness, diversity, local
    - matching_threshold (threshold): min_jts, min_skill_match, min_embedding_similarity

At most one version per config_name is active at a time.
"""

from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base
import uuid


class AlgorithmConfig(Base):
    __tablename__ = "algorithm_config"
    __table_args__ = (UniqueConstraint("config_name", "version", name="uq_algorithm_config_version"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    config_name = Column(String(100), nullable=False, index=True)
    config_type = Column(String(30), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    config_value = Column(JSON, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
