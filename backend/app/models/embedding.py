"""
Embedding Models - Vector representations keyed by entity

Each entity type stores its sub-vectors plus the combined vector used for
similarity. Vectors are stored as JSON arrays. Rows are regenerated (upserted)
whenever the source text changes; updated_at supports staleness checks.

Combined vector blends:
    - Profile: skills * 0.7 + bio * 0.3
    - Job: requirements * 0.6 + description * 0.4
    - Content: text * 0.7 + tags * 0.3
"""

from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base
import uuid


class ProfileEmbedding(Base):
    __tablename__ = "profile_embeddings"

    user_id = Column(String, primary_key=True)
    skills_embedding = Column(JSON, nullable=True)
    bio_embedding = Column(JSON, nullable=True)
    combined_embedding = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class JobEmbedding(Base):
    __tablename__ = "job_embeddings"

    job_id = Column(String, primary_key=True)
    requirements_embedding = Column(JSON, nullable=True)
    description_embedding = Column(JSON, nullable=True)
    combined_embedding = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class ContentEmbedding(Base):
    __tablename__ = "content_embeddings"

    content_id = Column(String, primary_key=True)
    content_type = Column(String(20), nullable=False, default="video")
    text_embedding = Column(JSON, nullable=True)
    tags_embedding = Column(JSON, nullable=True)
    combined_embedding = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class SkillEmbedding(Base):
    """Cached embedding per skill, unique on the lower-cased skill text."""

    __tablename__ = "skill_embeddings"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    skill_text = Column(Text, nullable=False, unique=True)
    embedding = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
