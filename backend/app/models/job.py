"""
Job Model - Job postings matched against freelancer profiles

Read-only from the ranking core's perspective. Required skills drive keyword
skill matching; title/description/skills drive the job embedding; job_type and
coordinates drive the proximity score.
"""

from sqlalchemy import Column, String, Float, Text, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base
import uuid


class Job(Base):
    """
    Job posting entity.

    Attributes:
        id: UUID primary key
        title: Job title (max 500 chars)
        description: Full job description text
        required_skills / optional_skills: Skill lists
        category: Service category
        job_type: "remote" or "local"
        latitude / longitude: Job location (local jobs)
    """

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String, nullable=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    required_skills = Column(JSON, nullable=False, default=list)
    optional_skills = Column(JSON, nullable=False, default=list)
    category = Column(String(200), nullable=True)
    job_type = Column(String(20), nullable=False, default="local")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
