"""
Profile Model - Person records read by the ranking core

Profiles are owned by the surrounding application (onboarding, settings
screens). The ranking core only reads them: skills and categories feed skill
matching and embeddings, the statistics columns feed credibility, and the
location columns feed locality scoring.
"""

from sqlalchemy import Column, String, Integer, Float, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from app.database import Base
import uuid


class Profile(Base):
    """
    Person record (freelancer or client).

    Attributes:
        user_id: UUID primary key
        role: "freelancer", "client", ... (only freelancers are match candidates)
        skills: Ordered list of skill strings
        service_categories: Categories the person offers services in
        bio: Free text biography
        location_city / latitude / longitude: Optional location
        is_verified: Identity verification flag
        avg_rating: Average rating on a 0-5 scale
        jobs_completed: Count of completed jobs
        onboarding_completed: True once onboarding finished
    """

    __tablename__ = "profiles"

    user_id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), nullable=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(2000), nullable=True)
    bio = Column(Text, nullable=True)
    role = Column(String(20), nullable=False, default="freelancer", index=True)
    skills = Column(JSON, nullable=False, default=list)
    service_categories = Column(JSON, nullable=False, default=list)
    location_city = Column(String(200), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    avg_rating = Column(Float, nullable=True)
    total_ratings = Column(Integer, nullable=False, default=0)
    jobs_completed = Column(Integer, nullable=False, default=0)
    response_rate = Column(Float, nullable=True)
    onboarding_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
