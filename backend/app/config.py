from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/jobtolk.db"

    # Embedding provider: "openai", "huggingface" or "mock"
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    openai_api_key: str = ""
    huggingface_api_key: str = ""
    huggingface_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Redis configuration
    redis_url: str = "redis://localhost:6379"

    # Celery configuration
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"

    # Skill match blend (keyword vs embedding) and neutral defaults
    skill_keyword_weight: float = 0.6
    skill_semantic_weight: float = 0.4
    skill_no_requirements_score: float = 100.0
    skill_default_score: float = 50.0
    skill_category_bonus: float = 10.0
    semantic_neutral_score: float = 50.0
    engagement_new_user_score: float = 25.0
    credibility_default_score: float = 40.0

    # Matching thresholds
    min_jts_threshold: float = 40.0
    default_embedding_similarity: float = 0.5

    # Cache lifetimes
    feed_cache_ttl_minutes: int = 60
    feed_cache_size: int = 100
    job_match_ttl_hours: int = 24
    user_score_ttl_hours: int = 24
    embedding_cache_ttl_seconds: int = 86400
    weights_cache_ttl_seconds: int = 300

    # Batch processing
    batch_concurrency: int = 10
    batch_refresh_interval_hours: int = 6
    batch_refresh_limit: int = 100

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
