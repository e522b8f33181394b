"""
Celery Application Configuration

Configures Celery for background ranking work with:
- Redis as message broker and result backend
- Task autodiscovery from app.tasks module
- Separate queues for embeddings, scoring and feed caches
- Periodic batch refresh of stale JTS scores via beat

Usage:
    # Start worker:
    celery -A app.celery worker --loglevel=info -Q default,embeddings,scoring,feeds

    # Start beat scheduler (for periodic tasks):
    celery -A app.celery beat --loglevel=info

    # Enqueue a task:
    from app.tasks.scoring import generate_embedding_task
    generate_embedding_task.delay("job", "job-123")
"""

from celery import Celery
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "jobtolk_ranking",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result settings
    result_expires=3600,
    task_track_started=True,

    # Acknowledge after completion
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Embedding calls are rate limited per task
    worker_disable_rate_limits=False,

    task_routes={
        "app.tasks.scoring.generate_embedding_task": {"queue": "embeddings"},
        "app.tasks.scoring.refresh_user_score_task": {"queue": "scoring"},
        "app.tasks.scoring.batch_update_jts_scores_task": {"queue": "scoring"},
        "app.tasks.scoring.refresh_feed_cache_task": {"queue": "feeds"},
    },

    beat_schedule={
        "batch-update-jts-scores": {
            "task": "app.tasks.scoring.batch_update_jts_scores_task",
            "schedule": settings.batch_refresh_interval_hours * 3600,
            "args": (settings.batch_refresh_limit,),
        },
    },

    task_default_queue="default",
)

celery_app.autodiscover_tasks(["app.tasks"])
