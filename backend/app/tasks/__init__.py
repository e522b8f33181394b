"""
Celery Task Modules

Background tasks for ranking:
- scoring.py: Embedding generation, JTS refreshes and feed cache rebuilds
"""

from app.tasks.scoring import (
    generate_embedding_task,
    refresh_user_score_task,
    batch_update_jts_scores_task,
    refresh_feed_cache_task,
)

__all__ = [
    "generate_embedding_task",
    "refresh_user_score_task",
    "batch_update_jts_scores_task",
    "refresh_feed_cache_task",
]
