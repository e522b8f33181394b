"""
Background Tasks for Ranking

Celery tasks for:
- Generating profile, job and content embeddings (rate-limited)
- Refreshing a user's stored JTS
- Batch refreshing stale JTS scores (scheduled by beat)
- Rebuilding a viewer's discovery feed cache

Each task builds a RankingSystem, runs its coroutine on a fresh event loop
and closes the system afterwards. Missing entities are reported in the
result instead of retried; other failures retry up to three times.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from prometheus_client import Counter, Histogram

from app.celery import celery_app
from app.services.errors import NotFound
from app.services.ranking import RankingSystem, build_ranking_system

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ==================== Prometheus Metrics ====================

TASK_DURATION = Histogram(
    "ranking_task_duration_seconds",
    "Time spent executing ranking tasks",
    ["task_name"]
)

TASK_FAILURES = Counter(
    "ranking_task_failures_total",
    "Number of ranking task failures",
    ["task_name"]
)

EMBEDDINGS_GENERATED = Counter(
    "ranking_embeddings_generated_total",
    "Number of embeddings generated by background tasks",
    ["kind"]
)

SCORES_REFRESHED = Counter(
    "jts_scores_refreshed_total",
    "Number of user JTS scores refreshed"
)

FEEDS_CACHED = Counter(
    "discovery_feeds_cached_total",
    "Number of discovery feed caches rebuilt"
)


# ==================== Helper Functions ====================

def get_ranking_system() -> RankingSystem:
    return build_ranking_system()


def run_with_system(operation: Callable[[RankingSystem], Awaitable[T]]) -> T:
    """Run an async operation against a fresh RankingSystem on its own event loop."""

    async def _run() -> T:
        system = get_ranking_system()
        try:
            return await operation(system)
        finally:
            await system.close()

    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(_run())
    finally:
        loop.close()


# ==================== Celery Tasks ====================

@celery_app.task(bind=True, rate_limit="100/m", max_retries=3, default_retry_delay=30)
def generate_embedding_task(self, kind: str, entity_id: str) -> dict:
    """
    Generate and store the embedding for a profile, job or content item.

    Rate limited to 100 calls per minute to stay within provider limits.

    Args:
        kind: "profile", "job" or "content"
        entity_id: User, job or content id

    Returns:
        Dict with the entity and the combined vector's dimensions
    """
    start_time = time.time()

    try:
        record = run_with_system(lambda system: system.generate_embedding_for(kind, entity_id))
        EMBEDDINGS_GENERATED.labels(kind=kind).inc()
        return {
            "kind": kind,
            "entity_id": entity_id,
            "dimensions": len(record.combined_embedding),
        }

    except (NotFound, ValueError) as e:
        logger.warning(f"Skipping embedding for {kind} {entity_id}: {e}")
        return {"kind": kind, "entity_id": entity_id, "error": str(e)}

    except Exception as exc:
        TASK_FAILURES.labels(task_name="generate_embedding_task").inc()
        logger.error(f"Embedding task failed for {kind} {entity_id}: {exc}")
        raise self.retry(exc=exc, countdown=30)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="generate_embedding_task").observe(duration)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def refresh_user_score_task(self, user_id: str) -> dict:
    """
    Recompute and store a user's JTS.

    Called when a profile changes or new engagement arrives.
    """
    start_time = time.time()

    try:
        snapshot = run_with_system(lambda system: system.refresh_score(user_id))
        SCORES_REFRESHED.inc()
        logger.info(f"Refreshed JTS for {user_id}: {snapshot.total_jts:.1f}")
        return {"user_id": user_id, "total_jts": snapshot.total_jts}

    except NotFound as e:
        logger.warning(f"Cannot refresh JTS: {e}")
        return {"user_id": user_id, "error": str(e)}

    except Exception as exc:
        TASK_FAILURES.labels(task_name="refresh_user_score_task").inc()
        logger.error(f"JTS refresh failed for {user_id}: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="refresh_user_score_task").observe(duration)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def batch_update_jts_scores_task(self, limit: Optional[int] = None) -> dict:
    """
    Refresh the JTS of up to limit freelancers, onboarded or not.

    Individual failures are counted in the result and never fail the task.
    """
    start_time = time.time()

    try:
        if limit is None:
            result = run_with_system(lambda system: system.batch_refresh())
        else:
            result = run_with_system(lambda system: system.batch_refresh(limit=limit))
        SCORES_REFRESHED.inc(result.succeeded)
        logger.info(f"Batch JTS refresh: {result.succeeded}/{result.total} succeeded")
        return result.model_dump()

    except Exception as exc:
        TASK_FAILURES.labels(task_name="batch_update_jts_scores_task").inc()
        logger.error(f"Batch JTS refresh failed: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="batch_update_jts_scores_task").observe(duration)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def refresh_feed_cache_task(self, user_id: str) -> dict:
    """Rebuild a viewer's discovery feed cache."""
    start_time = time.time()

    try:
        entry = run_with_system(lambda system: system.feed.cache_discovery_feed(user_id))
        FEEDS_CACHED.inc()
        return {
            "user_id": user_id,
            "items": len(entry.feed_data),
            "expires_at": entry.expires_at.isoformat(),
        }

    except Exception as exc:
        TASK_FAILURES.labels(task_name="refresh_feed_cache_task").inc()
        logger.error(f"Feed cache refresh failed for {user_id}: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        duration = time.time() - start_time
        TASK_DURATION.labels(task_name="refresh_feed_cache_task").observe(duration)
