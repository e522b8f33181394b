"""
Redis Caching Service

Two layers sit in front of slow dependencies:
- Embedding Cache (24hr TTL): provider vectors keyed by a hash of the text
- Weights Cache (5min TTL): active algorithm weight configs by name

Cache Key Patterns:
    - emb:{model}:{content_hash} - Embedding vectors
    - weights:{config_name} - Weight config values

Every operation degrades to a miss (or a no-op) when Redis is unavailable.

Usage:
    cache = await get_cache()
    vector = await cache.get_embedding(model, hash_content(text))
    if vector is None:
        vector = await provider.embed(text)
        await cache.set_embedding(model, hash_content(text), vector)
"""

import json
import hashlib
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

import redis.asyncio as redis
from prometheus_client import Counter

from app.config import get_settings

logger = logging.getLogger(__name__)

CACHE_HITS = Counter("ranking_cache_hits_total", "Cache hits", ["layer"])
CACHE_MISSES = Counter("ranking_cache_misses_total", "Cache misses", ["layer"])


class CacheLayer(Enum):
    """Cache layers with default TTL values in seconds."""

    EMBEDDING = ("embedding", 86400)  # 24 hours
    WEIGHTS = ("weights", 300)        # 5 minutes

    def __init__(self, layer_name: str, ttl: int):
        self.layer_name = layer_name
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl


def hash_content(*args: Any) -> str:
    """
    Generate a 16-character hex hash from content.

    Dict keys are sorted for consistent hashing.
    """
    content = json.dumps(args, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


class RankingCache:
    """
    Redis cache for embeddings and weight configs.

    Provides graceful degradation when Redis is unavailable,
    returning None instead of raising exceptions.
    """

    def __init__(
        self,
        redis_url: str,
        embedding_ttl: int = CacheLayer.EMBEDDING.ttl,
        weights_ttl: int = CacheLayer.WEIGHTS.ttl,
    ):
        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = None
        self.ttls = {
            CacheLayer.EMBEDDING: embedding_ttl,
            CacheLayer.WEIGHTS: weights_ttl,
        }
        self.stats: Dict[str, Dict[str, int]] = {
            "hits": {"embedding": 0, "weights": 0},
            "misses": {"embedding": 0, "weights": 0},
        }

    async def _ensure_connected(self) -> Optional[redis.Redis]:
        if self.redis is None:
            try:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}")
                return None
        return self.redis

    def _record(self, layer: CacheLayer, hit: bool) -> None:
        bucket = "hits" if hit else "misses"
        self.stats[bucket][layer.layer_name] += 1
        (CACHE_HITS if hit else CACHE_MISSES).labels(layer=layer.layer_name).inc()

    async def _get(self, layer: CacheLayer, key: str) -> Optional[Any]:
        try:
            client = await self._ensure_connected()
            if not client:
                return None

            cached = await client.get(key)
            if cached:
                self._record(layer, True)
                return json.loads(cached)

            self._record(layer, False)
            return None

        except Exception as e:
            logger.warning(f"Redis get error ({layer.layer_name} cache): {e}")
            self._record(layer, False)
            return None

    async def _set(self, layer: CacheLayer, key: str, value: Any) -> bool:
        try:
            client = await self._ensure_connected()
            if not client:
                return False

            await client.setex(key, self.ttls[layer], json.dumps(value))
            return True

        except Exception as e:
            logger.warning(f"Redis set error ({layer.layer_name} cache): {e}")
            return False

    async def _delete(self, key: str) -> bool:
        try:
            client = await self._ensure_connected()
            if not client:
                return False

            return await client.delete(key) > 0

        except Exception as e:
            logger.warning(f"Redis delete error: {e}")
            return False

    # ==================== Embedding Cache ====================

    async def get_embedding(self, model: str, content_hash: str) -> Optional[List[float]]:
        return await self._get(CacheLayer.EMBEDDING, f"emb:{model}:{content_hash}")

    async def set_embedding(self, model: str, content_hash: str, embedding: List[float]) -> bool:
        return await self._set(CacheLayer.EMBEDDING, f"emb:{model}:{content_hash}", embedding)

    # ==================== Weights Cache ====================

    async def get_weights(self, config_name: str) -> Optional[Dict[str, Any]]:
        return await self._get(CacheLayer.WEIGHTS, f"weights:{config_name}")

    async def set_weights(self, config_name: str, value: Dict[str, Any]) -> bool:
        return await self._set(CacheLayer.WEIGHTS, f"weights:{config_name}", value)

    async def invalidate_weights(self, config_name: str) -> bool:
        return await self._delete(f"weights:{config_name}")

    # ==================== Health & Stats ====================

    async def health_check(self) -> bool:
        try:
            client = await self._ensure_connected()
            if not client:
                return False

            await client.ping()
            return True

        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """
        Get cache statistics including hit rates.

        Returns:
            Dict with stats per cache layer
        """
        stats = {}

        for layer in ["embedding", "weights"]:
            hits = self.stats["hits"][layer]
            misses = self.stats["misses"][layer]
            total = hits + misses

            stats[layer] = {
                "hits": hits,
                "misses": misses,
                "total": total,
                "hit_rate": hits / total if total > 0 else 0.0,
            }

        return stats

    async def close(self) -> None:
        if self.redis:
            await self.redis.close()
            self.redis = None


# ==================== Factory Function ====================

_cache_instance: Optional[RankingCache] = None


async def get_cache(redis_url: Optional[str] = None) -> RankingCache:
    """
    Get or create cache singleton.

    Args:
        redis_url: Optional Redis URL (uses settings if not provided)
    """
    global _cache_instance

    if _cache_instance is None:
        settings = get_settings()
        _cache_instance = RankingCache(
            redis_url=redis_url or settings.redis_url,
            embedding_ttl=settings.embedding_cache_ttl_seconds,
            weights_ttl=settings.weights_cache_ttl_seconds,
        )

    return _cache_instance
