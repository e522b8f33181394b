"""
Ranking System - Public facade over the ranking core

Wires repositories, providers and engines together and exposes the
operations callers use: embeddings, scores, feeds, matches, explanations
and batch refreshes.

Usage:
    system = build_ranking_system()
    await system.init()
    matches = await system.find_matches_for(job_id)
    feed = await system.get_feed(user_id, limit=20)
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings, get_settings
from app.database import init_db, to_async_url
from app.repositories import (
    ConfigRepository,
    EmbeddingRepository,
    RankingLogRepository,
    ScoreRepository,
    SourceRepository,
)
from app.schemas import (
    BatchResult,
    FeedItem,
    JobMatchResult,
    MatchingThresholds,
    RankingLogRecord,
    RankingStatistics,
    ScoreSnapshot,
)
from app.services.cache import RankingCache
from app.services.discovery_feed import DiscoveryFeedEngine
from app.services.embedding_providers import EmbeddingProvider, provider_from_settings
from app.services.embeddings import EmbeddingStore
from app.services.jts_engine import JTSEngine
from app.services.ranking_explainer import RankingExplainer
from app.services.score_components import ComponentScorer
from app.services.weights import WeightConfigProvider

logger = logging.getLogger(__name__)


@dataclass
class RankingSystem:
    engine: AsyncEngine
    embedding_store: EmbeddingStore
    jts: JTSEngine
    feed: DiscoveryFeedEngine
    explainer: RankingExplainer
    weights: WeightConfigProvider
    cache: Optional[RankingCache] = None

    async def init(self) -> None:
        """Create tables if they do not exist."""
        await init_db(self.engine)

    async def close(self) -> None:
        await self.feed.wait_for_background_tasks()
        if self.cache is not None:
            await self.cache.close()
        await self.engine.dispose()

    # ==================== Embeddings ====================

    async def generate_embedding_for(self, kind: str, entity_id: str):
        return await self.embedding_store.generate_for(kind, entity_id)

    # ==================== Scores ====================

    async def score_match(self, user_id: str, job_id: str) -> ScoreSnapshot:
        return await self.jts.score_job_match(user_id, job_id)

    async def get_or_compute_score(self, user_id: str, job_id: Optional[str] = None) -> ScoreSnapshot:
        if job_id:
            return await self.jts.get_job_match_score(user_id, job_id)
        return await self.jts.get_stored_jts(user_id)

    async def refresh_score(self, user_id: str) -> ScoreSnapshot:
        return await self.jts.refresh_user_score(user_id)

    async def find_matches_for(self, job_id: str, limit: int = 50, log_results: bool = True) -> List[JobMatchResult]:
        return await self.jts.find_job_matches(job_id, limit=limit, log_results=log_results)

    async def batch_refresh(self, user_ids: Optional[Sequence[str]] = None, limit: int = 100) -> BatchResult:
        if user_ids is None:
            return await self.jts.batch_update_jts_scores(limit=limit)
        return await self.jts.batch_refresh_user_scores(user_ids)

    # ==================== Feeds ====================

    async def generate_feed(self, user_id: str, limit: int = 50, offset: int = 0) -> List[FeedItem]:
        return await self.feed.generate_discovery_feed(user_id, limit, offset)

    async def get_feed(self, user_id: str, limit: int = 50, offset: int = 0) -> List[FeedItem]:
        return await self.feed.get_discovery_feed(user_id, limit, offset)

    async def get_blended_feed(self, user_id: str, limit: int = 50) -> List[FeedItem]:
        return await self.feed.get_blended_feed(user_id, limit)

    async def get_random_discovery(self, limit: int = 10) -> List[FeedItem]:
        return await self.feed.get_random_discovery(limit)

    # ==================== Explanations ====================

    async def log_and_explain_feed(self, user_id: str, items: List[FeedItem]) -> List[Optional[str]]:
        return await self.feed.log_feed(user_id, items)

    async def log_search_result(
        self,
        user_id: str,
        target_id: str,
        target_type: str,
        search_query: str,
        scores: Dict[str, float],
        ranking_position: Optional[int] = None,
        filters_applied: Optional[Dict] = None,
    ) -> Optional[str]:
        return await self.explainer.log_search_result(
            user_id, target_id, target_type, search_query, scores, ranking_position, filters_applied
        )

    async def log_recommendation(
        self, user_id: str, target_id: str, target_type: str, scores: Dict[str, float], reason: str
    ) -> Optional[str]:
        return await self.explainer.log_recommendation(user_id, target_id, target_type, scores, reason)

    async def get_logs_for(
        self, user_id: str, log_type: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[RankingLogRecord]:
        return await self.explainer.get_user_ranking_logs(user_id, log_type, limit, offset)

    async def get_target_logs(self, target_id: str, limit: int = 50) -> List[RankingLogRecord]:
        return await self.explainer.get_target_ranking_logs(target_id, limit)

    async def get_explanation(self, log_id: str) -> Optional[RankingLogRecord]:
        return await self.explainer.get_ranking_explanation(log_id)

    async def get_statistics(self, user_id: str) -> RankingStatistics:
        return await self.explainer.get_ranking_statistics(user_id)


def build_ranking_system(
    settings: Optional[Settings] = None,
    provider: Optional[EmbeddingProvider] = None,
    session_factory: Optional[async_sessionmaker] = None,
    use_redis: bool = True,
) -> RankingSystem:
    """
    Assemble a RankingSystem from settings.

    Args:
        settings: Settings (defaults to get_settings())
        provider: Embedding provider override (defaults to the configured one)
        session_factory: Session factory override; a new engine is created otherwise
        use_redis: Attach the Redis cache for embeddings and weights
    """
    settings = settings or get_settings()

    if session_factory is None:
        engine = create_async_engine(to_async_url(settings.database_url), echo=False)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    else:
        engine = session_factory.kw["bind"]

    cache = None
    if use_redis:
        cache = RankingCache(
            settings.redis_url,
            embedding_ttl=settings.embedding_cache_ttl_seconds,
            weights_ttl=settings.weights_cache_ttl_seconds,
        )

    sources = SourceRepository(session_factory)
    embeddings = EmbeddingRepository(session_factory)
    scores = ScoreRepository(session_factory)
    explainer = RankingExplainer(RankingLogRepository(session_factory))
    weights = WeightConfigProvider(
        ConfigRepository(session_factory),
        cache=cache,
        default_thresholds=MatchingThresholds(min_jts=settings.min_jts_threshold),
    )

    embedding_store = EmbeddingStore(
        embeddings,
        sources,
        provider or provider_from_settings(settings),
        cache=cache,
        model_name=settings.embedding_model,
        batch_concurrency=settings.batch_concurrency,
    )
    scorer = ComponentScorer(sources, embedding_store, settings=settings)
    jts = JTSEngine(
        sources,
        scores,
        scorer,
        weights,
        embedding_store=embedding_store,
        explainer=explainer,
        settings=settings,
    )
    feed = DiscoveryFeedEngine(sources, scores, embeddings, weights, explainer=explainer, settings=settings)

    logger.info(f"Ranking system ready (provider={settings.embedding_provider})")
    return RankingSystem(
        engine=engine,
        embedding_store=embedding_store,
        jts=jts,
        feed=feed,
        explainer=explainer,
        weights=weights,
        cache=cache,
    )
