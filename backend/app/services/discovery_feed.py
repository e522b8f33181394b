"""
Discovery Feed Engine - Personalised content ranking

Scores recent content for a viewer on five signals (each 0-100):

    | Signal     | Default weight | Source                                        |
    |------------|----------------|-----------------------------------------------|
    | Relevance  | 0.30           | 0.7 semantic similarity + 0.3 past engagement |
    | Engagement | 0.25           | (likes + 2*comments) / views, scaled x10      |
    | Freshness  | 0.20           | step decay on content age                     |
    | Diversity  | 0.15           | 80 for creators not seen in 7 days, else 40   |
    | Local      | 0.10           | same city or haversine distance tiers         |

Ranking keeps at most two items per creator. Feeds are cached per viewer
for one hour; a cache miss serves a freshly computed page and refreshes the
cache in a background task.
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from app.config import Settings, get_settings
from app.repositories import EmbeddingRepository, ScoreRepository, SourceRepository
from app.schemas import (
    ContentItem,
    FeedCacheEntry,
    FeedCacheItem,
    FeedItem,
    FeedScores,
    FeedWeights,
    Profile,
)
from app.schemas.base import utc_now
from app.services.errors import DependencyUnavailable, PersistenceFailure
from app.services.geo import NEUTRAL_LOCATION_SCORE, proximity_score
from app.services.ranking_explainer import RankingExplainer, short_feed_explanation
from app.services.score_components import hours_since
from app.services.vector_math import clamp, cosine_similarity, similarity_to_score

logger = logging.getLogger(__name__)

FEED_CACHE_VERSION = 1
CANDIDATE_MULTIPLIER = 3
MAX_ITEMS_PER_CREATOR = 2

SEMANTIC_RELEVANCE_WEIGHT = 0.7
BEHAVIOURAL_RELEVANCE_WEIGHT = 0.3
ENGAGED_BEHAVIOURAL_SCORE = 70.0
NEUTRAL_BEHAVIOURAL_SCORE = 50.0
NEUTRAL_SEMANTIC_SCORE = 50.0
RELEVANCE_WINDOW_DAYS = 30

DIVERSITY_WINDOW_DAYS = 7
SEEN_CREATOR_DIVERSITY = 40.0
NEW_CREATOR_DIVERSITY = 80.0

TRENDING_MAX_AGE_HOURS = 48
TRENDING_VELOCITY = 100

# (max age hours, score)
FRESHNESS_STEPS = [
    (6, 100.0),
    (24, 90.0),
    (72, 70.0),
    (168, 50.0),
    (720, 30.0),
]
STALE_FRESHNESS = 10.0

RANDOM_DISCOVERY_WINDOW_DAYS = 30
RANDOM_DISCOVERY_POOL = 100
RANDOM_DISCOVERY_EXPLANATION = "Random discovery to explore new content"


# ==================== Signals ====================

def freshness_score(created_at: datetime, now: datetime) -> float:
    age = hours_since(created_at, now)
    for max_hours, score in FRESHNESS_STEPS:
        if age < max_hours:
            return score
    return STALE_FRESHNESS


def content_engagement_score(content: ContentItem) -> float:
    """Engagement rate (likes + 2 * comments per view) as a percentage, scaled up 10x and clamped to 0-100."""
    if content.views_count <= 0:
        return 0.0
    rate = (content.likes_count + content.comments_count * 2) / content.views_count * 100
    return clamp(rate * 10)


def is_trending(content: ContentItem, now: datetime) -> bool:
    age = hours_since(content.created_at, now)
    if age >= TRENDING_MAX_AGE_HOURS:
        return False
    velocity = (content.likes_count + content.views_count) / (age + 1)
    return velocity > TRENDING_VELOCITY


def relevance_score(semantic_score: Optional[float], engaged_before: bool) -> float:
    semantic = NEUTRAL_SEMANTIC_SCORE if semantic_score is None else semantic_score
    behavioural = ENGAGED_BEHAVIOURAL_SCORE if engaged_before else NEUTRAL_BEHAVIOURAL_SCORE
    return clamp(semantic * SEMANTIC_RELEVANCE_WEIGHT + behavioural * BEHAVIOURAL_RELEVANCE_WEIGHT)


def diversity_score(creator_id: str, recently_seen_creators: Set[str]) -> float:
    return SEEN_CREATOR_DIVERSITY if creator_id in recently_seen_creators else NEW_CREATOR_DIVERSITY


def local_score(viewer: Optional[Profile], creator: Optional[Profile]) -> Tuple[float, bool]:
    """
    Returns (score, is_local).

    Same city (case-insensitive) is fully local; otherwise distance tiers
    apply, and missing profiles or coordinates are neutral.
    """
    if viewer is None or creator is None:
        return NEUTRAL_LOCATION_SCORE, False

    if viewer.location_city and creator.location_city:
        if viewer.location_city.strip().lower() == creator.location_city.strip().lower():
            return 100.0, True

    return proximity_score(viewer.latitude, viewer.longitude, creator.latitude, creator.longitude)


def weighted_total(scores: Dict[str, float], weights: FeedWeights) -> float:
    return clamp(
        scores["relevance"] * weights.relevance
        + scores["engagement"] * weights.engagement
        + scores["freshness"] * weights.freshness
        + scores["diversity"] * weights.diversity
        + scores["local"] * weights.local
    )


def apply_diversity_cap(items: Iterable[FeedItem], max_per_creator: int = MAX_ITEMS_PER_CREATOR) -> List[FeedItem]:
    """Drop an item when its creator already has max_per_creator items kept ahead of it."""
    kept: List[FeedItem] = []
    per_creator: Dict[Optional[str], int] = {}
    for item in items:
        count = per_creator.get(item.creator_id, 0)
        if count >= max_per_creator:
            continue
        per_creator[item.creator_id] = count + 1
        kept.append(item)
    return kept


def ranking_key(item: FeedItem):
    """Highest score first; ties go to newer content, then content id."""
    created = item.created_at.timestamp() if item.created_at else 0.0
    return (-item.total_score, -created, item.content_id)


def interleave(local: List[FeedItem], global_: List[FeedItem], limit: int) -> List[FeedItem]:
    blended: List[FeedItem] = []
    for i in range(max(len(local), len(global_))):
        if i < len(local):
            blended.append(local[i])
        if i < len(global_):
            blended.append(global_[i])
    return blended[:limit]


# ==================== Engine ====================

class DiscoveryFeedEngine:
    """
    Generates, caches and serves discovery feeds.

    Attributes:
        sources: Profiles, content and engagement events
        scores: Feed cache storage
        embeddings: Profile and content embedding storage
        weights: Weight provider
        explainer: Optional RankingExplainer for audit logging
    """

    def __init__(
        self,
        sources: SourceRepository,
        scores: ScoreRepository,
        embeddings: EmbeddingRepository,
        weights,
        explainer: Optional[RankingExplainer] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
    ):
        self.sources = sources
        self.scores = scores
        self.embeddings = embeddings
        self.weights = weights
        self.explainer = explainer
        self.settings = settings or get_settings()
        self.clock = clock
        self.rng = rng or random.Random()
        self._background_tasks: Set[asyncio.Task] = set()

    # ==================== Context Fetches ====================

    async def _safe(self, coro, default, description: str):
        try:
            return await coro
        except DependencyUnavailable as e:
            logger.warning(f"Feed {description} unavailable: {e}")
            return default

    async def _viewer_vector(self, user_id: str) -> Optional[List[float]]:
        record = await self.embeddings.get_profile_embedding(user_id)
        return record.combined_embedding if record else None

    # ==================== Generation ====================

    async def generate_discovery_feed(self, user_id: str, limit: int = 50, offset: int = 0) -> List[FeedItem]:
        """
        Rank up to limit items for a viewer.

        Fetches limit * 3 of the newest candidates starting at offset, scores
        them, applies the per-creator cap and truncates.
        """
        now = self.clock()
        relevance_since = now - timedelta(days=RELEVANCE_WINDOW_DAYS)
        diversity_since = now - timedelta(days=DIVERSITY_WINDOW_DAYS)

        weights, candidates, viewer, viewer_vector, engaged_content, seen_creators = await asyncio.gather(
            self.weights.get_feed_weights(),
            self.sources.list_recent_content(limit * CANDIDATE_MULTIPLIER, offset=offset),
            self._safe(self.sources.get_profile(user_id), None, "viewer profile"),
            self._safe(self._viewer_vector(user_id), None, "viewer embedding"),
            self._safe(self.sources.list_engaged_content_ids(user_id, relevance_since), set(), "viewer history"),
            self._safe(self.sources.list_engaged_creator_ids(user_id, diversity_since), set(), "viewer creators"),
        )
        if not candidates:
            return []

        creators, content_vectors = await asyncio.gather(
            self._safe(self.sources.get_profiles(c.user_id for c in candidates), {}, "creator profiles"),
            self._safe(self.embeddings.get_content_embeddings(c.id for c in candidates), {}, "content embeddings"),
        )

        items = []
        for content in candidates:
            semantic = None
            content_embedding = content_vectors.get(content.id)
            if viewer_vector and content_embedding and content_embedding.combined_embedding:
                semantic = similarity_to_score(cosine_similarity(viewer_vector, content_embedding.combined_embedding))

            local, is_local = local_score(viewer, creators.get(content.user_id))
            values = {
                "relevance": relevance_score(semantic, content.id in engaged_content),
                "engagement": content_engagement_score(content),
                "freshness": freshness_score(content.created_at, now),
                "diversity": diversity_score(content.user_id, seen_creators),
                "local": local,
            }
            scores = FeedScores(total=weighted_total(values, weights), **values)
            trending = is_trending(content, now)
            items.append(
                FeedItem(
                    content_id=content.id,
                    content_type=content.content_type,
                    creator_id=content.user_id,
                    created_at=content.created_at,
                    scores=scores,
                    total_score=scores.total,
                    is_local=is_local,
                    is_trending=trending,
                    explanation=short_feed_explanation(scores, is_local, trending),
                    content=content,
                )
            )

        items.sort(key=ranking_key)
        return apply_diversity_cap(items)[:limit]

    # ==================== Caching ====================

    async def cache_discovery_feed(self, user_id: str) -> FeedCacheEntry:
        """
        Generate a full-size feed and store it as the viewer's cache.

        A failed cache write is logged, not raised.
        """
        feed = await self.generate_discovery_feed(user_id, limit=self.settings.feed_cache_size)
        now = self.clock()
        entry = FeedCacheEntry(
            user_id=user_id,
            feed_data=[
                FeedCacheItem(
                    content_id=item.content_id,
                    content_type=item.content_type,
                    total_score=item.total_score,
                    is_local=item.is_local,
                    is_trending=item.is_trending,
                )
                for item in feed
            ],
            generated_at=now,
            expires_at=now + timedelta(minutes=self.settings.feed_cache_ttl_minutes),
            version=FEED_CACHE_VERSION,
        )
        try:
            await self.scores.upsert_feed_cache(entry)
        except PersistenceFailure as e:
            logger.error(f"Failed to cache feed for {user_id}: {e}")
        return entry

    def _on_refresh_done(self, user_id: str, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background feed refresh failed for {user_id}: {error}")

    def schedule_cache_refresh(self, user_id: str) -> asyncio.Task:
        """Refresh the viewer's cache in a tracked background task."""
        task = asyncio.create_task(self.cache_discovery_feed(user_id))
        self._background_tasks.add(task)
        task.add_done_callback(lambda t: self._on_refresh_done(user_id, t))
        return task

    async def wait_for_background_tasks(self) -> None:
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def _hydrate(self, entries: List[FeedCacheItem]) -> List[FeedItem]:
        contents = await self._safe(
            self.sources.get_contents(e.content_id for e in entries if e.content_type == "video"),
            {},
            "content details",
        )
        items = []
        for entry in entries:
            content = contents.get(entry.content_id)
            items.append(
                FeedItem(
                    content_id=entry.content_id,
                    content_type=entry.content_type,
                    creator_id=content.user_id if content else None,
                    created_at=content.created_at if content else None,
                    total_score=entry.total_score,
                    is_local=entry.is_local,
                    is_trending=entry.is_trending,
                    content=content,
                )
            )
        return items

    async def get_discovery_feed(self, user_id: str, limit: int = 50, offset: int = 0) -> List[FeedItem]:
        """
        Serve a feed page, from cache when it has not expired.

        On a miss the page is computed directly and the cache is refreshed
        in the background.
        """
        cached = await self._safe(self.scores.get_feed_cache(user_id), None, "cache")
        if cached and cached.version == FEED_CACHE_VERSION and cached.expires_at > self.clock():
            return await self._hydrate(cached.feed_data[offset:offset + limit])

        feed = await self.generate_discovery_feed(user_id, limit, offset)
        self.schedule_cache_refresh(user_id)
        return feed

    async def get_blended_feed(self, user_id: str, limit: int = 50) -> List[FeedItem]:
        """Half local, half global, interleaved local first."""
        local_limit = limit // 2
        global_limit = limit - local_limit

        feed = await self.generate_discovery_feed(user_id, limit)
        local = [item for item in feed if item.is_local][:local_limit]
        global_ = [item for item in feed if not item.is_local][:global_limit]
        return interleave(local, global_, limit)

    async def get_random_discovery(self, limit: int = 10) -> List[FeedItem]:
        """
        Uniform sample of recent content with placeholder scores.

        Used for exploration; these items bypass ranking.
        """
        now = self.clock()
        pool = await self.sources.list_recent_content(
            RANDOM_DISCOVERY_POOL, since=now - timedelta(days=RANDOM_DISCOVERY_WINDOW_DAYS)
        )
        picked = self.rng.sample(pool, min(limit, len(pool)))

        items = []
        for content in picked:
            scores = FeedScores(
                relevance=50.0,
                engagement=50.0,
                freshness=freshness_score(content.created_at, now),
                diversity=100.0,
                local=50.0,
                total=60.0,
            )
            items.append(
                FeedItem(
                    content_id=content.id,
                    content_type=content.content_type,
                    creator_id=content.user_id,
                    created_at=content.created_at,
                    scores=scores,
                    total_score=scores.total,
                    explanation=RANDOM_DISCOVERY_EXPLANATION,
                    content=content,
                )
            )
        return items

    async def log_feed(self, user_id: str, items: List[FeedItem]) -> List[Optional[str]]:
        """Write each scored item to the ranking log (best effort)."""
        if self.explainer is None:
            return []
        weights = await self.weights.get_feed_weights()
        return await asyncio.gather(*(
            self.explainer.log_feed_ranking(
                user_id,
                item.content_id,
                item.content_type,
                item.scores,
                weights,
                ranking_position=i + 1,
                is_local=item.is_local,
                is_trending=item.is_trending,
            )
            for i, item in enumerate(items)
            if item.scores is not None
        ))
