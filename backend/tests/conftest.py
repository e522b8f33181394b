"""
Shared fixtures for ranking tests.

InMemoryStore implements the repository methods the engines call, so engine
tests run without a database. Individual methods can be replaced with
AsyncMock(side_effect=...) to simulate failures.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest

from app.config import Settings
from app.schemas import (
    ContentEmbeddingRecord,
    ContentItem,
    EngagementEvent,
    EngagementTotals,
    FeedCacheEntry,
    Job,
    JobEmbeddingRecord,
    Profile,
    ProfileEmbeddingRecord,
    RankingLogRecord,
    ScoreSnapshot,
    WeightConfig,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    """Settable clock for TTL tests."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryStore:
    """Source, embedding, score, config and ranking log storage in dicts."""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.jobs: Dict[str, Job] = {}
        self.contents: Dict[str, ContentItem] = {}
        self.events: List[EngagementEvent] = []
        self.profile_embeddings: Dict[str, ProfileEmbeddingRecord] = {}
        self.job_embeddings: Dict[str, JobEmbeddingRecord] = {}
        self.content_embeddings: Dict[str, ContentEmbeddingRecord] = {}
        self.skill_embeddings: Dict[str, List[float]] = {}
        self.user_scores: Dict[str, ScoreSnapshot] = {}
        self.job_matches: Dict[tuple, ScoreSnapshot] = {}
        self.feed_caches: Dict[str, FeedCacheEntry] = {}
        self.configs: List[WeightConfig] = []
        self.logs: List[RankingLogRecord] = []

    # ---- seeding ----

    def add_profile(self, user_id: str, **fields) -> Profile:
        fields.setdefault("onboarding_completed", True)
        profile = Profile(user_id=user_id, **fields)
        self.profiles[user_id] = profile
        return profile

    def add_job(self, job_id: str, **fields) -> Job:
        job = Job(id=job_id, **fields)
        self.jobs[job_id] = job
        return job

    def add_content(self, content_id: str, user_id: str, **fields) -> ContentItem:
        content = ContentItem(id=content_id, user_id=user_id, **fields)
        self.contents[content_id] = content
        return content

    def add_event(self, user_id: str, target_id: str, event_type: str, created_at: datetime) -> None:
        self.events.append(
            EngagementEvent(user_id=user_id, target_id=target_id, event_type=event_type, created_at=created_at)
        )

    # ---- sources ----

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.profiles.get(user_id)

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        return {uid: self.profiles[uid] for uid in set(user_ids) if uid in self.profiles}

    async def list_freelancers(self, onboarded_only: bool = True, limit: Optional[int] = None) -> List[Profile]:
        found = sorted(
            (
                p for p in self.profiles.values()
                if p.role == "freelancer" and (p.onboarding_completed or not onboarded_only)
            ),
            key=lambda p: p.user_id,
        )
        return found[:limit] if limit is not None else found

    async def get_job(self, job_id: str) -> Optional[Job]:
        return self.jobs.get(job_id)

    async def get_content(self, content_id: str) -> Optional[ContentItem]:
        return self.contents.get(content_id)

    async def get_contents(self, content_ids: Iterable[str]) -> Dict[str, ContentItem]:
        return {cid: self.contents[cid] for cid in set(content_ids) if cid in self.contents}

    async def list_recent_content(
        self, limit: int, offset: int = 0, since: Optional[datetime] = None
    ) -> List[ContentItem]:
        items = [c for c in self.contents.values() if since is None or c.created_at >= since]
        items.sort(key=lambda c: c.created_at, reverse=True)
        return items[offset:offset + limit]

    async def get_latest_post_time(self, user_id: str) -> Optional[datetime]:
        times = [c.created_at for c in self.contents.values() if c.user_id == user_id]
        return max(times) if times else None

    async def list_events_on_creator_content(self, creator_id: str, since: datetime) -> List[EngagementEvent]:
        owned = {c.id for c in self.contents.values() if c.user_id == creator_id}
        return [e for e in self.events if e.target_id in owned and e.created_at >= since]

    async def get_content_totals(self, user_id: str) -> EngagementTotals:
        owned = [c for c in self.contents.values() if c.user_id == user_id]
        return EngagementTotals(
            views=sum(c.views_count for c in owned),
            likes=sum(c.likes_count for c in owned),
            comments=sum(c.comments_count for c in owned),
            shares=sum(c.shares_count for c in owned),
        )

    async def list_engaged_content_ids(self, user_id: str, since: datetime) -> set:
        return {e.target_id for e in self.events if e.user_id == user_id and e.created_at >= since}

    async def list_engaged_creator_ids(self, user_id: str, since: datetime) -> set:
        engaged = await self.list_engaged_content_ids(user_id, since)
        return {self.contents[cid].user_id for cid in engaged if cid in self.contents}

    # ---- embeddings ----

    async def get_profile_embedding(self, user_id: str) -> Optional[ProfileEmbeddingRecord]:
        return self.profile_embeddings.get(user_id)

    async def list_profile_embeddings(self, exclude_user_id: Optional[str] = None) -> List[ProfileEmbeddingRecord]:
        return [r for uid, r in self.profile_embeddings.items() if uid != exclude_user_id]

    async def upsert_profile_embedding(self, record: ProfileEmbeddingRecord) -> None:
        self.profile_embeddings[record.user_id] = record

    async def get_job_embedding(self, job_id: str) -> Optional[JobEmbeddingRecord]:
        return self.job_embeddings.get(job_id)

    async def upsert_job_embedding(self, record: JobEmbeddingRecord) -> None:
        self.job_embeddings[record.job_id] = record

    async def get_content_embedding(self, content_id: str) -> Optional[ContentEmbeddingRecord]:
        return self.content_embeddings.get(content_id)

    async def get_content_embeddings(self, content_ids: Iterable[str]) -> Dict[str, ContentEmbeddingRecord]:
        return {cid: self.content_embeddings[cid] for cid in set(content_ids) if cid in self.content_embeddings}

    async def upsert_content_embedding(self, record: ContentEmbeddingRecord) -> None:
        self.content_embeddings[record.content_id] = record

    async def get_skill_embedding(self, skill_text: str) -> Optional[List[float]]:
        return self.skill_embeddings.get(skill_text.strip().lower())

    async def has_skill_embedding(self, skill_text: str) -> bool:
        return skill_text.strip().lower() in self.skill_embeddings

    async def insert_skill_embedding(self, skill_text: str, embedding: List[float]) -> None:
        self.skill_embeddings[skill_text.strip().lower()] = embedding

    # ---- scores ----

    async def get_user_score(self, user_id: str) -> Optional[ScoreSnapshot]:
        return self.user_scores.get(user_id)

    async def upsert_user_score(self, snapshot: ScoreSnapshot) -> None:
        self.user_scores[snapshot.user_id] = snapshot

    async def get_job_match(self, user_id: str, job_id: str) -> Optional[ScoreSnapshot]:
        return self.job_matches.get((user_id, job_id))

    async def upsert_job_match(self, snapshot: ScoreSnapshot) -> None:
        if snapshot.job_id is None:
            raise ValueError("Job match snapshots require a job_id")
        self.job_matches[(snapshot.user_id, snapshot.job_id)] = snapshot

    async def get_feed_cache(self, user_id: str) -> Optional[FeedCacheEntry]:
        return self.feed_caches.get(user_id)

    async def upsert_feed_cache(self, entry: FeedCacheEntry) -> None:
        self.feed_caches[entry.user_id] = entry

    # ---- algorithm config ----

    async def get_active(self, config_name: str) -> Optional[WeightConfig]:
        for config in self.configs:
            if config.config_name == config_name and config.is_active:
                return config
        return None

    async def list_versions(self, config_name: str) -> List[WeightConfig]:
        return sorted(
            (c for c in self.configs if c.config_name == config_name),
            key=lambda c: c.version,
            reverse=True,
        )

    async def save(self, config: WeightConfig) -> WeightConfig:
        if config.is_active:
            for existing in self.configs:
                if existing.config_name == config.config_name:
                    existing.is_active = False
        saved = config.model_copy(update={"id": str(uuid.uuid4())})
        self.configs.append(saved)
        return saved

    async def activate(self, config_name: str, version: int) -> bool:
        versions = [c for c in self.configs if c.config_name == config_name]
        if not any(c.version == version for c in versions):
            return False
        for config in versions:
            config.is_active = config.version == version
        return True

    # ---- ranking logs ----

    async def insert(self, record: RankingLogRecord) -> str:
        saved = record.model_copy(update={"id": str(uuid.uuid4())})
        self.logs.append(saved)
        return saved.id

    async def get(self, log_id: str) -> Optional[RankingLogRecord]:
        for log in self.logs:
            if log.id == log_id:
                return log
        return None

    async def list_for_user(
        self, user_id: str, log_type: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[RankingLogRecord]:
        found = [
            log for log in reversed(self.logs)
            if log.user_id == user_id and (log_type is None or log.log_type == log_type)
        ]
        return found[offset:offset + limit]

    async def list_for_target(self, target_id: str, limit: int = 50) -> List[RankingLogRecord]:
        return [log for log in reversed(self.logs) if log.target_id == target_id][:limit]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def settings():
    return Settings(
        embedding_provider="mock",
        embedding_dimensions=8,
        database_url="sqlite:///:memory:",
        _env_file=None,
    )
