"""
Cached score snapshots and discovery feed caches.

All writes are upserts keyed by user (general score, feed cache) or by the
(job_id, user_id) pair (job-specific score).
"""

from typing import Optional

from sqlalchemy import select

from app.models import FeedCache, JobMatchJTS, UserJTSScore
from app.repositories.base import BaseRepository
from app.schemas import FeedCacheEntry, ScoreSnapshot


class ScoreRepository(BaseRepository):

    async def get_user_score(self, user_id: str) -> Optional[ScoreSnapshot]:
        async with self._reading("get_user_score") as db:
            row = await db.get(UserJTSScore, user_id)
            if row is None:
                return None
            return ScoreSnapshot(
                user_id=row.user_id,
                skill_match=row.skill_match_avg,
                engagement=row.engagement_score,
                credibility=row.credibility_score,
                recency=row.recency_boost,
                total_jts=row.total_jts,
                total_views=row.total_views,
                total_likes=row.total_likes,
                total_comments=row.total_comments,
                total_shares=row.total_shares,
                calculated_at=row.updated_at,
            )

    async def upsert_user_score(self, snapshot: ScoreSnapshot) -> None:
        async with self._writing("upsert_user_score") as db:
            values = {
                "user_id": snapshot.user_id,
                "skill_match_avg": snapshot.skill_match,
                "engagement_score": snapshot.engagement,
                "credibility_score": snapshot.credibility,
                "recency_boost": snapshot.recency,
                "total_jts": snapshot.total_jts,
                "total_views": snapshot.total_views,
                "total_likes": snapshot.total_likes,
                "total_comments": snapshot.total_comments,
                "total_shares": snapshot.total_shares,
                "updated_at": snapshot.calculated_at,
            }
            await self._upsert(db, UserJTSScore, values, key=["user_id"])

    async def get_job_match(self, user_id: str, job_id: str) -> Optional[ScoreSnapshot]:
        async with self._reading("get_job_match") as db:
            result = await db.execute(
                select(JobMatchJTS).where(JobMatchJTS.job_id == job_id, JobMatchJTS.user_id == user_id)
            )
            row = result.scalars().first()
            if row is None:
                return None
            return ScoreSnapshot(
                user_id=row.user_id,
                job_id=row.job_id,
                skill_match=row.skill_match_score,
                engagement=row.engagement_score,
                credibility=row.credibility_score,
                recency=row.recency_boost,
                total_jts=row.total_jts,
                location_score=row.location_score,
                embedding_similarity=row.embedding_similarity,
                calculated_at=row.calculated_at,
            )

    async def upsert_job_match(self, snapshot: ScoreSnapshot) -> None:
        if snapshot.job_id is None:
            raise ValueError("Job-specific snapshot requires job_id")
        async with self._writing("upsert_job_match") as db:
            values = {
                "job_id": snapshot.job_id,
                "user_id": snapshot.user_id,
                "skill_match_score": snapshot.skill_match,
                "engagement_score": snapshot.engagement,
                "credibility_score": snapshot.credibility,
                "recency_boost": snapshot.recency,
                "total_jts": snapshot.total_jts,
                "location_score": snapshot.location_score,
                "embedding_similarity": snapshot.embedding_similarity,
                "calculated_at": snapshot.calculated_at,
            }
            await self._upsert(db, JobMatchJTS, values, key=["job_id", "user_id"])

    async def get_feed_cache(self, user_id: str) -> Optional[FeedCacheEntry]:
        async with self._reading("get_feed_cache") as db:
            row = await db.get(FeedCache, user_id)
            return FeedCacheEntry.model_validate(row) if row else None

    async def upsert_feed_cache(self, entry: FeedCacheEntry) -> None:
        async with self._writing("upsert_feed_cache") as db:
            values = {
                "user_id": entry.user_id,
                "feed_data": [item.model_dump() for item in entry.feed_data],
                "generated_at": entry.generated_at,
                "expires_at": entry.expires_at,
                "version": entry.version,
            }
            await self._upsert(db, FeedCache, values, key=["user_id"])
