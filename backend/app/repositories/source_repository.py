"""
Read access to application-owned records: profiles, jobs, videos and
engagement events. The ranking core never writes these tables.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select

from app.models import ContentItem as ContentRow
from app.models import EngagementEvent as EventRow
from app.models import Job as JobRow
from app.models import Profile as ProfileRow
from app.repositories.base import BaseRepository
from app.schemas import ContentItem, EngagementEvent, EngagementTotals, Job, Profile


class SourceRepository(BaseRepository):

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        async with self._reading("get_profile") as db:
            row = await db.get(ProfileRow, user_id)
            return Profile.model_validate(row) if row else None

    async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        async with self._reading("get_profiles") as db:
            result = await db.execute(select(ProfileRow).where(ProfileRow.user_id.in_(ids)))
            return {row.user_id: Profile.model_validate(row) for row in result.scalars()}

    async def list_freelancers(
        self,
        onboarded_only: bool = True,
        limit: Optional[int] = None,
    ) -> List[Profile]:
        """Freelancer profiles in a stable (user_id) order."""
        stmt = select(ProfileRow).where(ProfileRow.role == "freelancer").order_by(ProfileRow.user_id)
        if onboarded_only:
            stmt = stmt.where(ProfileRow.onboarding_completed.is_(True))
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._reading("list_freelancers") as db:
            result = await db.execute(stmt)
            return [Profile.model_validate(row) for row in result.scalars()]

    async def get_job(self, job_id: str) -> Optional[Job]:
        async with self._reading("get_job") as db:
            row = await db.get(JobRow, job_id)
            return Job.model_validate(row) if row else None

    async def get_content(self, content_id: str) -> Optional[ContentItem]:
        async with self._reading("get_content") as db:
            row = await db.get(ContentRow, content_id)
            return ContentItem.model_validate(row) if row else None

    async def get_contents(self, content_ids: Iterable[str]) -> Dict[str, ContentItem]:
        ids = list(set(content_ids))
        if not ids:
            return {}
        async with self._reading("get_contents") as db:
            result = await db.execute(select(ContentRow).where(ContentRow.id.in_(ids)))
            return {row.id: ContentItem.model_validate(row) for row in result.scalars()}

    async def list_recent_content(
        self,
        limit: int,
        offset: int = 0,
        since: Optional[datetime] = None,
    ) -> List[ContentItem]:
        """Newest content first."""
        stmt = select(ContentRow).order_by(ContentRow.created_at.desc(), ContentRow.id)
        if since is not None:
            stmt = stmt.where(ContentRow.created_at >= since)
        stmt = stmt.offset(offset).limit(limit)
        async with self._reading("list_recent_content") as db:
            result = await db.execute(stmt)
            return [ContentItem.model_validate(row) for row in result.scalars()]

    async def get_latest_post_time(self, user_id: str) -> Optional[datetime]:
        async with self._reading("get_latest_post_time") as db:
            result = await db.execute(
                select(ContentRow)
                .where(ContentRow.user_id == user_id)
                .order_by(ContentRow.created_at.desc())
                .limit(1)
            )
            row = result.scalars().first()
            return ContentItem.model_validate(row).created_at if row else None

    async def list_events_on_creator_content(self, creator_id: str, since: datetime) -> List[EngagementEvent]:
        """Events targeting any content owned by creator_id since the given time."""
        stmt = (
            select(EventRow)
            .join(ContentRow, ContentRow.id == EventRow.target_id)
            .where(ContentRow.user_id == creator_id, EventRow.created_at >= since)
        )
        async with self._reading("list_events_on_creator_content") as db:
            result = await db.execute(stmt)
            return [EngagementEvent.model_validate(row) for row in result.scalars()]

    async def get_content_totals(self, user_id: str) -> EngagementTotals:
        """Lifetime counter totals across a creator's content."""
        stmt = select(
            func.coalesce(func.sum(ContentRow.views_count), 0),
            func.coalesce(func.sum(ContentRow.likes_count), 0),
            func.coalesce(func.sum(ContentRow.comments_count), 0),
            func.coalesce(func.sum(ContentRow.shares_count), 0),
        ).where(ContentRow.user_id == user_id)
        async with self._reading("get_content_totals") as db:
            views, likes, comments, shares = (await db.execute(stmt)).one()
            return EngagementTotals(
                views=int(views), likes=int(likes), comments=int(comments), shares=int(shares)
            )

    async def list_engaged_content_ids(self, user_id: str, since: datetime) -> Set[str]:
        """Content the user interacted with since the given time."""
        stmt = select(EventRow.target_id).where(EventRow.user_id == user_id, EventRow.created_at >= since)
        async with self._reading("list_engaged_content_ids") as db:
            result = await db.execute(stmt)
            return set(result.scalars())

    async def list_engaged_creator_ids(self, user_id: str, since: datetime) -> Set[str]:
        """Creators whose content the user interacted with since the given time."""
        stmt = (
            select(ContentRow.user_id)
            .join(EventRow, EventRow.target_id == ContentRow.id)
            .where(EventRow.user_id == user_id, EventRow.created_at >= since)
            .distinct()
        )
        async with self._reading("list_engaged_creator_ids") as db:
            result = await db.execute(stmt)
            return set(result.scalars())
