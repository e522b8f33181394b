from typing import List, Optional

from sqlalchemy import select

from app.models import RankingLog
from app.repositories.base import BaseRepository
from app.schemas import RankingLogRecord


class RankingLogRepository(BaseRepository):
    """Insert-only audit log of ranking decisions."""

    async def insert(self, record: RankingLogRecord) -> str:
        async with self._writing("insert_ranking_log") as db:
            row = RankingLog(
                user_id=record.user_id,
                log_type=record.log_type,
                target_id=record.target_id,
                target_type=record.target_type,
                score_components=record.score_components,
                total_score=record.total_score,
                ranking_position=record.ranking_position,
                explanation_text=record.explanation_text,
                factors=record.factors.model_dump(),
                search_query=record.search_query,
                filters_applied=record.filters_applied,
                created_at=record.created_at,
            )
            db.add(row)
            await db.flush()
            return row.id

    async def get(self, log_id: str) -> Optional[RankingLogRecord]:
        async with self._reading("get_ranking_log") as db:
            row = await db.get(RankingLog, log_id)
            return RankingLogRecord.model_validate(row) if row else None

    async def list_for_user(
        self,
        user_id: str,
        log_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[RankingLogRecord]:
        """Newest first."""
        stmt = select(RankingLog).where(RankingLog.user_id == user_id)
        if log_type:
            stmt = stmt.where(RankingLog.log_type == log_type)
        stmt = stmt.order_by(RankingLog.created_at.desc()).offset(offset).limit(limit)
        async with self._reading("list_ranking_logs_for_user") as db:
            result = await db.execute(stmt)
            return [RankingLogRecord.model_validate(row) for row in result.scalars()]

    async def list_for_target(self, target_id: str, limit: int = 50) -> List[RankingLogRecord]:
        stmt = (
            select(RankingLog)
            .where(RankingLog.target_id == target_id)
            .order_by(RankingLog.created_at.desc())
            .limit(limit)
        )
        async with self._reading("list_ranking_logs_for_target") as db:
            result = await db.execute(stmt)
            return [RankingLogRecord.model_validate(row) for row in result.scalars()]
