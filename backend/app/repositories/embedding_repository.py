"""
Storage for profile, job, content and skill embeddings.

Entity embeddings are upserted by entity id. Skill embeddings are insert-only
and keyed by lower-cased skill text.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select

from app.models import ContentEmbedding, JobEmbedding, ProfileEmbedding, SkillEmbedding
from app.repositories.base import BaseRepository
from app.schemas import ContentEmbeddingRecord, JobEmbeddingRecord, ProfileEmbeddingRecord


class EmbeddingRepository(BaseRepository):

    # ==================== Profiles ====================

    async def get_profile_embedding(self, user_id: str) -> Optional[ProfileEmbeddingRecord]:
        async with self._reading("get_profile_embedding") as db:
            row = await db.get(ProfileEmbedding, user_id)
            return ProfileEmbeddingRecord.model_validate(row) if row else None

    async def list_profile_embeddings(self, exclude_user_id: Optional[str] = None) -> List[ProfileEmbeddingRecord]:
        stmt = select(ProfileEmbedding).where(ProfileEmbedding.combined_embedding.is_not(None))
        if exclude_user_id:
            stmt = stmt.where(ProfileEmbedding.user_id != exclude_user_id)
        async with self._reading("list_profile_embeddings") as db:
            result = await db.execute(stmt)
            return [ProfileEmbeddingRecord.model_validate(row) for row in result.scalars()]

    async def upsert_profile_embedding(self, record: ProfileEmbeddingRecord) -> None:
        async with self._writing("upsert_profile_embedding") as db:
            values = {
                "user_id": record.user_id,
                "skills_embedding": record.skills_embedding,
                "bio_embedding": record.bio_embedding,
                "combined_embedding": record.combined_embedding,
                "updated_at": record.updated_at,
            }
            await self._upsert(db, ProfileEmbedding, values, key=["user_id"])

    # ==================== Jobs ====================

    async def get_job_embedding(self, job_id: str) -> Optional[JobEmbeddingRecord]:
        async with self._reading("get_job_embedding") as db:
            row = await db.get(JobEmbedding, job_id)
            return JobEmbeddingRecord.model_validate(row) if row else None

    async def upsert_job_embedding(self, record: JobEmbeddingRecord) -> None:
        async with self._writing("upsert_job_embedding") as db:
            values = {
                "job_id": record.job_id,
                "requirements_embedding": record.requirements_embedding,
                "description_embedding": record.description_embedding,
                "combined_embedding": record.combined_embedding,
                "updated_at": record.updated_at,
            }
            await self._upsert(db, JobEmbedding, values, key=["job_id"])

    # ==================== Content ====================

    async def get_content_embedding(self, content_id: str) -> Optional[ContentEmbeddingRecord]:
        async with self._reading("get_content_embedding") as db:
            row = await db.get(ContentEmbedding, content_id)
            return ContentEmbeddingRecord.model_validate(row) if row else None

    async def get_content_embeddings(self, content_ids: Iterable[str]) -> Dict[str, ContentEmbeddingRecord]:
        ids = list(set(content_ids))
        if not ids:
            return {}
        async with self._reading("get_content_embeddings") as db:
            result = await db.execute(select(ContentEmbedding).where(ContentEmbedding.content_id.in_(ids)))
            return {row.content_id: ContentEmbeddingRecord.model_validate(row) for row in result.scalars()}

    async def upsert_content_embedding(self, record: ContentEmbeddingRecord) -> None:
        async with self._writing("upsert_content_embedding") as db:
            values = {
                "content_id": record.content_id,
                "content_type": record.content_type,
                "text_embedding": record.text_embedding,
                "tags_embedding": record.tags_embedding,
                "combined_embedding": record.combined_embedding,
                "updated_at": record.updated_at,
            }
            await self._upsert(db, ContentEmbedding, values, key=["content_id"])

    # ==================== Skills ====================

    async def get_skill_embedding(self, skill_text: str) -> Optional[List[float]]:
        async with self._reading("get_skill_embedding") as db:
            result = await db.execute(
                select(SkillEmbedding).where(SkillEmbedding.skill_text == skill_text.strip().lower())
            )
            row = result.scalars().first()
            return row.embedding if row else None

    async def has_skill_embedding(self, skill_text: str) -> bool:
        async with self._reading("has_skill_embedding") as db:
            result = await db.execute(
                select(SkillEmbedding.id).where(SkillEmbedding.skill_text == skill_text.strip().lower())
            )
            return result.first() is not None

    async def insert_skill_embedding(self, skill_text: str, embedding: List[float]) -> None:
        async with self._writing("insert_skill_embedding") as db:
            values = {"skill_text": skill_text.strip().lower(), "embedding": embedding}
            await self._upsert(db, SkillEmbedding, values, key=["skill_text"], overwrite=False)
