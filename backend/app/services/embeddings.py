"""
Embedding Store - Vectors for profiles, jobs, content and skills

Turns entity text into embeddings through a swappable provider and stores
them per entity. Each entity keeps two sub-vectors plus a weighted blend
used for similarity:

    | Entity  | First vector            | Second vector            | Blend   |
    |---------|-------------------------|--------------------------|---------|
    | Profile | skills + categories     | bio                      | 0.7/0.3 |
    | Job     | title + skills          | title + description      | 0.6/0.4 |
    | Content | title + description     | tags                     | 0.7/0.3 |

Provider calls go through an optional Redis cache keyed by a hash of the
text, so unchanged text is not re-sent to the provider.

Error policy:
    - Provider failures raise DependencyUnavailable from explicit generation
    - Write failures raise PersistenceFailure from explicit generation
    - Batch generation and similarity lookups never raise
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from app.repositories import EmbeddingRepository, SourceRepository
from app.schemas import (
    BatchResult,
    ContentEmbeddingRecord,
    JobEmbeddingRecord,
    ProfileEmbeddingRecord,
    SimilarProfile,
)
from app.schemas.base import utc_now
from app.services.cache import RankingCache, hash_content
from app.services.embedding_providers import EmbeddingProvider
from app.services.errors import DependencyUnavailable, NotFound, RankingError
from app.services.vector_math import blend_vectors, cosine_similarity

logger = logging.getLogger(__name__)

PROFILE_SKILLS_WEIGHT = 0.7
JOB_REQUIREMENTS_WEIGHT = 0.6
CONTENT_TEXT_WEIGHT = 0.7

SKILLS_FALLBACK_TEXT = "general freelancer"
TAGS_FALLBACK_TEXT = "general"
CONTENT_FALLBACK_TEXT = "content"

ENTITY_KINDS = ("profile", "job", "content")


class EmbeddingStore:
    """
    Generates, stores and compares entity embeddings.

    Attributes:
        embeddings: Embedding storage
        sources: Read access to profiles, jobs and content
        provider: Text-to-vector provider
        cache: Optional Redis cache for provider results
    """

    def __init__(
        self,
        embeddings: EmbeddingRepository,
        sources: SourceRepository,
        provider: EmbeddingProvider,
        cache: Optional[RankingCache] = None,
        model_name: str = "default",
        batch_concurrency: int = 10,
    ):
        self.embeddings = embeddings
        self.sources = sources
        self.provider = provider
        self.cache = cache
        self.model_name = model_name
        self.batch_concurrency = batch_concurrency

    async def embed_text(self, text: str) -> List[float]:
        """
        Embed one text, consulting the cache first.

        Raises:
            DependencyUnavailable: If the provider fails
        """
        content_hash = hash_content(text)
        if self.cache is not None:
            cached = await self.cache.get_embedding(self.model_name, content_hash)
            if cached is not None:
                return cached

        try:
            vector = await self.provider.embed(text)
        except Exception as e:
            raise DependencyUnavailable("embedding provider", str(e), e) from e

        if self.cache is not None:
            await self.cache.set_embedding(self.model_name, content_hash, vector)
        return vector

    async def _embed_pair(self, first: str, second: str, first_weight: float) -> Tuple[List[float], List[float], List[float]]:
        first_vec, second_vec = await asyncio.gather(self.embed_text(first), self.embed_text(second))
        return first_vec, second_vec, blend_vectors(first_vec, second_vec, first_weight)

    # ==================== Generation ====================

    async def generate_profile_embedding(self, user_id: str) -> ProfileEmbeddingRecord:
        profile = await self.sources.get_profile(user_id)
        if profile is None:
            raise NotFound("profile", user_id)

        skills_text = ", ".join(profile.skills + profile.service_categories) or SKILLS_FALLBACK_TEXT
        bio_text = profile.bio or f"{profile.full_name or profile.username or ''} profile".strip()

        skills_vec, bio_vec, combined = await self._embed_pair(skills_text, bio_text, PROFILE_SKILLS_WEIGHT)
        record = ProfileEmbeddingRecord(
            user_id=user_id,
            skills_embedding=skills_vec,
            bio_embedding=bio_vec,
            combined_embedding=combined,
            updated_at=utc_now(),
        )
        await self.embeddings.upsert_profile_embedding(record)
        logger.info(f"Generated profile embedding for {user_id}")
        return record

    async def generate_job_embedding(self, job_id: str) -> JobEmbeddingRecord:
        job = await self.sources.get_job(job_id)
        if job is None:
            raise NotFound("job", job_id)

        requirements_text = ", ".join([job.title] + job.required_skills + job.optional_skills)
        description_text = f"{job.title} {job.description}".strip()

        req_vec, desc_vec, combined = await self._embed_pair(
            requirements_text, description_text, JOB_REQUIREMENTS_WEIGHT
        )
        record = JobEmbeddingRecord(
            job_id=job_id,
            requirements_embedding=req_vec,
            description_embedding=desc_vec,
            combined_embedding=combined,
            updated_at=utc_now(),
        )
        await self.embeddings.upsert_job_embedding(record)
        logger.info(f"Generated job embedding for {job_id}")
        return record

    async def generate_content_embedding(self, content_id: str, content_type: str = "video") -> ContentEmbeddingRecord:
        """
        Embed a content item.

        Only videos are stored locally; any other type, or a missing video,
        is embedded from the fallback text instead of failing.
        """
        text = ""
        tags: List[str] = []
        if content_type == "video":
            content = await self.sources.get_content(content_id)
            if content is not None:
                text = f"{content.title} {content.description or ''}".strip()
                tags = content.tags

        text = text or CONTENT_FALLBACK_TEXT
        tags_text = ", ".join(tags) or TAGS_FALLBACK_TEXT

        text_vec, tags_vec, combined = await self._embed_pair(text, tags_text, CONTENT_TEXT_WEIGHT)
        record = ContentEmbeddingRecord(
            content_id=content_id,
            content_type=content_type,
            text_embedding=text_vec,
            tags_embedding=tags_vec,
            combined_embedding=combined,
            updated_at=utc_now(),
        )
        await self.embeddings.upsert_content_embedding(record)
        return record

    async def store_skill_embedding(self, skill_text: str) -> bool:
        """
        Store an embedding for a skill unless one exists (case-insensitive).

        Returns:
            True if a new row was written
        """
        if await self.embeddings.has_skill_embedding(skill_text):
            return False

        vector = await self.embed_text(skill_text.strip())
        await self.embeddings.insert_skill_embedding(skill_text, vector)
        return True

    async def generate_for(self, kind: str, entity_id: str):
        """Dispatch generation by entity kind: profile, job or content."""
        if kind == "profile":
            return await self.generate_profile_embedding(entity_id)
        if kind == "job":
            return await self.generate_job_embedding(entity_id)
        if kind == "content":
            return await self.generate_content_embedding(entity_id, "video")
        raise ValueError(f"Unknown entity kind: {kind}. Supported: {', '.join(ENTITY_KINDS)}")

    async def batch_generate_embeddings(self, items: Sequence[Tuple[str, str]]) -> BatchResult:
        """
        Generate embeddings for (entity_id, kind) pairs concurrently.

        Failures are collected per item and never raised.
        """
        semaphore = asyncio.Semaphore(self.batch_concurrency)
        result = BatchResult(total=len(items))

        async def run(entity_id: str, kind: str) -> None:
            async with semaphore:
                try:
                    await self.generate_for(kind, entity_id)
                    result.succeeded += 1
                except (RankingError, ValueError) as e:
                    logger.warning(f"Embedding generation failed for {kind} {entity_id}: {e}")
                    result.failed += 1
                    result.errors[f"{kind}:{entity_id}"] = str(e)

        await asyncio.gather(*(run(entity_id, kind) for entity_id, kind in items))
        logger.info(f"Batch embeddings: {result.succeeded}/{result.total} succeeded")
        return result

    # ==================== Similarity ====================

    async def embedding_similarity(self, user_id: str, job_id: str) -> Optional[float]:
        """Cosine similarity of the combined profile and job vectors, or None if either is missing."""
        profile_emb, job_emb = await asyncio.gather(
            self.embeddings.get_profile_embedding(user_id),
            self.embeddings.get_job_embedding(job_id),
        )
        if not profile_emb or not job_emb:
            return None
        if not profile_emb.combined_embedding or not job_emb.combined_embedding:
            return None
        return cosine_similarity(profile_emb.combined_embedding, job_emb.combined_embedding)

    async def profile_content_similarity(self, user_id: str, content_id: str) -> Optional[float]:
        profile_emb, content_emb = await asyncio.gather(
            self.embeddings.get_profile_embedding(user_id),
            self.embeddings.get_content_embedding(content_id),
        )
        if not profile_emb or not content_emb:
            return None
        if not profile_emb.combined_embedding or not content_emb.combined_embedding:
            return None
        return cosine_similarity(profile_emb.combined_embedding, content_emb.combined_embedding)

    async def find_similar_profiles(
        self,
        user_id: str,
        limit: int = 10,
        threshold: float = 0.5,
    ) -> List[SimilarProfile]:
        """
        Rank other stored profiles by cosine similarity to this user.

        Returns an empty list when the user has no stored embedding.
        """
        own = await self.embeddings.get_profile_embedding(user_id)
        if own is None or not own.combined_embedding:
            return []

        others = await self.embeddings.list_profile_embeddings(exclude_user_id=user_id)
        matches = []
        for other in others:
            if not other.combined_embedding or len(other.combined_embedding) != len(own.combined_embedding):
                continue
            similarity = cosine_similarity(own.combined_embedding, other.combined_embedding)
            if similarity >= threshold:
                matches.append(SimilarProfile(user_id=other.user_id, similarity=similarity))

        matches.sort(key=lambda m: (-m.similarity, m.user_id))
        return matches[:limit]
