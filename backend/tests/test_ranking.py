"""
End-to-end tests for the assembled RankingSystem over SQLite

Uses the mock embedding provider and no Redis.
"""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app import models
from app.services.errors import NotFound
from app.services.ranking import build_ranking_system


async def make_system(tmp_path, settings):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'system.db'}")
    factory = async_sessionmaker(engine, expire_on_commit=False)
    system = build_ranking_system(settings, session_factory=factory, use_redis=False)
    await system.init()
    async with factory() as db:
        db.add_all([
            models.Profile(
                user_id="u1",
                role="freelancer",
                skills=["video editing", "figma"],
                bio="Editor based in Leeds",
                onboarding_completed=True,
            ),
            models.Job(id="job-1", title="Video editor", required_skills=["video editing"], job_type="remote"),
        ])
        await db.commit()
    return system


class TestRankingSystem:

    @pytest.mark.asyncio
    async def test_refresh_and_read_back_score(self, tmp_path, settings):
        system = await make_system(tmp_path, settings)
        try:
            refreshed = await system.refresh_score("u1")
            stored = await system.get_or_compute_score("u1")

            assert 0 <= refreshed.total_jts <= 100
            assert stored.total_jts == pytest.approx(refreshed.total_jts)
        finally:
            await system.close()

    @pytest.mark.asyncio
    async def test_embeddings_and_job_match(self, tmp_path, settings):
        system = await make_system(tmp_path, settings)
        try:
            record = await system.generate_embedding_for("profile", "u1")
            await system.generate_embedding_for("job", "job-1")
            match = await system.score_match("u1", "job-1")

            assert len(record.combined_embedding) == settings.embedding_dimensions
            assert match.job_id == "job-1"
            assert 60.0 <= match.skill_match <= 100.0
        finally:
            await system.close()

    @pytest.mark.asyncio
    async def test_unknown_job_raises_not_found(self, tmp_path, settings):
        system = await make_system(tmp_path, settings)
        try:
            with pytest.raises(NotFound):
                await system.score_match("u1", "missing-job")
        finally:
            await system.close()

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_scored(self, tmp_path, settings):
        system = await make_system(tmp_path, settings)
        try:
            with pytest.raises(NotFound):
                await system.refresh_score("ghost")

            assert await system.jts.scores.get_user_score("ghost") is None
        finally:
            await system.close()

    @pytest.mark.asyncio
    async def test_recommendation_log_and_statistics(self, tmp_path, settings):
        system = await make_system(tmp_path, settings)
        try:
            log_id = await system.log_recommendation(
                "u1", "job-1", "job", {"skill_match": 80.0}, "Matches your editing skills"
            )
            explanation = await system.get_explanation(log_id)
            stats = await system.get_statistics("u1")

            assert explanation.log_type == "recommendation"
            assert [log.id for log in await system.get_target_logs("job-1")] == [log_id]
            assert stats.total_logs == 1
            assert stats.avg_scores == {"skill_match": 80.0}
        finally:
            await system.close()
