"""
Tests for ranking explanations and audit logs

Tests cover:
- Factor bucketing for job matches, feeds and searches
- Rendered explanation text
- Audit log writes that never block ranking
- Log retrieval and statistics
"""

from unittest.mock import AsyncMock

import pytest

from app.schemas import FeedScores, FeedWeights, JTSComponents, RankingFactors
from app.services.errors import DependencyUnavailable, PersistenceFailure
from app.services.ranking_explainer import (
    RankingExplainer,
    analyze_feed_factors,
    analyze_job_match_factors,
    analyze_search_factors,
    average_score,
    classify,
    factor_key,
    render_feed_explanation,
    render_job_match_explanation,
    short_feed_explanation,
)


def make_jts(skill=65.0, engagement=50.0, credibility=55.0, recency=10.0):
    total = skill * 0.35 + engagement * 0.25 + credibility * 0.25 + recency * 0.15
    return JTSComponents(
        skill_match=skill, engagement=engagement, credibility=credibility, recency=recency, total=total
    )


def make_feed_scores(**overrides):
    values = dict(relevance=75.0, engagement=20.0, freshness=90.0, diversity=80.0, local=50.0, total=66.0)
    values.update(overrides)
    return FeedScores(**values)


class TestFactorAnalysis:
    """Test factor bucketing."""

    def test_job_match_factors(self):
        factors = analyze_job_match_factors(make_jts(), location_score=95.0, embedding_similarity=0.85)

        assert "Good skill alignment (65%)" in factors.positive
        assert "Moderate engagement (50/100)" in factors.neutral
        assert "Building credibility (55/100)" in factors.neutral
        assert "Recently active on platform" in factors.positive
        assert "Nearby location (excellent proximity)" in factors.positive
        assert "Strong semantic match with requirements" in factors.positive

    def test_low_scores_are_negative(self):
        factors = analyze_job_match_factors(make_jts(skill=20.0, engagement=10.0, recency=0.0), location_score=20.0)

        assert "Limited skill overlap (20%)" in factors.negative
        assert "Low engagement history (10/100)" in factors.negative
        assert "No recent activity" in factors.negative
        assert "Distant location" in factors.negative

    def test_low_credibility_is_neutral(self):
        """New users are never penalised for credibility."""
        factors = analyze_job_match_factors(make_jts(credibility=10.0))
        assert "New user establishing presence (10/100)" in factors.neutral

    def test_recency_middle_tier(self):
        factors = RankingFactors()
        classify("recency", 5.0, factors)
        assert factors.neutral == ["Active in the last month"]

    def test_weak_similarity_adds_nothing(self):
        factors = RankingFactors()
        classify("embedding_similarity", 0.3, factors)
        assert factors == RankingFactors()

    def test_feed_factors(self):
        factors = analyze_feed_factors(make_feed_scores(), is_local=True, is_trending=True)

        assert "Highly relevant to your interests" in factors.positive
        assert "Lower community engagement" in factors.negative
        assert "Very recently posted" in factors.positive
        assert "Discover new creator" in factors.positive
        assert "From your local area" in factors.positive
        assert "Trending right now" in factors.positive

    def test_feed_middling_engagement_unlisted(self):
        factors = analyze_feed_factors(make_feed_scores(engagement=50.0), False, False)
        assert not any("engagement" in f.lower() for f in factors.positive + factors.negative + factors.neutral)

    def test_search_factors(self):
        factors = analyze_search_factors({"relevance": 80.0, "popularity": 75.0, "quality": 20.0}, "video editor")

        assert 'Strong match for "video editor"' in factors.positive
        assert "Popular choice among users" in factors.positive
        assert len(factors.positive) == 2

    def test_factor_key_strips_parenthetical(self):
        assert factor_key("Good skill alignment (65%)") == "Good skill alignment"
        assert factor_key("Recently active on platform") == "Recently active on platform"


class TestRendering:
    """Test explanation text."""

    def test_job_match_explanation(self):
        jts = make_jts(skill=80.0)
        text = render_job_match_explanation(jts, analyze_job_match_factors(jts))
        lines = text.split("\n")

        assert lines[0] == f"This freelancer was ranked with a Jobtolk Score of {jts.total:.0f}/100."
        assert "Strengths:" in lines
        assert "Considerations:" in lines
        assert "How the score was calculated:" in lines
        assert "- Skill Match: 80.0 × 35% = 28.0" in lines
        assert "- Recency: 10.0 × 15% = 1.5" in lines
        assert lines[-1] == f"Total: {jts.total:.1f}/100"

    def test_job_match_explanation_is_deterministic(self):
        jts = make_jts()
        factors = analyze_job_match_factors(jts)
        assert render_job_match_explanation(jts, factors) == render_job_match_explanation(jts, factors)

    def test_empty_sections_omitted(self):
        jts = make_jts()
        text = render_job_match_explanation(jts, RankingFactors())
        assert "Strengths:" not in text
        assert "Areas to note:" not in text

    def test_feed_explanation(self):
        scores = make_feed_scores()
        text = render_feed_explanation(scores, analyze_feed_factors(scores, False, False), FeedWeights())

        assert text.startswith("This content was ranked with a score of 66/100 in your feed.")
        assert "Why you're seeing this:" in text
        assert "- Relevance: 75.0 × 30% = 22.5" in text
        assert "- Local Relevance: 50.0 × 10% = 5.0" in text

    def test_short_feed_explanation(self):
        scores = make_feed_scores(diversity=40.0)
        assert short_feed_explanation(scores, is_local=True, is_trending=False) == (
            "Recommended because it's highly relevant to your interests, newly posted, from your local area"
        )

    def test_short_feed_explanation_fallback(self):
        scores = make_feed_scores(relevance=50.0, freshness=50.0, diversity=40.0)
        assert short_feed_explanation(scores, False, False) == "Recommended based on overall platform activity"

    def test_average_score(self):
        assert average_score({"total": 70.0, "a": 10.0}) == 70.0
        assert average_score({"a": 10.0, "b": 30.0}) == 20.0
        assert average_score({}) == 0.0


class TestRankingExplainer:
    """Test audit log writes and reads."""

    @pytest.mark.asyncio
    async def test_log_job_match(self, store):
        explainer = RankingExplainer(store)

        log_id = await explainer.log_job_match("u1", "job-1", make_jts(), 95.0, 0.7, ranking_position=1)

        log = await explainer.get_ranking_explanation(log_id)
        assert log.log_type == "job_match"
        assert log.target_type == "job"
        assert log.score_components["location"] == 95.0
        assert log.explanation_text.startswith("This freelancer was ranked")

    @pytest.mark.asyncio
    async def test_log_feed_ranking(self, store):
        explainer = RankingExplainer(store)

        await explainer.log_feed_ranking("u1", "c1", "video", make_feed_scores(), FeedWeights(), ranking_position=3)

        log = store.logs[0]
        assert log.log_type == "feed_rank"
        assert log.total_score == 66.0
        assert log.ranking_position == 3

    @pytest.mark.asyncio
    async def test_log_search_result(self, store):
        explainer = RankingExplainer(store)

        await explainer.log_search_result(
            "u1", "p2", "profile", "editor", {"relevance": 80.0, "popularity": 40.0}, filters_applied={"city": "London"}
        )

        log = store.logs[0]
        assert log.search_query == "editor"
        assert log.total_score == 60.0
        assert log.filters_applied == {"city": "London"}

    @pytest.mark.asyncio
    async def test_log_recommendation(self, store):
        explainer = RankingExplainer(store)

        await explainer.log_recommendation("u1", "p2", "profile", {"total": 77.0}, "Similar to creators you follow")

        log = store.logs[0]
        assert log.factors.positive == ["Similar to creators you follow"]
        assert log.total_score == 77.0

    @pytest.mark.asyncio
    async def test_write_failure_returns_none(self, store):
        store.insert = AsyncMock(side_effect=PersistenceFailure("insert_ranking_log"))
        explainer = RankingExplainer(store)

        assert await explainer.log_job_match("u1", "job-1", make_jts(), 50.0, 0.5) is None

    @pytest.mark.asyncio
    async def test_read_failures_return_empty(self, store):
        store.list_for_user = AsyncMock(side_effect=DependencyUnavailable("database"))
        store.get = AsyncMock(side_effect=DependencyUnavailable("database"))
        explainer = RankingExplainer(store)

        assert await explainer.get_user_ranking_logs("u1") == []
        assert await explainer.get_ranking_explanation("log-1") is None

    @pytest.mark.asyncio
    async def test_logs_filtered_by_type_newest_first(self, store):
        explainer = RankingExplainer(store)
        await explainer.log_job_match("u1", "job-1", make_jts(), 50.0, 0.5)
        await explainer.log_feed_ranking("u1", "c1", "video", make_feed_scores(), FeedWeights())
        await explainer.log_job_match("u1", "job-2", make_jts(), 50.0, 0.5)

        logs = await explainer.get_user_ranking_logs("u1", log_type="job_match")

        assert [log.target_id for log in logs] == ["job-2", "job-1"]

    @pytest.mark.asyncio
    async def test_target_logs(self, store):
        explainer = RankingExplainer(store)
        await explainer.log_job_match("u1", "job-1", make_jts(), 50.0, 0.5)
        await explainer.log_job_match("u2", "job-1", make_jts(), 50.0, 0.5)

        logs = await explainer.get_target_ranking_logs("job-1")

        assert {log.user_id for log in logs} == {"u1", "u2"}


class TestRankingStatistics:

    @pytest.mark.asyncio
    async def test_statistics(self, store):
        explainer = RankingExplainer(store)
        await explainer.log_job_match("u1", "job-1", make_jts(skill=65.0), 95.0, 0.5)
        await explainer.log_job_match("u1", "job-2", make_jts(skill=85.0), 95.0, 0.5)
        await explainer.log_feed_ranking("u1", "c1", "video", make_feed_scores(), FeedWeights())

        stats = await explainer.get_ranking_statistics("u1")

        assert stats.total_logs == 3
        assert stats.by_type == {"job_match": 2, "feed_rank": 1}
        # Averaged over the logs carrying each component
        assert stats.avg_scores["skill_match"] == pytest.approx(75.0)
        assert stats.avg_scores["relevance"] == pytest.approx(75.0)
        assert stats.top_positive_factors["Nearby location"] == 2
        assert stats.top_negative_factors["Lower community engagement"] == 1

    @pytest.mark.asyncio
    async def test_statistics_empty(self, store):
        stats = await RankingExplainer(store).get_ranking_statistics("nobody")
        assert stats.total_logs == 0
        assert stats.avg_scores == {}
