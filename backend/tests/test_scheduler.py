"""
Tests for the APScheduler JTS refresh

Tests cover:
- Scheduled refresh delegates to the ranking system's batch refresh
- Job registration with the configured interval
- Lifespan startup and shutdown
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app import scheduler as scheduler_module
from app.schemas import BatchResult


@pytest.fixture
def mock_system():
    system = MagicMock()
    system.init = AsyncMock()
    system.close = AsyncMock()
    system.batch_refresh = AsyncMock(return_value=BatchResult(total=3, succeeded=2, failed=1, errors={"u2": "boom"}))
    with patch.object(scheduler_module, "_system", system):
        yield system


@pytest.fixture
def mock_scheduler():
    with patch.object(scheduler_module, "scheduler", MagicMock()) as fake:
        yield fake


class TestRefreshJob:
    """Test the scheduled refresh coroutine."""

    @pytest.mark.asyncio
    async def test_refresh_uses_batch_limit(self, mock_system):
        result = await scheduler_module.refresh_jts_scores()

        mock_system.batch_refresh.assert_awaited_once_with(limit=scheduler_module.settings.batch_refresh_limit)
        assert (result.succeeded, result.failed) == (2, 1)

    @pytest.mark.asyncio
    async def test_manual_trigger_runs_refresh(self, mock_system):
        result = await scheduler_module.trigger_manual_refresh()

        assert result.total == 3
        mock_system.batch_refresh.assert_awaited_once()


class TestSchedulerLifecycle:

    def test_start_registers_interval_job(self, mock_scheduler):
        scheduler_module.start_scheduler()

        kwargs = mock_scheduler.add_job.call_args.kwargs
        assert mock_scheduler.add_job.call_args.args[0] is scheduler_module.refresh_jts_scores
        assert kwargs["id"] == "refresh_jts_scores"
        assert kwargs["replace_existing"] is True
        assert kwargs["trigger"].interval.total_seconds() == (
            scheduler_module.settings.batch_refresh_interval_hours * 3600
        )
        mock_scheduler.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_closes_system(self, mock_scheduler, mock_system):
        await scheduler_module.stop_scheduler()

        mock_scheduler.shutdown.assert_called_once()
        mock_system.close.assert_awaited_once()
        assert scheduler_module._system is None

    @pytest.mark.asyncio
    async def test_lifespan_initialises_and_shuts_down(self, mock_scheduler, mock_system):
        async with scheduler_module.scheduler_lifespan() as system:
            assert system is mock_system
            mock_system.init.assert_awaited_once()
            mock_scheduler.start.assert_called_once()

        mock_scheduler.shutdown.assert_called_once()
        mock_system.close.assert_awaited_once()
