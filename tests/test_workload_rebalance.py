"""Tests for applying rebalance plans and the periodic rebalance loop."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.constants import WORKLOAD_CACHE_KEY
from app.schemas.assignment import RebalanceMove, RebalanceResult
from app.services.workload_rebalance import (
    _apply_move,
    run_rebalance,
    start_auto_rebalance_loop,
)


def _session_factory():
    mock_session = AsyncMock()
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=mock_session), mock_session


def _make_move(from_agent=None, to_agent=None):
    return RebalanceMove(
        ticket_id=uuid4(),
        from_agent_id=from_agent or uuid4(),
        to_agent_id=to_agent or uuid4(),
        score=0.8,
    )


def _make_metric(agent_id):
    metric = MagicMock()
    metric.agent_id = agent_id
    return metric


class TestApplyMove:
    @pytest.mark.asyncio
    async def test_successful_move_releases_source_and_logs(self):
        move = _make_move()
        agent_repo, ticket_repo, log_repo = AsyncMock(), AsyncMock(), AsyncMock()
        agent_repo.reserve_slot = AsyncMock(return_value=True)
        ticket_repo.assign = AsyncMock(return_value=True)

        assert await _apply_move(move, 10, agent_repo, ticket_repo, log_repo) is True

        ticket_repo.assign.assert_awaited_once_with(
            move.ticket_id, move.to_agent_id, expected_owner=move.from_agent_id, movable_only=True
        )
        agent_repo.release_slot.assert_awaited_once_with(move.from_agent_id)
        assert log_repo.create.await_args.kwargs["method"] == "rebalance"
        log_repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_full_target_skips_move(self):
        agent_repo, ticket_repo, log_repo = AsyncMock(), AsyncMock(), AsyncMock()
        agent_repo.reserve_slot = AsyncMock(return_value=False)

        assert await _apply_move(_make_move(), 10, agent_repo, ticket_repo, log_repo) is False

        ticket_repo.assign.assert_not_awaited()
        log_repo.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ticket_changed_since_planning_skips_move(self):
        agent_repo, ticket_repo, log_repo = AsyncMock(), AsyncMock(), AsyncMock()
        agent_repo.reserve_slot = AsyncMock(return_value=True)
        ticket_repo.assign = AsyncMock(return_value=False)

        assert await _apply_move(_make_move(), 10, agent_repo, ticket_repo, log_repo) is False

        ticket_repo.rollback.assert_awaited_once()
        agent_repo.release_slot.assert_not_awaited()


class TestRunRebalance:
    @pytest.mark.asyncio
    async def test_nothing_to_move_returns_plan(self, mock_cache, mock_redis):
        session_factory, _ = _session_factory()
        plan = RebalanceResult(success=False, triggered=False, message="Below threshold")

        with (
            patch("app.services.workload_rebalance.AssignmentConfigService") as MockConfig,
            patch("app.services.workload_rebalance.AgentMetricsService") as MockMetrics,
            patch("app.services.workload_rebalance.WorkloadRebalancer") as MockRebalancer,
        ):
            MockConfig.return_value.get_config = AsyncMock()
            MockMetrics.return_value.build_metrics = AsyncMock(return_value=[])
            MockRebalancer.return_value.rebalance.return_value = plan

            result = await run_rebalance(session_factory, cache=mock_cache)

        assert result == plan
        mock_redis.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_moves_are_dropped_from_result(self, mock_cache, mock_redis):
        session_factory, mock_session = _session_factory()
        source, target = uuid4(), uuid4()
        applied, raced, broken = (_make_move(source, target) for _ in range(3))
        plan = RebalanceResult(success=True, message="Workload is balanced", moves=[applied, raced, broken])

        with (
            patch("app.services.workload_rebalance.AssignmentConfigService") as MockConfig,
            patch("app.services.workload_rebalance.AgentMetricsService") as MockMetrics,
            patch("app.services.workload_rebalance.WorkloadRebalancer") as MockRebalancer,
            patch(
                "app.services.workload_rebalance._apply_move",
                new_callable=AsyncMock,
                side_effect=[True, False, RuntimeError("deadlock")],
            ),
        ):
            MockConfig.return_value.get_config = AsyncMock()
            MockMetrics.return_value.build_metrics = AsyncMock(
                return_value=[_make_metric(source), _make_metric(target)]
            )
            rebalancer = MockRebalancer.return_value
            rebalancer.rebalance.return_value = plan
            rebalancer.scoring.effective_capacity.return_value = 10

            result = await run_rebalance(session_factory, manual=True, cache=mock_cache)

        assert result.moves == [applied]
        assert result.message == "Workload is balanced (2 planned move(s) skipped)"
        assert rebalancer.rebalance.call_args.kwargs["manual"] is True
        mock_session.rollback.assert_awaited_once()
        mock_redis.delete.assert_awaited_once_with(WORKLOAD_CACHE_KEY)


class TestAutoRebalanceLoop:
    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_stop_loop(self):
        session_factory, _ = _session_factory()

        with (
            patch(
                "app.services.workload_rebalance.run_rebalance",
                new_callable=AsyncMock,
                side_effect=[RuntimeError("db down"), RebalanceResult(success=True, message="ok")],
            ) as mock_run,
            patch(
                "app.services.workload_rebalance.asyncio.sleep",
                new_callable=AsyncMock,
                side_effect=[None, asyncio.CancelledError()],
            ),
        ):
            with pytest.raises(asyncio.CancelledError):
                await start_auto_rebalance_loop(session_factory)

        assert mock_run.await_count == 2
