"""Tests for AssignmentConfigService (singleton config + cache)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.constants import CONFIG_CACHE_KEY, WORKLOAD_CACHE_KEY
from app.schemas.assignment_config import (
    AssignmentConfig,
    AssignmentConfigResponse,
    AssignmentConfigUpdate,
)
from app.services.assignment_config import AssignmentConfigService


def _config_row(**overrides):
    """Mock ORM row with the same attributes as ``AssignmentConfiguration``."""
    values = AssignmentConfig().model_dump(mode="json")
    values.update(overrides)
    row = MagicMock()
    for field, value in values.items():
        setattr(row, field, value)
    return row


class TestGetConfig:
    @pytest.mark.asyncio
    async def test_reads_row_and_caches_it(self, mock_cache, mock_redis):
        repo = AsyncMock()
        repo.get = AsyncMock(return_value=_config_row(workload_weight=50, performance_weight=25, availability_weight=25))

        config = await AssignmentConfigService(cache=mock_cache).get_config(repo)

        assert config.workload_weight == 50
        mock_redis.setex.assert_awaited_once()
        assert mock_redis.setex.await_args.args[0] == CONFIG_CACHE_KEY

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, mock_cache, mock_redis):
        mock_redis.get = AsyncMock(
            return_value='{"workload_weight": 60, "performance_weight": 20, "availability_weight": 20}'
        )
        repo = AsyncMock()

        config = await AssignmentConfigService(cache=mock_cache).get_config(repo)

        assert config.workload_weight == 60
        repo.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_row_is_seeded(self):
        repo = AsyncMock()
        repo.get = AsyncMock(return_value=None)
        repo.seed_if_empty = AsyncMock(return_value=_config_row())

        config = await AssignmentConfigService().get_config(repo)

        assert config == AssignmentConfig()
        repo.seed_if_empty.assert_awaited_once()
        repo.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_row_falls_back_to_defaults(self):
        repo = AsyncMock()
        repo.get = AsyncMock(return_value=_config_row(business_hours="not-an-object"))

        config = await AssignmentConfigService().get_config(repo)

        assert config == AssignmentConfig()


class TestUpdateConfig:
    @pytest.mark.asyncio
    async def test_update_invalidates_config_and_workload(self, mock_cache, mock_redis):
        repo = AsyncMock()
        repo.upsert = AsyncMock(return_value=_config_row(max_concurrent_tickets=12))

        config = await AssignmentConfigService(cache=mock_cache).update_config(
            AssignmentConfigUpdate(max_concurrent_tickets=12), repo
        )

        assert config.max_concurrent_tickets == 12
        repo.commit.assert_awaited_once()
        mock_redis.delete.assert_awaited_once_with(CONFIG_CACHE_KEY, WORKLOAD_CACHE_KEY)

    @pytest.mark.asyncio
    async def test_all_zero_weights_are_stored(self):
        repo = AsyncMock()
        repo.upsert = AsyncMock(
            return_value=_config_row(workload_weight=0, performance_weight=0, availability_weight=0)
        )
        data = AssignmentConfigUpdate(workload_weight=0, performance_weight=0, availability_weight=0)

        config = await AssignmentConfigService().update_config(data, repo)

        assert config.weight_sum == 0
        repo.upsert.assert_awaited_once()
        repo.commit.assert_awaited_once()

    def test_all_zero_weights_produce_warning(self):
        config = AssignmentConfig(workload_weight=0, performance_weight=0, availability_weight=0)

        response = AssignmentConfigResponse.from_config(config)

        assert response.weights_balanced is False
        assert "unweighted average" in response.warning

    def test_unbalanced_weights_produce_warning(self):
        config = AssignmentConfig(workload_weight=50, performance_weight=30, availability_weight=30)

        response = AssignmentConfigResponse.from_config(config)

        assert response.weight_sum == 110
        assert response.weights_balanced is False
        assert "110" in response.warning

    def test_balanced_weights_have_no_warning(self):
        response = AssignmentConfigResponse.from_config(AssignmentConfig())

        assert response.weights_balanced is True
        assert response.warning is None


class TestConfigValidation:
    def test_bad_clock_rejected(self):
        with pytest.raises(ValueError):
            AssignmentConfigUpdate(business_hours={"start": "25:00", "end": "17:00"})

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError):
            AssignmentConfigUpdate(business_hours={"timezone": "Mars/Olympus"})

    def test_zero_performance_blend_rejected(self):
        with pytest.raises(ValueError):
            AssignmentConfigUpdate(
                performance_blend={
                    "resolution_rate_weight": 0,
                    "resolution_speed_weight": 0,
                    "satisfaction_weight": 0,
                }
            )
