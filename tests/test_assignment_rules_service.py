"""Tests for AssignmentRuleService (CRUD, priority uniqueness, caching)."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.constants import RULES_CACHE_KEY
from app.core.exceptions import AssignmentRuleNotFoundError, DuplicateRulePriorityError
from app.models.assignment_rule import AssignmentRule as AssignmentRuleRow
from app.schemas.assignment import RuleOutcomeKind
from app.schemas.assignment_rule import AssignmentRuleCreate, AssignmentRuleUpdate
from app.schemas.ticket import TicketContext
from app.services.assignment_rules import AssignmentRuleService

_NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def _make_row(priority=1, enabled=True, conditions=None, actions=None, name=None):
    """An unsaved ORM row, as the repository would return it."""
    return AssignmentRuleRow(
        rule_id=uuid4(),
        name=name or f"rule-{priority}",
        description=None,
        priority=priority,
        enabled=enabled,
        conditions=conditions if conditions is not None else {},
        actions=actions if actions is not None else {},
        created_at=_NOW,
        updated_at=_NOW,
    )


def _make_repo(rows=None, clash=None):
    repo = AsyncMock()
    repo.list_ordered = AsyncMock(return_value=rows or [])
    repo.find_enabled_by_priority = AsyncMock(return_value=clash)
    repo.get_by_id = AsyncMock(return_value=None)
    return repo


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception("duplicate key value"))


class TestActiveRules:
    @pytest.mark.asyncio
    async def test_rules_are_cached_after_database_read(self, mock_cache, mock_redis):
        repo = _make_repo([_make_row(1), _make_row(2)])

        rules = await AssignmentRuleService(cache=mock_cache).get_active_rules(repo)

        assert [r.priority for r in rules] == [1, 2]
        repo.list_ordered.assert_awaited_once_with(enabled_only=True)
        assert mock_redis.setex.await_args.args[0] == RULES_CACHE_KEY

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self, mock_cache, mock_redis):
        cached = [
            {
                "id": str(uuid4()),
                "name": "VIP",
                "priority": 1,
                "conditions": {"customer_tiers": ["vip"]},
                "actions": {"assign_to_team": "tier2"},
            }
        ]
        mock_redis.get = AsyncMock(return_value=json.dumps(cached))
        repo = _make_repo()

        rules = await AssignmentRuleService(cache=mock_cache).get_active_rules(repo)

        assert rules[0].actions.assign_to_team == "tier2"
        repo.list_ordered.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_stored_rule_is_skipped(self):
        good = _make_row(1)
        broken = _make_row(2, conditions={"priorities": ["whenever"]})
        repo = _make_repo([good, broken])

        rules = await AssignmentRuleService().get_active_rules(repo)

        assert [r.id for r in rules] == [good.rule_id]

    @pytest.mark.asyncio
    async def test_evaluate_uses_active_rules(self):
        row = _make_row(1, conditions={"keywords": ["refund"]}, actions={"assign_to_team": "billing"})
        repo = _make_repo([row])
        ticket = TicketContext(title="Refund request", priority="low")

        outcome = await AssignmentRuleService().evaluate(ticket, repo, now=_NOW)

        assert outcome.kind == RuleOutcomeKind.pinned
        assert outcome.team_id == "billing"


class TestCreateRule:
    @pytest.mark.asyncio
    async def test_create_commits_and_invalidates(self, mock_cache, mock_redis):
        repo = _make_repo()
        repo.create = AsyncMock(side_effect=lambda **values: _make_row(values["priority"], name=values["name"]))
        data = AssignmentRuleCreate(
            name="Urgent to tier 2",
            priority=5,
            conditions={"priorities": ["urgent"]},
            actions={"assign_to_team": "tier2"},
        )

        rule = await AssignmentRuleService(cache=mock_cache).create_rule(data, repo)

        assert rule.name == "Urgent to tier 2"
        assert rule.priority == 5
        assert repo.create.await_args.kwargs["conditions"] == {"priorities": ["urgent"]}
        repo.commit.assert_awaited_once()
        mock_redis.delete.assert_awaited_once_with(RULES_CACHE_KEY)

    @pytest.mark.asyncio
    async def test_duplicate_enabled_priority_is_rejected(self):
        repo = _make_repo(clash=_make_row(5, name="Existing"))
        data = AssignmentRuleCreate(name="New", priority=5)

        with pytest.raises(DuplicateRulePriorityError):
            await AssignmentRuleService().create_rule(data, repo)

        repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_rule_may_share_priority(self):
        repo = _make_repo(clash=_make_row(5))
        repo.create = AsyncMock(return_value=_make_row(5, enabled=False))

        rule = await AssignmentRuleService().create_rule(
            AssignmentRuleCreate(name="Draft", priority=5, enabled=False), repo
        )

        assert rule.enabled is False
        repo.find_enabled_by_priority.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_caught_by_index(self):
        repo = _make_repo()
        repo.create = AsyncMock(side_effect=_integrity_error())

        with pytest.raises(DuplicateRulePriorityError):
            await AssignmentRuleService().create_rule(
                AssignmentRuleCreate(name="Race", priority=3), repo
            )

        repo.rollback.assert_awaited_once()

    def test_malformed_time_window_rejected(self):
        with pytest.raises(ValueError):
            AssignmentRuleCreate(
                name="Night shift",
                priority=1,
                conditions={"time_of_day": {"start": "22h", "end": "06:00"}},
            )


class TestUpdateRule:
    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self):
        row = _make_row(4, actions={"assign_to_team": "billing"})
        repo = _make_repo()
        repo.get_by_id = AsyncMock(return_value=row)
        repo.update = AsyncMock(return_value=row)

        await AssignmentRuleService().update_rule(
            row.rule_id, AssignmentRuleUpdate(name="Renamed"), repo
        )

        assert repo.update.await_args.args[1] == {"name": "Renamed"}
        repo.find_enabled_by_priority.assert_awaited_once_with(4, exclude_id=row.rule_id)

    @pytest.mark.asyncio
    async def test_moving_onto_taken_priority_is_rejected(self):
        row = _make_row(4)
        repo = _make_repo(clash=_make_row(7))
        repo.get_by_id = AsyncMock(return_value=row)

        with pytest.raises(DuplicateRulePriorityError):
            await AssignmentRuleService().update_rule(
                row.rule_id, AssignmentRuleUpdate(priority=7), repo
            )

        repo.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_rule_raises(self):
        with pytest.raises(AssignmentRuleNotFoundError):
            await AssignmentRuleService().update_rule(uuid4(), AssignmentRuleUpdate(name="x"), _make_repo())


class TestToggleAndDelete:
    @pytest.mark.asyncio
    async def test_disabling_skips_priority_check(self):
        row = _make_row(2, enabled=True)
        repo = _make_repo(clash=_make_row(2))
        repo.get_by_id = AsyncMock(return_value=row)
        repo.update = AsyncMock(return_value=_make_row(2, enabled=False))

        rule = await AssignmentRuleService().toggle_rule(row.rule_id, repo)

        assert rule.enabled is False
        assert repo.update.await_args.args[1] == {"enabled": False}
        repo.find_enabled_by_priority.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reenabling_onto_taken_priority_is_rejected(self):
        row = _make_row(2, enabled=False)
        repo = _make_repo(clash=_make_row(2))
        repo.get_by_id = AsyncMock(return_value=row)

        with pytest.raises(DuplicateRulePriorityError):
            await AssignmentRuleService().toggle_rule(row.rule_id, repo)

    @pytest.mark.asyncio
    async def test_delete_invalidates_cache(self, mock_cache, mock_redis):
        row = _make_row(1)
        repo = _make_repo()
        repo.get_by_id = AsyncMock(return_value=row)

        await AssignmentRuleService(cache=mock_cache).delete_rule(row.rule_id, repo)

        repo.delete.assert_awaited_once_with(row)
        repo.commit.assert_awaited_once()
        mock_redis.delete.assert_awaited_once_with(RULES_CACHE_KEY)

    @pytest.mark.asyncio
    async def test_delete_unknown_rule_raises(self):
        with pytest.raises(AssignmentRuleNotFoundError):
            await AssignmentRuleService().delete_rule(uuid4(), _make_repo())


class TestStatistics:
    @pytest.mark.asyncio
    async def test_counts_rules_and_todays_rule_matches(self):
        repo = _make_repo([_make_row(1), _make_row(2), _make_row(3, enabled=False)])
        log_repo = AsyncMock()
        log_repo.count_since = AsyncMock(return_value=(8, 6))

        stats = await AssignmentRuleService().get_statistics(repo, log_repo, now=_NOW)

        assert stats.total_rules == 3
        assert stats.active_rules == 2
        assert stats.assignments_today == 8
        assert stats.rule_assignments_today == 6
        assert stats.rule_match_rate == 75.0
        log_repo.count_since.assert_awaited_once_with(
            datetime(2026, 3, 2, tzinfo=timezone.utc)
        )

    @pytest.mark.asyncio
    async def test_no_assignments_today_gives_zero_rate(self):
        log_repo = AsyncMock()
        log_repo.count_since = AsyncMock(return_value=(0, 0))

        stats = await AssignmentRuleService().get_statistics(_make_repo(), log_repo, now=_NOW)

        assert stats.total_rules == 0
        assert stats.rule_match_rate == 0.0

    @pytest.mark.asyncio
    async def test_day_starts_at_local_midnight(self):
        log_repo = AsyncMock()
        log_repo.count_since = AsyncMock(return_value=(0, 0))

        await AssignmentRuleService().get_statistics(
            _make_repo(), log_repo, timezone="America/New_York", now=_NOW
        )

        since = log_repo.count_since.await_args.args[0]
        assert since == datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc)
