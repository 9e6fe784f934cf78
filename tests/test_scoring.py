"""Tests for the AgentScoringEngine (eligibility, weighting, tie-breaks)."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from app.schemas.agent import AgentMetrics
from app.schemas.assignment_config import AssignmentConfig, BusinessHours, PerformanceBlend
from app.schemas.ticket import TicketContext
from app.services.scoring import AgentScoringEngine

_NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def _make_agent(
    *,
    agent_id=None,
    workload: int = 0,
    max_tickets: int = 10,
    availability: str = "available",
    resolution_hours: float = 24.0,
    resolution_rate: float = 0.8,
    satisfaction: float = 4.0,
    category_expertise=None,
    subcategory_expertise=None,
) -> AgentMetrics:
    return AgentMetrics(
        agent_id=agent_id or uuid4(),
        availability=availability,
        current_workload=workload,
        max_concurrent_tickets=max_tickets,
        average_resolution_time=resolution_hours,
        resolution_rate=resolution_rate,
        customer_satisfaction_score=satisfaction,
        category_expertise=category_expertise or {},
        subcategory_expertise=subcategory_expertise or {},
    )


def _config(**overrides) -> AssignmentConfig:
    """Config whose business hours cover the whole day unless overridden."""
    overrides.setdefault("business_hours", BusinessHours(start="00:00", end="00:00"))
    return AssignmentConfig(**overrides)


def _ticket(**overrides) -> TicketContext:
    return TicketContext(ticket_id=uuid4(), title="VPN drops", **overrides)


class TestWorkloadScenario:
    def test_lighter_agent_ranks_first(self):
        """Workload 2 beats workload 9 when everything else is equal."""
        busy = _make_agent(workload=9)
        light = _make_agent(workload=2)

        ranked = AgentScoringEngine().rank(_ticket(), [busy, light], _config(), now=_NOW)

        assert [c.agent_id for c in ranked] == [light.agent_id, busy.agent_id]
        assert ranked[0].breakdown.workload == pytest.approx(0.8)
        assert ranked[1].breakdown.workload == pytest.approx(0.1)


class TestEligibility:
    def test_unavailable_agents_are_dropped(self):
        agents = [
            _make_agent(availability="busy"),
            _make_agent(availability="away"),
            _make_agent(availability="offline"),
        ]
        assert AgentScoringEngine().rank(_ticket(), agents, _config(), now=_NOW) == []

    def test_agents_at_capacity_are_dropped(self):
        full = _make_agent(workload=10, max_tickets=10)
        open_slot = _make_agent(workload=9, max_tickets=10)

        ranked = AgentScoringEngine().rank(_ticket(), [full, open_slot], _config(), now=_NOW)

        assert [c.agent_id for c in ranked] == [open_slot.agent_id]

    def test_global_ceiling_caps_personal_capacity(self):
        agent = _make_agent(workload=5, max_tickets=20)
        ranked = AgentScoringEngine().rank(
            _ticket(), [agent], _config(max_concurrent_tickets=5), now=_NOW
        )
        assert ranked == []

    def test_outside_business_hours_nobody_is_eligible(self):
        config = _config(business_hours=BusinessHours(start="09:00", end="17:00"))
        evening = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)

        assert AgentScoringEngine().rank(_ticket(), [_make_agent()], config, now=evening) == []
        assert AgentScoringEngine().rank(_ticket(), [_make_agent()], config, now=_NOW) != []

    def test_malformed_business_hours_disable_the_gate(self):
        config = _config(business_hours=BusinessHours(start="nine", end="17:00"))
        ranked = AgentScoringEngine().rank(_ticket(), [_make_agent()], config, now=_NOW)
        assert len(ranked) == 1

    def test_empty_candidate_list_is_valid(self):
        assert AgentScoringEngine().rank(_ticket(), [], _config(), now=_NOW) == []


class TestWeights:
    def test_all_zero_weights_fall_back_to_mean(self):
        agent = _make_agent(workload=5)
        config = _config(workload_weight=0, performance_weight=0, availability_weight=0)

        ranked = AgentScoringEngine().rank(_ticket(), [agent], config, now=_NOW)

        b = ranked[0].breakdown
        assert ranked[0].score == pytest.approx((b.workload + b.performance + b.availability) / 3)

    def test_negative_weights_are_clamped(self):
        agent = _make_agent(workload=5)
        clamped = _config(workload_weight=-50, performance_weight=0, availability_weight=100)
        only_availability = _config(workload_weight=0, performance_weight=0, availability_weight=100)

        engine = AgentScoringEngine()
        assert engine.rank(_ticket(), [agent], clamped, now=_NOW)[0].score == pytest.approx(
            engine.rank(_ticket(), [agent], only_availability, now=_NOW)[0].score
        )

    def test_score_is_normalised_by_weight_sum(self):
        agent = _make_agent(workload=0)
        # Workload score 1.0, availability 1.0; performance excluded
        config = _config(workload_weight=7, performance_weight=0, availability_weight=3)

        ranked = AgentScoringEngine().rank(_ticket(), [agent], config, now=_NOW)

        assert ranked[0].score == pytest.approx(1.0)


class TestPerformance:
    def test_default_blend_is_equal_thirds(self):
        agent = _make_agent(resolution_hours=12.0, resolution_rate=0.9, satisfaction=4.5)
        # speed = 1 - 12/48 = 0.75; satisfaction = 0.9
        expected = (0.9 + 0.75 + 0.9) / 3
        assert AgentScoringEngine.performance_score(agent, _config()) == pytest.approx(expected)

    def test_custom_blend(self):
        agent = _make_agent(resolution_hours=48.0, resolution_rate=0.5, satisfaction=5.0)
        config = _config(
            performance_blend=PerformanceBlend(
                resolution_rate_weight=1.0,
                resolution_speed_weight=0.0,
                satisfaction_weight=0.0,
            )
        )
        assert AgentScoringEngine.performance_score(agent, config) == pytest.approx(0.5)

    def test_slow_resolution_never_goes_negative(self):
        agent = _make_agent(resolution_hours=500.0, resolution_rate=0.0, satisfaction=0.0)
        assert AgentScoringEngine.performance_score(agent, _config()) == 0.0

    def test_better_performer_wins_at_equal_workload(self):
        strong = _make_agent(workload=3, resolution_rate=1.0, satisfaction=5.0)
        weak = _make_agent(workload=3, resolution_rate=0.3, satisfaction=2.0)

        ranked = AgentScoringEngine().rank(_ticket(), [weak, strong], _config(), now=_NOW)

        assert ranked[0].agent_id == strong.agent_id


class TestExpertise:
    def test_category_expertise_is_additive_bonus(self):
        category = uuid4()
        expert = _make_agent(workload=4, category_expertise={category: 1.0})
        novice = _make_agent(workload=4)

        ranked = AgentScoringEngine().rank(
            _ticket(category_id=category), [novice, expert], _config(), now=_NOW
        )

        assert ranked[0].agent_id == expert.agent_id
        assert ranked[0].score - ranked[1].score == pytest.approx(1.0)

    def test_subcategory_boosts_category(self):
        category, subcategory = uuid4(), uuid4()
        agent = _make_agent(
            category_expertise={category: 0.4},
            subcategory_expertise={subcategory: 0.9},
        )
        ticket = _ticket(category_id=category, subcategory_id=subcategory)

        assert AgentScoringEngine.expertise_bonus(agent, ticket) == pytest.approx(0.9)

    def test_weaker_subcategory_does_not_lower_category(self):
        category, subcategory = uuid4(), uuid4()
        agent = _make_agent(
            category_expertise={category: 0.8},
            subcategory_expertise={subcategory: 0.2},
        )
        ticket = _ticket(category_id=category, subcategory_id=subcategory)

        assert AgentScoringEngine.expertise_bonus(agent, ticket) == pytest.approx(0.8)

    def test_no_category_means_no_bonus(self):
        agent = _make_agent(category_expertise={uuid4(): 1.0})
        assert AgentScoringEngine.expertise_bonus(agent, _ticket()) == 0.0


class TestDeterminism:
    def test_ties_break_on_workload_then_agent_id(self):
        # Identical scores: workload weight 0 so workload does not move the score
        config = _config(workload_weight=0, performance_weight=50, availability_weight=50)
        a = _make_agent(agent_id=UUID(int=2), workload=1)
        b = _make_agent(agent_id=UUID(int=1), workload=1)
        c = _make_agent(agent_id=UUID(int=3), workload=0)

        ranked = AgentScoringEngine().rank(_ticket(), [a, b, c], config, now=_NOW)

        assert [r.agent_id for r in ranked] == [c.agent_id, b.agent_id, a.agent_id]

    def test_rank_is_idempotent(self):
        agents = [_make_agent(workload=w % 4) for w in range(8)]
        engine = AgentScoringEngine()

        first = engine.rank(_ticket(), agents, _config(), now=_NOW)
        second = engine.rank(_ticket(), list(reversed(agents)), _config(), now=_NOW)

        assert first == second

    def test_removing_top_agent_promotes_runner_up(self):
        agents = [
            _make_agent(workload=w, resolution_rate=r)
            for w, r in ((1, 0.9), (2, 0.7), (5, 0.95), (3, 0.4), (0, 0.2))
        ]
        engine = AgentScoringEngine()
        ranked = engine.rank(_ticket(), agents, _config(), now=_NOW)

        remaining = [a for a in agents if a.agent_id != ranked[0].agent_id]
        reranked = engine.rank(_ticket(), remaining, _config(), now=_NOW)

        assert reranked[0].agent_id == ranked[1].agent_id
        assert [r.agent_id for r in reranked] == [r.agent_id for r in ranked[1:]]
