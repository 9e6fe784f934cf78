import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import RULES_CACHE_KEY
from app.core.exceptions import AssignmentRuleNotFoundError, DuplicateRulePriorityError
from app.core.time_windows import start_of_local_day
from app.repositories.assignment_log_repository import AssignmentLogRepository
from app.repositories.assignment_rule_repository import AssignmentRuleRepository
from app.schemas.assignment import RuleOutcome
from app.schemas.assignment_rule import (
    AssignmentRule,
    AssignmentRuleCreate,
    AssignmentRuleUpdate,
    RuleStatistics,
)
from app.schemas.ticket import TicketContext
from app.services.rule_engine import AssignmentRuleEngine

logger = logging.getLogger(__name__)


class AssignmentRuleService:
    """CRUD and dry-run evaluation for assignment rules.

    The ordered list of enabled rules is cached in Redis for
    ``RULES_CACHE_TTL`` seconds; every write invalidates it.  Enabled
    rules must have distinct priorities: the check here gives a clean
    409, the partial unique index catches concurrent writers.
    """

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        engine: Optional[AssignmentRuleEngine] = None,
    ) -> None:
        self._cache: CacheService = cache or CacheService()
        self._engine = engine or AssignmentRuleEngine()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_rules(self, rule_repo: AssignmentRuleRepository) -> List[AssignmentRule]:
        """All rules (enabled and disabled) in evaluation order."""
        return self._validate_rows(await rule_repo.list_ordered())

    async def get_rule(self, rule_id: UUID, rule_repo: AssignmentRuleRepository) -> AssignmentRule:
        row = await rule_repo.get_by_id(rule_id)
        if row is None:
            raise AssignmentRuleNotFoundError(f"Assignment rule {rule_id} not found")
        return AssignmentRule.model_validate(row)

    async def get_active_rules(self, rule_repo: AssignmentRuleRepository) -> List[AssignmentRule]:
        """Enabled rules in evaluation order, served from cache when possible."""
        cached = await self._cache.get_json(RULES_CACHE_KEY)
        if cached is not None:
            try:
                return [AssignmentRule.model_validate(item) for item in cached]
            except ValidationError:
                logger.warning("Discarding invalid cached assignment rules")

        rules = self._validate_rows(await rule_repo.list_ordered(enabled_only=True))
        await self._cache.set_json(
            RULES_CACHE_KEY,
            [r.model_dump(mode="json") for r in rules],
            ttl=settings.RULES_CACHE_TTL,
        )
        return rules

    async def evaluate(
        self,
        ticket: TicketContext,
        rule_repo: AssignmentRuleRepository,
        *,
        timezone: str = "UTC",
        now: Optional[datetime] = None,
    ) -> RuleOutcome:
        """Dry-run the rule engine for *ticket* without assigning anything."""
        rules = await self.get_active_rules(rule_repo)
        return self._engine.evaluate(ticket, rules, timezone=timezone, now=now)

    async def get_statistics(
        self,
        rule_repo: AssignmentRuleRepository,
        log_repo: AssignmentLogRepository,
        *,
        timezone: str = "UTC",
        now: Optional[datetime] = None,
    ) -> RuleStatistics:
        """Rule counts and how many of today's assignments matched a rule.

        "Today" starts at local midnight in *timezone*.
        """
        rows = await rule_repo.list_ordered()
        total, by_rule = await log_repo.count_since(start_of_local_day(now, timezone))
        return RuleStatistics(
            total_rules=len(rows),
            active_rules=sum(1 for row in rows if row.enabled),
            assignments_today=total,
            rule_assignments_today=by_rule,
            rule_match_rate=round(by_rule / total * 100, 1) if total else 0.0,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_rule(
        self, data: AssignmentRuleCreate, rule_repo: AssignmentRuleRepository
    ) -> AssignmentRule:
        if data.enabled:
            await self._ensure_priority_free(data.priority, rule_repo)

        try:
            row = await rule_repo.create(
                name=data.name,
                description=data.description,
                priority=data.priority,
                enabled=data.enabled,
                conditions=data.conditions.model_dump(mode="json", exclude_none=True),
                actions=data.actions.model_dump(mode="json", exclude_none=True),
            )
            await rule_repo.commit()
        except IntegrityError as exc:
            await rule_repo.rollback()
            raise DuplicateRulePriorityError() from exc

        await self._invalidate()
        logger.info("Created assignment rule %s (priority %d)", row.rule_id, row.priority)
        return AssignmentRule.model_validate(row)

    async def update_rule(
        self,
        rule_id: UUID,
        data: AssignmentRuleUpdate,
        rule_repo: AssignmentRuleRepository,
    ) -> AssignmentRule:
        row = await rule_repo.get_by_id(rule_id)
        if row is None:
            raise AssignmentRuleNotFoundError(f"Assignment rule {rule_id} not found")

        values = data.model_dump(exclude_unset=True)
        if "conditions" in values:
            values["conditions"] = (
                data.conditions.model_dump(mode="json", exclude_none=True)
                if data.conditions is not None
                else {}
            )
        if "actions" in values:
            values["actions"] = (
                data.actions.model_dump(mode="json", exclude_none=True)
                if data.actions is not None
                else {}
            )
        for required in ("name", "priority", "enabled"):
            if required in values and values[required] is None:
                values.pop(required)

        priority = values.get("priority", row.priority)
        enabled = values.get("enabled", row.enabled)
        if enabled:
            await self._ensure_priority_free(priority, rule_repo, exclude_id=rule_id)

        return await self._save(row, values, rule_repo)

    async def toggle_rule(self, rule_id: UUID, rule_repo: AssignmentRuleRepository) -> AssignmentRule:
        """Flip ``enabled``; re-enabling checks the priority is still free."""
        row = await rule_repo.get_by_id(rule_id)
        if row is None:
            raise AssignmentRuleNotFoundError(f"Assignment rule {rule_id} not found")

        enabled = not row.enabled
        if enabled:
            await self._ensure_priority_free(row.priority, rule_repo, exclude_id=rule_id)
        return await self._save(row, {"enabled": enabled}, rule_repo)

    async def delete_rule(self, rule_id: UUID, rule_repo: AssignmentRuleRepository) -> None:
        row = await rule_repo.get_by_id(rule_id)
        if row is None:
            raise AssignmentRuleNotFoundError(f"Assignment rule {rule_id} not found")
        await rule_repo.delete(row)
        await rule_repo.commit()
        await self._invalidate()
        logger.info("Deleted assignment rule %s", rule_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _save(self, row, values: dict, rule_repo: AssignmentRuleRepository) -> AssignmentRule:
        try:
            row = await rule_repo.update(row, values)
            await rule_repo.commit()
        except IntegrityError as exc:
            await rule_repo.rollback()
            raise DuplicateRulePriorityError() from exc

        await self._invalidate()
        return AssignmentRule.model_validate(row)

    @staticmethod
    async def _ensure_priority_free(
        priority: int,
        rule_repo: AssignmentRuleRepository,
        exclude_id: Optional[UUID] = None,
    ) -> None:
        clash = await rule_repo.find_enabled_by_priority(priority, exclude_id=exclude_id)
        if clash is not None:
            raise DuplicateRulePriorityError(
                f"Enabled rule '{clash.name}' already uses priority {priority}"
            )

    async def _invalidate(self) -> None:
        await self._cache.delete(RULES_CACHE_KEY)

    @staticmethod
    def _validate_rows(rows: Iterable) -> List[AssignmentRule]:
        """Convert ORM rows, skipping any whose JSON no longer validates."""
        rules: List[AssignmentRule] = []
        for row in rows:
            try:
                rules.append(AssignmentRule.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping invalid assignment rule %s: %s", row.rule_id, exc)
        return rules
