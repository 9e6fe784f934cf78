import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.core.time_windows import window_contains
from app.schemas.assignment import RuleOutcome
from app.schemas.assignment_rule import AssignmentRule
from app.schemas.ticket import TicketContext

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AssignmentRuleEngine:
    """Evaluate ordered assignment rules against a ticket.

    Rules are read-only input.  Enabled rules are visited in ascending
    ``priority`` (creation order breaks ties) and the first rule whose
    conditions all hold decides the outcome:

    - ``assign_to_agent`` / ``assign_to_team`` set → ``pinned``
    - neither set → ``no_match`` carrying the rule's directives, so the
      dispatcher can still apply ``require_skills`` and SLA hints

    Conditions inside a rule are AND-ed; a rule without conditions is a
    catch-all.  A rule that cannot be evaluated (bad ``time_of_day``,
    unknown time zone) is skipped with a warning.
    """

    def evaluate(
        self,
        ticket: TicketContext,
        rules: Iterable[AssignmentRule],
        *,
        timezone: str = "UTC",
        now: Optional[datetime] = None,
    ) -> RuleOutcome:
        for rule in self.order_rules(rules):
            try:
                matched = self._matches(rule, ticket, timezone, now)
            except (ValueError, KeyError) as exc:
                logger.warning("Skipping malformed assignment rule %s (%s): %s", rule.id, rule.name, exc)
                continue
            if not matched:
                continue

            actions = rule.actions
            if actions.assign_to_agent or actions.assign_to_team:
                logger.debug("Rule %s pinned ticket %s", rule.name, ticket.ticket_id)
                return RuleOutcome.pinned_by(rule)
            return RuleOutcome.no_match(rule)

        return RuleOutcome.no_match()

    @staticmethod
    def order_rules(rules: Iterable[AssignmentRule]) -> List[AssignmentRule]:
        """Enabled rules, ascending priority, stable on creation time."""
        enabled = [r for r in rules if r.enabled]
        return sorted(enabled, key=lambda r: (r.priority, r.created_at or _EPOCH))

    def _matches(
        self,
        rule: AssignmentRule,
        ticket: TicketContext,
        tz_name: str,
        now: Optional[datetime],
    ) -> bool:
        cond = rule.conditions

        if cond.categories and ticket.category_id not in cond.categories:
            return False

        if cond.priorities and ticket.priority not in cond.priorities:
            return False

        if cond.customer_tiers:
            tiers = {t.lower() for t in cond.customer_tiers}
            if not ticket.customer_tier or ticket.customer_tier.lower() not in tiers:
                return False

        terms = cond.keyword_terms
        if terms:
            haystack = ticket.haystack
            if not any(term in haystack for term in terms):
                return False

        if cond.time_of_day is not None:
            window = cond.time_of_day
            if not window_contains(window.start, window.end, now, tz_name):
                return False

        return True
