"""Call routing evaluation.

Decides, for a caller id and a dialed destination, which routing rule
applies and what happens to the call.

Evaluation flow:
    1. Keep enabled rules, stable-sorted by ascending priority (rules that
       share a priority keep their collection order)
    2. Skip rules whose pattern does not match the dialed destination
    3. Skip rules whose conditions do not all hold
    4. A matching ``accept`` or ``reject`` rule becomes the candidate result;
       a matching ``continue`` rule records nothing
    5. Stop at the first matching rule that is not ``continue`` and has
       ``continue_on_match`` unset; otherwise keep going and the last
       candidate wins
    6. No candidate → no match
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from pbx_console.schemas.routing import Destination, RouteAction, RoutingRule
from pbx_console.services.routing.conditions import ConditionMatcher, pattern_matches

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating one call against a rule set."""

    matched: bool
    rule: RoutingRule | None = None
    action: RouteAction | None = None
    destination: Destination | None = None
    matched_rule_ids: tuple[str, ...] = field(default=())

    @property
    def rule_id(self) -> str | None:
        return self.rule.id if self.rule else None

    @property
    def rule_name(self) -> str | None:
        return self.rule.name if self.rule else None


NO_MATCH = MatchResult(matched=False)


def evaluation_order(rules: Iterable[RoutingRule]) -> list[RoutingRule]:
    """Enabled rules in the order they are evaluated.

    ``sorted`` is stable, so equal priorities keep their original order.
    """
    return sorted((r for r in rules if r.enabled), key=lambda r: r.priority)


class RouteEvaluator:
    """Pure evaluator over an ordered rule list."""

    def __init__(self, matcher: ConditionMatcher | None = None) -> None:
        self._matcher = matcher or ConditionMatcher()

    @property
    def matcher(self) -> ConditionMatcher:
        return self._matcher

    def rule_matches(
        self,
        rule: RoutingRule,
        caller_id: str,
        destination: str,
        now: datetime,
    ) -> bool:
        if not pattern_matches(rule.pattern, destination):
            return False
        return self._matcher.matches(rule.conditions, caller_id, destination, now=now)

    def evaluate(
        self,
        rules: Sequence[RoutingRule],
        caller_id: str,
        destination: str,
        now: datetime | None = None,
    ) -> MatchResult:
        """Evaluate a call against ``rules``.

        Args:
            rules: The collection as currently held, in collection order.
            caller_id: Calling party identity.
            destination: Dialed number.
            now: Instant used for time-based conditions; read from the
                matcher's clock when omitted.

        Returns:
            MatchResult; ``matched`` is False when no rule produced a result.

        Raises:
            InvalidPatternError: A rule or condition pattern does not compile.
        """
        if now is None:
            now = self._matcher.time_provider.now()

        candidate = NO_MATCH
        matched_ids: list[str] = []

        for rule in evaluation_order(rules):
            if not self.rule_matches(rule, caller_id, destination, now):
                continue

            matched_ids.append(rule.id)

            if rule.action == RouteAction.CONTINUE:
                logger.debug("Rule '%s' (id=%s) matched with action=continue", rule.name, rule.id)
                continue

            candidate = MatchResult(
                matched=True,
                rule=rule,
                action=rule.action,
                destination=rule.destination,
            )

            if not rule.continue_on_match:
                break

            logger.debug(
                "Rule '%s' (id=%s) matched (%s) with continue_on_match, evaluating further",
                rule.name,
                rule.id,
                rule.action.value,
            )

        if not candidate.matched:
            logger.debug("No rule matched caller=%s destination=%s", caller_id, destination)
            return MatchResult(matched=False, matched_rule_ids=tuple(matched_ids))

        logger.debug(
            "Call caller=%s destination=%s resolved by rule '%s' → %s %s",
            caller_id,
            destination,
            candidate.rule_name,
            candidate.action.value,
            candidate.destination,
        )
        return MatchResult(
            matched=True,
            rule=candidate.rule,
            action=candidate.action,
            destination=candidate.destination,
            matched_rule_ids=tuple(matched_ids),
        )


def evaluate(
    rules: Sequence[RoutingRule],
    caller_id: str,
    destination: str,
    now: datetime | None = None,
) -> MatchResult:
    """Evaluate with a default matcher on the configured routing clock."""
    return RouteEvaluator().evaluate(rules, caller_id, destination, now=now)
