"""Condition matching for routing rules.

Conditions on a rule are AND-ed: a rule applies only when every condition
holds, and an empty condition list always holds. Time-based conditions read
the clock through a ``TimeProvider`` so tests and the simulation harness can
pin "now".
"""

import functools
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import assert_never
from zoneinfo import ZoneInfo

from pbx_console.schemas.routing import (
    CallerIdCondition,
    Condition,
    DateRangeCondition,
    DayOfWeekCondition,
    DestinationCondition,
    TimeCondition,
)
from pbx_console.services.routing.exceptions import InvalidPatternError


@functools.lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile an administrator-supplied pattern exactly as written.

    No flags are added: anchors and case sensitivity are whatever the
    pattern itself says.
    """
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidPatternError(pattern, str(exc)) from exc


def pattern_matches(pattern: str, subject: str) -> bool:
    return compile_pattern(pattern).search(subject) is not None


class TimeProvider(ABC):
    """Source of the current local time for time-based conditions."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware, in the routing timezone."""


class SystemTimeProvider(TimeProvider):
    def __init__(self, timezone: str = "UTC") -> None:
        self._tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz)


class ConditionMatcher:
    """Evaluates routing conditions against a call."""

    def __init__(self, time_provider: TimeProvider | None = None) -> None:
        if time_provider is None:
            from pbx_console.core.config import settings

            time_provider = SystemTimeProvider(settings.ROUTING_TIMEZONE)
        self._time_provider = time_provider

    @property
    def time_provider(self) -> TimeProvider:
        return self._time_provider

    def matches(
        self,
        conditions: list[Condition],
        caller_id: str,
        destination: str,
        now: datetime | None = None,
    ) -> bool:
        """True when every condition holds.

        ``now`` pins the clock for the whole list so one evaluation never
        straddles two instants; it defaults to the provider's current time.
        """
        if not conditions:
            return True
        if now is None:
            now = self._time_provider.now()
        return all(self.match_condition(c, caller_id, destination, now) for c in conditions)

    def match_condition(
        self,
        condition: Condition,
        caller_id: str,
        destination: str,
        now: datetime,
    ) -> bool:
        match condition:
            case TimeCondition():
                return condition.start <= now.time() < condition.end
            case DayOfWeekCondition():
                return now.isoweekday() in condition.days
            case DateRangeCondition():
                return condition.start_date <= now.date() <= condition.end_date
            case CallerIdCondition():
                return pattern_matches(condition.pattern, caller_id) != condition.negate
            case DestinationCondition():
                return pattern_matches(condition.pattern, destination) != condition.negate
            case _:
                assert_never(condition)
