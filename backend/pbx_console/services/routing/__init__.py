"""Routing rule evaluation: condition matching and the route evaluator."""

from pbx_console.services.routing.conditions import (
    ConditionMatcher,
    SystemTimeProvider,
    TimeProvider,
    compile_pattern,
)
from pbx_console.services.routing.evaluator import (
    NO_MATCH,
    MatchResult,
    RouteEvaluator,
    evaluate,
    evaluation_order,
)
from pbx_console.services.routing.exceptions import InvalidPatternError, RoutingError

__all__ = [
    "NO_MATCH",
    "ConditionMatcher",
    "InvalidPatternError",
    "MatchResult",
    "RouteEvaluator",
    "RoutingError",
    "SystemTimeProvider",
    "TimeProvider",
    "compile_pattern",
    "evaluate",
    "evaluation_order",
]
