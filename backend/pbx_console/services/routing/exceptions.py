"""Routing evaluation exceptions."""

from pbx_console.core.exceptions import ConsoleError


class RoutingError(ConsoleError):
    """Base exception for routing evaluation."""


class InvalidPatternError(RoutingError):
    """Raised when a rule or condition pattern is not a valid regular expression."""

    def __init__(self, pattern: str, message: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid pattern {pattern!r}: {message}")
