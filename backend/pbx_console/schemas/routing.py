"""Routing rule schemas: destinations, conditions and the rule itself.

Wire shapes follow the platform's REST API:

    destination  {"type": "Extension", "value": "1000"}  ("value" omitted for Hangup)
    condition    {"type": "CallerId", "pattern": "^\\+1", "negate": false}
    rule         {"id", "name", "pattern", "destination", "enabled", "priority",
                  "conditions", "action", "continue_on_match"}

Legacy records store ``destination`` as a bare string; it decodes to a
``Custom`` destination carrying that string.
"""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
    model_validator,
)

from pbx_console.schemas.resources import OrderedResource

_TIME_FORMAT = "%H:%M"


def validate_pattern(pattern: str) -> str:
    """Reject patterns that do not compile as regular expressions."""
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc
    return pattern


RegexPattern = Annotated[str, AfterValidator(validate_pattern)]


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock string."""
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"invalid time {value!r}, expected HH:MM")
    return datetime.strptime(value, _TIME_FORMAT).time()


# ---------------------------------------------------------------------------
# Destination
# ---------------------------------------------------------------------------


class DestinationType(str, Enum):
    EXTENSION = "Extension"
    TRUNK = "Trunk"
    RING_GROUP = "RingGroup"
    VOICEMAIL = "Voicemail"
    HANGUP = "Hangup"
    CUSTOM = "Custom"


class Destination(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: DestinationType
    value: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _decode_legacy_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": DestinationType.CUSTOM, "value": data}
        if isinstance(data, dict) and data.get("value") == "":
            data = {k: v for k, v in data.items() if k != "value"}
        return data

    @model_validator(mode="after")
    def _check_value(self) -> "Destination":
        if self.type == DestinationType.HANGUP:
            if self.value is not None:
                raise ValueError("Hangup destination does not take a value")
        elif self.type != DestinationType.CUSTOM and not (self.value and self.value.strip()):
            raise ValueError(f"{self.type.value} destination requires a non-empty value")
        return self

    @model_serializer(mode="wrap")
    def _omit_missing_value(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if data.get("value") is None:
            data.pop("value", None)
        return data

    def __str__(self) -> str:
        if self.value is None:
            return self.type.value
        return f"{self.type.value}:{self.value}"


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class TimeCondition(BaseModel):
    """Active while the local wall clock is in ``[start_time, end_time)``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Time"] = "Time"
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_clock(cls, v: str) -> str:
        parse_clock(v)
        return v

    @model_validator(mode="after")
    def _check_window(self) -> "TimeCondition":
        if self.end <= self.start:
            raise ValueError(
                f"end_time {self.end_time} must be after start_time {self.start_time} "
                "(windows crossing midnight are not supported)"
            )
        return self

    @property
    def start(self) -> time:
        return parse_clock(self.start_time)

    @property
    def end(self) -> time:
        return parse_clock(self.end_time)


class DayOfWeekCondition(BaseModel):
    """Active on the listed ISO weekdays (1=Monday .. 7=Sunday)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["DayOfWeek"] = "DayOfWeek"
    days: list[int]

    @field_validator("days")
    @classmethod
    def _check_days(cls, v: list[int]) -> list[int]:
        bad = [d for d in v if not 1 <= d <= 7]
        if bad:
            raise ValueError(f"days must be ISO weekdays 1..7, got {bad}")
        return sorted(set(v))


class DateRangeCondition(BaseModel):
    """Active from ``start_date`` through ``end_date``, both inclusive."""

    model_config = ConfigDict(frozen=True)

    type: Literal["DateRange"] = "DateRange"
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self) -> "DateRangeCondition":
        if self.end_date < self.start_date:
            raise ValueError(f"end_date {self.end_date} is before start_date {self.start_date}")
        return self


class CallerIdCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["CallerId"] = "CallerId"
    pattern: RegexPattern
    negate: bool = False


class DestinationCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Destination"] = "Destination"
    pattern: RegexPattern
    negate: bool = False


Condition = Annotated[
    TimeCondition | DayOfWeekCondition | DateRangeCondition | CallerIdCondition | DestinationCondition,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Routing rule
# ---------------------------------------------------------------------------


class RouteAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CONTINUE = "continue"


class RoutingRule(OrderedResource):
    name: str = Field(..., min_length=1)
    description: str | None = None
    pattern: RegexPattern = Field(..., min_length=1, description="Regex matched against the dialed destination")
    destination: Destination
    conditions: list[Condition] = Field(default_factory=list)
    action: RouteAction = RouteAction.ACCEPT
    continue_on_match: bool = False

    @field_validator("conditions", mode="before")
    @classmethod
    def _null_conditions(cls, v: Any) -> Any:
        return [] if v is None else v
