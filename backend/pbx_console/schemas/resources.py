"""Ordered resource schemas.

Every resource kind the console manages shares the same ordering contract
(``id``, ``priority``, ``enabled``); the kinds below add their own fields.
Models are frozen so a collection snapshot can never be edited in place;
use ``model_copy(update=...)`` to derive a changed resource.
"""

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrderedResource(BaseModel):
    # Unknown server fields are kept so an update round-trips them untouched.
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1, description="Opaque id, unique within its collection")
    priority: int = Field(default=0, ge=0, description="Lower value is evaluated/displayed first")
    enabled: bool = True


def new_resource_id(prefix: str) -> str:
    """Fresh client-side id for a resource about to be created."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Concrete kinds
# ---------------------------------------------------------------------------


class Extension(OrderedResource):
    extension: str = Field(..., min_length=1)
    display_name: str = ""
    password: str | None = None
    voicemail_enabled: bool = False


class Trunk(OrderedResource):
    name: str = Field(..., min_length=1)
    description: str | None = None
    host: str = Field(..., min_length=1)
    port: int = Field(default=5060, ge=1, le=65535)
    username: str | None = None
    password: str | None = None


class Did(OrderedResource):
    number: str = Field(..., min_length=1)
    description: str | None = None
    destination: str = ""


class RingStrategy(str, Enum):
    SIMULTANEOUS = "simultaneous"
    SEQUENTIAL = "sequential"
    ROUND_ROBIN = "round_robin"


class RingGroup(OrderedResource):
    name: str = Field(..., min_length=1)
    description: str | None = None
    extensions: list[str] = Field(default_factory=list)
    strategy: RingStrategy = RingStrategy.SIMULTANEOUS
    timeout_seconds: int = Field(default=30, gt=0)


class SipProfile(OrderedResource):
    name: str = Field(..., min_length=1)
    description: str | None = None
    bind_address: str = "0.0.0.0"
    bind_port: int = Field(default=5060, ge=1, le=65535)
    domain: str = ""


class Codec(OrderedResource):
    """Audio codec; codecs are keyed by name, so ``id`` defaults to it."""

    name: str = Field(..., min_length=1)
    payload_type: int = Field(..., ge=0, le=127)
    clock_rate: int = Field(default=8000, gt=0)
    channels: int = Field(default=1, ge=1)
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("name"):
            return {**data, "id": data["name"]}
        return data
