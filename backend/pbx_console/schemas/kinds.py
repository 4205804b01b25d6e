"""Registry of the resource kinds that share the ordered-collection contract."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pbx_console.schemas.resources import (
    Codec,
    Did,
    Extension,
    OrderedResource,
    RingGroup,
    SipProfile,
    Trunk,
)
from pbx_console.schemas.routing import RoutingRule

R = TypeVar("R", bound=OrderedResource)


@dataclass(frozen=True)
class ResourceKind(Generic[R]):
    """How one resource kind is addressed on the REST API.

    Attributes:
        name: Registry key, also used on the command line.
        path: URL segment under the API prefix (``/api/v1/<path>``).
        list_key: Key holding the array in list and reorder responses.
        model: Pydantic model for one resource.
        label: Singular human-readable name for operator messages.
        id_prefix: Prefix for client-generated ids.
        natural_key: Field that doubles as the id when a new resource has none.
    """

    name: str
    path: str
    list_key: str
    model: type[R]
    label: str
    id_prefix: str
    natural_key: str | None = None

    @property
    def title(self) -> str:
        """Label with its first letter capitalized, for the start of a sentence."""
        return self.label[:1].upper() + self.label[1:]


EXTENSIONS = ResourceKind("extensions", "extensions", "extensions", Extension, "extension", "ext")
TRUNKS = ResourceKind("trunks", "trunks", "trunks", Trunk, "trunk", "trunk")
DIDS = ResourceKind("dids", "dids", "dids", Did, "DID", "did")
RING_GROUPS = ResourceKind("ring_groups", "ring-groups", "ring_groups", RingGroup, "ring group", "rg")
SIP_PROFILES = ResourceKind("sip_profiles", "sip-profiles", "sip_profiles", SipProfile, "SIP profile", "profile")
CODECS = ResourceKind("codecs", "codecs", "codecs", Codec, "codec", "codec", natural_key="name")
ROUTES = ResourceKind("routes", "routes", "routes", RoutingRule, "route", "route")

RESOURCE_KINDS: dict[str, ResourceKind] = {
    kind.name: kind
    for kind in (EXTENSIONS, TRUNKS, DIDS, RING_GROUPS, SIP_PROFILES, CODECS, ROUTES)
}


def get_kind(name: str) -> ResourceKind:
    """Look up a kind by registry name, accepting the URL spelling too."""
    key = name.replace("-", "_")
    try:
        return RESOURCE_KINDS[key]
    except KeyError:
        raise ValueError(f"Unknown resource kind '{name}'. Known: {', '.join(RESOURCE_KINDS)}") from None
