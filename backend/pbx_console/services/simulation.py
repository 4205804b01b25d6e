"""Route simulation: "what happens to this call?"

Runs the route evaluator over the routes collection the console currently
holds (local preview), or asks the server via ``POST /routes/test`` (remote),
and renders the result for the operator. ``compare`` runs both and reports
where the local preview and the server disagree.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pbx_console.schemas.api import RouteTestResponse
from pbx_console.schemas.routing import Destination, RouteAction, RoutingRule
from pbx_console.services.api_client.client import ConsoleApiClient
from pbx_console.services.collections.store import OrderedCollectionStore
from pbx_console.services.routing.evaluator import MatchResult, RouteEvaluator

logger = logging.getLogger(__name__)

NO_ROUTE_MESSAGE = "No route matched"


class SimulationMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class SimulationReport:
    """Outcome of one simulated call, in either mode."""

    mode: SimulationMode
    caller_id: str
    destination: str
    matched: bool
    route_id: str | None = None
    route_name: str | None = None
    action: RouteAction | None = None
    target: Destination | None = None
    matched_rule_ids: tuple[str, ...] = field(default=())
    message: str | None = None

    @property
    def summary(self) -> str:
        if not self.matched:
            return self.message or NO_ROUTE_MESSAGE
        action = self.action.value if self.action else "accept"
        return f"Matched route '{self.route_name}' ({self.route_id}): {action} → {self.target}"

    @classmethod
    def from_match(cls, caller_id: str, destination: str, result: MatchResult) -> "SimulationReport":
        return cls(
            mode=SimulationMode.LOCAL,
            caller_id=caller_id,
            destination=destination,
            matched=result.matched,
            route_id=result.rule_id,
            route_name=result.rule_name,
            action=result.action,
            target=result.destination,
            matched_rule_ids=result.matched_rule_ids,
        )

    @classmethod
    def from_response(cls, caller_id: str, destination: str, response: RouteTestResponse) -> "SimulationReport":
        return cls(
            mode=SimulationMode.REMOTE,
            caller_id=caller_id,
            destination=destination,
            matched=response.matched,
            route_id=response.route_id,
            route_name=response.route_name,
            action=response.action,
            target=response.destination,
            message=response.message,
        )


@dataclass(frozen=True)
class SimulationComparison:
    local: SimulationReport
    remote: SimulationReport

    @property
    def differences(self) -> list[str]:
        diffs = []
        for attr in ("matched", "route_id", "action", "target"):
            local_value = getattr(self.local, attr)
            remote_value = getattr(self.remote, attr)
            if local_value != remote_value:
                diffs.append(f"{attr}: local={local_value} server={remote_value}")
        return diffs

    @property
    def agrees(self) -> bool:
        return not self.differences


class SimulationHarness:
    """Simulates calls against the held routes and/or the server.

    Args:
        routes: Store holding the routes collection (local mode).
        client: API client (remote mode).
        evaluator: Evaluator for local mode; its clock is read at invocation.
    """

    def __init__(
        self,
        routes: OrderedCollectionStore[RoutingRule] | None = None,
        client: ConsoleApiClient | None = None,
        evaluator: RouteEvaluator | None = None,
    ) -> None:
        self._routes = routes
        self._client = client
        self._evaluator = evaluator or RouteEvaluator()

    def simulate_local(self, caller_id: str, destination: str, now: datetime | None = None) -> SimulationReport:
        if self._routes is None:
            raise ValueError("Local simulation needs a routes collection")
        rules = list(self._routes.snapshot)
        result = self._evaluator.evaluate(rules, caller_id, destination, now=now)
        report = SimulationReport.from_match(caller_id, destination, result)
        logger.info("Local simulation %s → %s: %s", caller_id, destination, report.summary)
        return report

    async def simulate_remote(self, caller_id: str, destination: str) -> SimulationReport:
        if self._client is None:
            raise ValueError("Remote simulation needs an API client")
        response = await self._client.test_route(caller_id, destination)
        report = SimulationReport.from_response(caller_id, destination, response)
        logger.info("Server simulation %s → %s: %s", caller_id, destination, report.summary)
        return report

    async def simulate(
        self,
        caller_id: str,
        destination: str,
        mode: SimulationMode = SimulationMode.LOCAL,
    ) -> SimulationReport:
        match mode:
            case SimulationMode.LOCAL:
                return self.simulate_local(caller_id, destination)
            case SimulationMode.REMOTE:
                return await self.simulate_remote(caller_id, destination)

    async def compare(self, caller_id: str, destination: str) -> SimulationComparison:
        """Run the same call locally and on the server."""
        local = self.simulate_local(caller_id, destination)
        remote = await self.simulate_remote(caller_id, destination)
        comparison = SimulationComparison(local=local, remote=remote)
        if not comparison.agrees:
            logger.warning(
                "Local preview and server disagree for %s → %s: %s",
                caller_id,
                destination,
                "; ".join(comparison.differences),
            )
        return comparison
