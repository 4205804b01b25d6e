"""pbx-console: command-line admin console.

Examples:
    pbx-console list routes
    pbx-console move routes route-after-hours 0
    pbx-console delete trunks trunk-3f2a9c
    pbx-console test-call +15551234567 1001            # local preview
    pbx-console test-call +15551234567 1001 --remote   # ask the server
    pbx-console compare +15551234567 1001
    pbx-console serve --port 8080
"""

import argparse
import asyncio
import logging
import sys

from pbx_console.core.config import settings
from pbx_console.core.exceptions import ConsoleError
from pbx_console.schemas.kinds import RESOURCE_KINDS, ROUTES, ResourceKind, get_kind
from pbx_console.schemas.resources import OrderedResource
from pbx_console.services.api_client import ConsoleApiClient
from pbx_console.services.collections import ActionResult, CollectionController
from pbx_console.services.simulation import SimulationHarness, SimulationMode, SimulationReport

logger = logging.getLogger(__name__)


def _describe(item: OrderedResource) -> str:
    fields = item.model_dump(mode="json", exclude={"id", "priority", "enabled"}, exclude_none=True)
    summary = ", ".join(f"{key}={value}" for key, value in fields.items() if value not in ("", [], {}))
    state = "" if item.enabled else "  [disabled]"
    return f"{item.priority:>4}  {item.id:<24} {summary}{state}"


def _print_result(result: ActionResult) -> int:
    print(result.message)
    for item in result.snapshot:
        print(_describe(item))
    return 0 if result.ok else 1


def _print_report(report: SimulationReport) -> None:
    print(f"[{report.mode.value}] {report.caller_id} → {report.destination}: {report.summary}")
    if report.matched_rule_ids:
        print(f"  matched rules: {', '.join(report.matched_rule_ids)}")


async def _controller(api: ConsoleApiClient, kind: ResourceKind) -> CollectionController:
    controller = CollectionController(kind, api.resource(kind))
    result = await controller.load()
    if not result.ok:
        raise SystemExit(result.message)
    return controller


async def cmd_list(api: ConsoleApiClient, args: argparse.Namespace) -> int:
    controller = CollectionController(args.kind, api.resource(args.kind))
    return _print_result(await controller.load())


async def cmd_move(api: ConsoleApiClient, args: argparse.Namespace) -> int:
    controller = await _controller(api, args.kind)
    return _print_result(await controller.move(args.id, args.index))


async def cmd_delete(api: ConsoleApiClient, args: argparse.Namespace) -> int:
    controller = await _controller(api, args.kind)
    return _print_result(await controller.delete(args.id))


async def cmd_test_call(api: ConsoleApiClient, args: argparse.Namespace) -> int:
    if args.remote:
        harness = SimulationHarness(client=api)
        report = await harness.simulate(args.caller_id, args.destination, SimulationMode.REMOTE)
    else:
        controller = await _controller(api, ROUTES)
        harness = SimulationHarness(routes=controller.store)
        report = await harness.simulate(args.caller_id, args.destination, SimulationMode.LOCAL)
    _print_report(report)
    return 0


async def cmd_compare(api: ConsoleApiClient, args: argparse.Namespace) -> int:
    controller = await _controller(api, ROUTES)
    harness = SimulationHarness(routes=controller.store, client=api)
    comparison = await harness.compare(args.caller_id, args.destination)
    _print_report(comparison.local)
    _print_report(comparison.remote)
    if comparison.agrees:
        print("Local preview agrees with the server")
        return 0
    for difference in comparison.differences:
        print(f"  differs: {difference}")
    return 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    logger.info("Starting reference API on %s:%d", args.host, args.port)
    uvicorn.run("pbx_console.main:app", host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())
    return 0


COMMANDS = {
    "list": cmd_list,
    "move": cmd_move,
    "delete": cmd_delete,
    "test-call": cmd_test_call,
    "compare": cmd_compare,
}


def _kind(value: str) -> ResourceKind:
    try:
        return get_kind(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pbx-console", description="PBX admin console")
    parser.add_argument("--base-url", default=None, help=f"API base URL (default: {settings.API_BASE_URL})")
    parser.add_argument("--token", default=None, help="Bearer token (default: API_TOKEN)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    kinds = ", ".join(RESOURCE_KINDS)

    p = sub.add_parser("list", help="List a collection in evaluation order")
    p.add_argument("kind", type=_kind, help=kinds)

    p = sub.add_parser("move", help="Move a resource to a new position")
    p.add_argument("kind", type=_kind, help=kinds)
    p.add_argument("id")
    p.add_argument("index", type=int)

    p = sub.add_parser("delete", help="Delete a resource")
    p.add_argument("kind", type=_kind, help=kinds)
    p.add_argument("id")

    for name, help_text in (("test-call", "Simulate routing of a call"), ("compare", "Compare local and server routing")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("caller_id")
        p.add_argument("destination")
        if name == "test-call":
            p.add_argument("--remote", action="store_true", help="Ask the server instead of evaluating locally")

    p = sub.add_parser("serve", help="Run the in-memory reference API server")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8080)

    return parser


async def run(args: argparse.Namespace) -> int:
    async with ConsoleApiClient(base_url=args.base_url, token=args.token) as api:
        try:
            return await COMMANDS[args.command](api, args)
        except ConsoleError as exc:
            logger.error("%s failed: %s", args.command, exc)
            print(f"Error: {exc}", file=sys.stderr)
            return 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.command == "serve":
        return cmd_serve(args)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
