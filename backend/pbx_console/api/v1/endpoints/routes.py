"""Route simulation endpoint: how would the server route this call now?"""

import logging

from fastapi import APIRouter, HTTPException, Request

from pbx_console.schemas.api import RouteTestRequest, RouteTestResponse
from pbx_console.schemas.kinds import ROUTES
from pbx_console.services.routing import InvalidPatternError, RouteEvaluator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/test", response_model=RouteTestResponse, response_model_exclude_none=True)
async def simulate_route(payload: RouteTestRequest, request: Request):
    """Evaluate the stored routes against a caller id and dialed number."""
    evaluator: RouteEvaluator = request.app.state.evaluator
    rules = request.app.state.collections[ROUTES.name].all()
    try:
        result = evaluator.evaluate(rules, payload.caller_id, payload.destination)
    except InvalidPatternError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not result.matched:
        return RouteTestResponse(matched=False, message="No route matched")

    logger.info(
        "Route test %s → %s matched '%s'",
        payload.caller_id,
        payload.destination,
        result.rule_name,
    )
    return RouteTestResponse(
        matched=True,
        route_id=result.rule_id,
        route_name=result.rule_name,
        destination=result.destination,
        action=result.action,
    )
