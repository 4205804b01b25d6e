"""Request/response envelopes of the platform REST API."""

from pydantic import BaseModel, Field

from pbx_console.schemas.routing import Destination, RouteAction


class ReorderRequest(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class OperationResponse(BaseModel):
    """Body returned by create, update and delete."""

    success: bool
    message: str = ""
    id: str | None = None


class RouteTestRequest(BaseModel):
    caller_id: str
    destination: str


class RouteTestResponse(BaseModel):
    success: bool = True
    matched: bool
    route_id: str | None = None
    route_name: str | None = None
    destination: Destination | None = None
    action: RouteAction | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
