from fastapi import APIRouter

from pbx_console.api.v1.endpoints import routes
from pbx_console.api.v1.endpoints.collections import build_collection_router
from pbx_console.schemas.kinds import RESOURCE_KINDS

api_v1_router = APIRouter()

api_v1_router.include_router(routes.router, prefix="/routes", tags=["routes"])

for _kind in RESOURCE_KINDS.values():
    api_v1_router.include_router(build_collection_router(_kind), prefix=f"/{_kind.path}", tags=[_kind.path])
