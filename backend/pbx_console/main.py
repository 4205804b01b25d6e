import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pbx_console.api.v1.router import api_v1_router
from pbx_console.core.config import settings
from pbx_console.schemas.api import HealthResponse
from pbx_console.services.reference import CollectionRegistry
from pbx_console.services.routing import ConditionMatcher, RouteEvaluator, TimeProvider

logger = logging.getLogger(__name__)


def create_app(
    collections: CollectionRegistry | None = None,
    time_provider: TimeProvider | None = None,
) -> FastAPI:
    """Reference authority server holding every collection in memory."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.collections = collections if collections is not None else CollectionRegistry.with_defaults()
    app.state.evaluator = RouteEvaluator(ConditionMatcher(time_provider))

    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        return HealthResponse(status="healthy", service=settings.SERVICE_NAME, version=settings.SERVICE_VERSION)

    logger.info("Reference API ready (routing timezone=%s)", settings.ROUTING_TIMEZONE)
    return app


app = create_app()
