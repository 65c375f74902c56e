"""FastAPI server for the Self-Service Portal.

Main entry point for the API server. The ERP client and the resource
services are created in the lifespan handler and kept on ``app.state``;
tests pass ready-made services instead.

Usage:
    python -m api.server
    uvicorn api.server:create_app --factory
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.routes import dashboard, health, leave, resources
from connectors.erp_base import create_connector
from core import __version__
from core.config import AppSettings, load_settings
from core.observability.logging import configure_logging, get_logger, with_correlation
from services.registry import PortalServices

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    if app.state.services is not None:
        yield
        return

    settings: AppSettings = app.state.settings or load_settings()
    client = create_connector(settings.erp)
    await client.connect()
    app.state.services = PortalServices(client)
    logger.info(f"Self-Service Portal API starting up (ERP company '{settings.erp.company}')")

    try:
        yield
    finally:
        await client.disconnect()
        app.state.services = None
        logger.info("Self-Service Portal API shutting down")


def create_app(
    settings: Optional[AppSettings] = None,
    services: Optional[PortalServices] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Loaded from the environment at startup when omitted
        services: Pre-built services; skips ERP connection management
    """
    if settings is not None:
        configure_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title="Self-Service Portal API",
        description="Employee self-service backed by Business Central OData web services",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins) if settings else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "ETag"],
    )

    @app.middleware("http")
    async def correlate_request(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        with with_correlation(request_id=request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(resources.router, prefix="/resources", tags=["Resources"])
    app.include_router(leave.router, prefix="/leave", tags=["Leave"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level, json_format=settings.log_json)
    uvicorn.run("api.server:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
