"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS,
optional Sentry, and a lifespan that wires the store, clients, project
host strategy, workflow and background queue onto app.state.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.dealbridge.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.dealbridge.api.v1.router import router as v1_router
from src.dealbridge.auth.basecamp_oauth import BasecampOAuth
from src.dealbridge.config import Settings, get_settings
from src.dealbridge.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.dealbridge.crm.hubspot import HubSpotClient
from src.dealbridge.events.queue import ReconciliationQueue
from src.dealbridge.observability.debug_log import DebugLog
from src.dealbridge.projects.host import build_project_host
from src.dealbridge.projects.store import ProjectStore
from src.dealbridge.projects.workflow import ReconciliationWorkflow

logger = structlog.get_logger(__name__)


def init_state(app: FastAPI, settings: Settings) -> None:
    """Build every runtime component and attach it to app.state.

    The queue worker is not started here; the lifespan (or a test) does
    that once an event loop is running.
    """
    app.state.settings = settings
    app.state.debug_log = DebugLog(maxlen=settings.DEBUG_LOG_SIZE)
    app.state.project_store = ProjectStore(settings.PROJECTS_FILE)

    hubspot_client = None
    if settings.hubspot_configured:
        hubspot_client = HubSpotClient(
            access_token=settings.HUBSPOT_ACCESS_TOKEN,
            base_url=settings.HUBSPOT_API_BASE_URL,
        )
    app.state.hubspot_client = hubspot_client

    project_host = build_project_host(settings)
    app.state.project_host = project_host
    app.state.basecamp_oauth = BasecampOAuth.from_settings(settings)

    workflow = ReconciliationWorkflow(
        store=app.state.project_store,
        project_host=project_host,
        crm=hubspot_client,
        debug_log=app.state.debug_log,
    )
    app.state.workflow = workflow
    app.state.reconciliation_queue = ReconciliationQueue(workflow)

    logger.info(
        "app.components_initialized",
        projects_file=settings.PROJECTS_FILE,
        hubspot=hubspot_client is not None,
        project_host=project_host.mode,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire components and run the queue worker."""
    settings = getattr(app.state, "settings", None) or get_settings()
    configure_structlog(settings)

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    init_state(app, settings)
    queue: ReconciliationQueue = app.state.reconciliation_queue
    queue.start()
    logger.info("app.started", port=settings.PORT, environment=settings.ENVIRONMENT.value)

    yield

    await queue.stop(drain_timeout=settings.QUEUE_DRAIN_TIMEOUT)
    logger.info("app.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="dealbridge",
        version="0.1.0",
        description="Creates Basecamp projects for HubSpot deals that close won",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


def run() -> None:
    """Serve the app with uvicorn on the configured PORT."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.dealbridge.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


# Module-level app for uvicorn
app = create_app()
