"""
InvestBridge Decision Engine — FastAPI Application.

Run: uvicorn investbridge.main:app --host 0.0.0.0 --port 8080

Callable operations:
  - POST /api/v1/roles/change, GET /api/v1/roles/available, POST /api/v1/roles/grant
  - POST /api/v1/risk-assessments, GET /api/v1/risk-assessments/{proposal_id}/latest
  - POST /api/v1/portfolios/{investor_id}/metrics
  - GET  /api/v1/analytics/platform
  - GET  /api/v1/notifications, POST /api/v1/notifications/{id}/read

Store triggers (X-Trigger-Key):
  - POST /api/v1/triggers/{collection}/created
  - POST /api/v1/triggers/investmentProposals/updated
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from investbridge.api.routers.analytics import router as analytics_router
from investbridge.api.routers.assessments import router as assessments_router
from investbridge.api.routers.notifications import router as notifications_router
from investbridge.api.routers.portfolios import router as portfolios_router
from investbridge.api.routers.roles import router as roles_router
from investbridge.api.routers.triggers import router as triggers_router
from investbridge.config import settings
from investbridge.db.engine import close_db, init_db
from investbridge.errors import DecisionError
from investbridge.log_config import configure_logging
from investbridge.middleware.error_handler import ErrorHandlerMiddleware, decision_error_handler
from investbridge.middleware.request_context import RequestContextMiddleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    configure_logging()
    logger.info("investbridge_starting", version=settings.app_version, environment=settings.environment)
    if settings.environment == "production" and settings.jwt_secret.startswith("dev-"):
        logger.warning("jwt_secret_is_default", msg="Set JWT_SECRET before serving production traffic")
    if not settings.push_gateway_url:
        logger.warning("push_gateway_not_configured", msg="Push delivery disabled; notifications are still stored")
    await init_db()
    yield
    await close_db()
    logger.info("investbridge_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="InvestBridge Decision Engine",
        description=(
            "Role transitions, event fan-out and scoring for the InvestBridge "
            "marketplace.\n\n"
            "## Authentication\n"
            "- Callable operations: `Authorization: Bearer <JWT>`\n"
            "- Store triggers: `X-Trigger-Key: <key>`\n"
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness probe"},
            {"name": "roles", "description": "Role transitions and admin grants"},
            {"name": "risk-assessments", "description": "Proposal risk scoring"},
            {"name": "portfolios", "description": "Portfolio metrics"},
            {"name": "analytics", "description": "Admin platform analytics"},
            {"name": "notifications", "description": "Recipient inbox"},
            {"name": "triggers", "description": "Document store change triggers"},
        ],
    )

    app.add_exception_handler(DecisionError, decision_error_handler)

    # ── Middleware (last added = outermost) ──
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ────────────────────────────────────────────────────────
    app.include_router(roles_router)
    app.include_router(assessments_router)
    app.include_router(portfolios_router)
    app.include_router(analytics_router)
    app.include_router(notifications_router)
    app.include_router(triggers_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe. Does not check dependencies."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "investbridge-decision-engine",
        }

    return app


app = create_app()
