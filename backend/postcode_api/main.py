"""
FastAPI application entrypoint.

create_app() builds every process-scoped collaborator once and hangs it on
app.state — the store handle, the postcode provider client, the identity
provider client, and the usage sink. Tests pass their own.

Lifespan:
  • On startup: verify DB connectivity.
  • On shutdown: close the HTTP clients and dispose the engine.

Routers:
  • /api/postcodes — API-key-gated lookup proxy
  • /api/account   — profile, API key, domains, usage history
  • /api/addresses — residential address book
  • /api/users     — admin user management
  • /health        — shallow liveness probe
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from postcode_api.auth.identity import HostedAuthClient, IdentityProvider
from postcode_api.core.config import Settings, settings as default_settings
from postcode_api.core.database import Database
from postcode_api.core.errors import ApiError, MethodNotAllowed
from postcode_api.routers.account import router as account_router
from postcode_api.routers.addresses import router as addresses_router
from postcode_api.routers.admin import router as admin_router
from postcode_api.routers.postcodes import router as postcodes_router
from postcode_api.services.postcode_provider import PostcodeProvider, PostcodesIoProvider
from postcode_api.services.usage_sink import UsageSink

logging.basicConfig(
    level=logging.DEBUG if default_settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    database: Database = app.state.database

    # Startup: verify DB is reachable
    try:
        async with database.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified ✓")
    except Exception:
        logger.warning(
            "Could not reach the database on startup. "
            "The app will start, but requests will fail until the DB is available."
        )

    yield  # ← application runs here

    # Shutdown: close outbound clients, then the connection pool
    await app.state.postcode_provider.aclose()
    await app.state.identity_provider.aclose()
    await database.dispose()
    logger.info("Database engine disposed ✓")


# ── Error rendering ─────────────────────────────────────────
async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def method_not_allowed_handler(
    request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    """Render router-level 405s in the ApiError shape; defer everything else."""
    if exc.status_code == 405:
        error = MethodNotAllowed()
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_body(),
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)


# ── App ─────────────────────────────────────────────────────
def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    postcode_provider: PostcodeProvider | None = None,
    identity_provider: IdentityProvider | None = None,
    usage_sink: UsageSink | None = None,
) -> FastAPI:
    """Build the application with explicitly constructed collaborators."""
    settings = settings or default_settings
    database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        description=(
            "UK postcode lookup — API-key-gated proxy to postcodes.io "
            "with per-user usage accounting."
        ),
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.postcode_provider = postcode_provider or PostcodesIoProvider(
        settings.POSTCODE_PROVIDER_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        nearby_limit=settings.NEARBY_LIMIT,
    )
    app.state.identity_provider = identity_provider or HostedAuthClient(
        settings.AUTH_URL, settings.AUTH_API_KEY,
    )
    app.state.usage_sink = usage_sink or UsageSink(database.session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)

    # Mount routers
    app.include_router(postcodes_router, prefix="/api/postcodes")
    app.include_router(account_router, prefix="/api/account")
    app.include_router(addresses_router, prefix="/api/addresses")
    app.include_router(admin_router, prefix="/api/users")

    # ── Health check ────────────────────────────────────────
    @app.get(
        "/health",
        tags=["System"],
        summary="Liveness probe",
    )
    async def health_check() -> dict[str, str]:
        """Shallow health check — confirms the process is alive."""
        return {"status": "healthy"}

    return app


app = create_app()
