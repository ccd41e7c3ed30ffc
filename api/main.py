"""
api/main.py -- FastAPI application factory for the storefront admin API.

Run with:      python main.py serve
               uvicorn asgi:app --reload

create_app(settings) builds a fully wired application. Nothing here reads
the environment: the caller (asgi.py, main.py, tests) supplies Settings.

Middleware stack (outermost to innermost):
  1. request logging       -- one line per request with status and latency
  2. security headers      -- nosniff, frame deny, referrer policy, HSTS in production
  3. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  4. CORSMiddleware        -- credentialed CORS for the admin front end
  5. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan opens the user and catalog stores and the image host on startup
and disposes the database engines on shutdown.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.articles import router as articles_router
from api.routes.auth import router as auth_router
from api.routes.categories import router as categories_router
from api.routes.products import router as products_router
from api.routes.sliders import router as sliders_router
from auth.store import UserStore
from auth.tokens import TokenIssuer
from catalog.store import CatalogStore
from core.config import Settings
from core.errors import AppError
from media.host import ImageHost

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("shopadmin.api")

VERSION = "1.0.0"


def _error(status_code: int, message: str, code: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code, detail=detail).model_dump(),
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores and the image host for the lifetime of the server.

    Everything before yield runs on startup, everything after on shutdown.
    Tests replace this with their own context manager that installs
    in-memory stores and a fake image host.
    """
    settings: Settings = app.state.settings
    logger.info("Storefront admin API starting up (environment=%s)", settings.environment)
    app.state.user_store = UserStore(settings.database_url)
    app.state.catalog = CatalogStore(settings.database_url)
    app.state.image_host = ImageHost.from_settings(settings)
    logger.info("Stores initialized (admin_exists=%s)", app.state.user_store.has_users())

    yield

    app.state.catalog.close()
    app.state.user_store.close()
    logger.info("Storefront admin API shutdown complete")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings) -> FastAPI:
    """Build the application from an explicit Settings object."""
    app = FastAPI(
        title="Storefront Admin API",
        description="Admin back office for a storefront: articles, categories, products and the home page slider.",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.tokens = TokenIssuer.from_settings(settings)

    # -----------------------------------------------------------------------
    # Middleware stack
    #
    # add_middleware() wraps the current stack, so the last registration is
    # the outermost layer. Register innermost first.
    # -----------------------------------------------------------------------

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth_router, prefix="/api", tags=["Auth"])
    app.include_router(articles_router, prefix="/api", tags=["Articles"])
    app.include_router(categories_router, prefix="/api", tags=["Categories"])
    app.include_router(products_router, prefix="/api", tags=["Products"])
    app.include_router(sliders_router, prefix="/api", tags=["Image Slider"])

    # -----------------------------------------------------------------------
    # Exception handlers
    #
    # Every handler returns the same {message, code, detail} envelope.
    # -----------------------------------------------------------------------

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message, exc.code)

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """429 with Retry-After.

        Raised by the @limiter.limit wrapper on a route. Plain def, because
        SlowAPIMiddleware also calls it directly without awaiting it.
        """
        response = _error(429, "Too many requests.", "rate_limited", str(exc.detail))
        response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Request validation failed.", "validation_error", str(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return _error(404, f"Not Found - {request.url.path}", "not_found")
        return _error(exc.status_code, str(exc.detail), f"http_{exc.status_code}")

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected failures.

        The traceback goes to the log always and to the response body only
        outside production.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        detail = None if settings.is_production else traceback.format_exc()
        return _error(500, "An unexpected error occurred.", "internal_error", detail)

    # -----------------------------------------------------------------------
    # Health endpoint
    #
    # No rate limit and no auth: load balancers must always reach it.
    # -----------------------------------------------------------------------

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version, and a database round-trip check."""
        components = {"app": "ok"}
        try:
            request.app.state.user_store.ping()
            components["database"] = "ok"
        except SQLAlchemyError as exc:
            logger.warning("Health check database ping failed: %s", exc)
            components["database"] = "error"
        return HealthResponse(version=VERSION, components=components)

    return app
