"""FastAPI application for the challenge review portal."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from portal import __version__
from portal.challenges.api import router as challenges_router
from portal.infrastructure.database.session import close_db
from portal.shared.utils.datetime_utils import utcnow
from portal.shared.utils.logging import configure_logging, get_logger, request_context

logger = get_logger(__name__)

APP_TITLE = "Challenge Portal"
APP_VERSION = __version__
API_PREFIX = "/api/v1"
REQUEST_ID_HEADER = "X-Request-ID"

TAGS_METADATA = [
    {"name": "health", "description": "Liveness check"},
    {
        "name": "challenges",
        "description": "Reviewer assignment, reviews, winner selection and leaderboards",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("portal_starting", version=APP_VERSION)
    yield
    await close_db()
    logger.info("portal_stopped")


def create_app() -> FastAPI:
    """Build the application with request tracing and the challenge routes."""
    app = FastAPI(
        title=APP_TITLE,
        version=APP_VERSION,
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def trace_request(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        actor = getattr(request.state, "actor", None)
        started = time.perf_counter()
        with request_context(request_id, str(actor.id) if actor else None):
            response = await call_next(request)
            elapsed = time.perf_counter() - started
            logger.debug(
                "request_handled",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.6f}"
        return response

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "type": "https://portal.example.com/errors/internal_error",
                "title": "Internal Error",
                "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "detail": "An unexpected error occurred",
            },
        )

    app.include_router(challenges_router, prefix=API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, Any]:
        return {"status": "healthy", "version": APP_VERSION, "checked_at": utcnow().isoformat()}

    return app


app = create_app()
