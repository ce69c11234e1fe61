"""
Ballotbox API.

Administrators manage the candidates standing for each position. Every
authenticated voter holds at most one vote, which they can cast, move to
another active candidate, or withdraw; each candidate's tally always equals
the number of votes pointing at it.

Run locally with: uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1 import router as api_v1_router
from core.config import settings
from core.events import create_start_app_handler, create_stop_app_handler
from core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware

logger = structlog.get_logger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await create_start_app_handler(app)()
    yield
    await create_stop_app_handler(app)()


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic 500 body."""
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    content = {"detail": "Server error"}
    if settings.DEBUG:
        content["error_type"] = type(exc).__name__
    return JSONResponse(status_code=500, content=content)


def create_application() -> FastAPI:
    docs_enabled = settings.DEBUG
    application = FastAPI(
        title=settings.APP_NAME,
        description="Candidates, one vote per voter, and consistent tallies",
        version=API_VERSION,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    # Starlette runs middleware in reverse order of registration
    application.add_middleware(SecurityHeadersMiddleware)
    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    application.include_router(api_v1_router, prefix="/api/v1")
    application.add_exception_handler(Exception, unhandled_exception_handler)
    return application


app = create_application()


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": "ballotbox-api"}


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "name": settings.APP_NAME,
        "version": API_VERSION,
        "docs": "/docs" if settings.DEBUG else "disabled",
    }
