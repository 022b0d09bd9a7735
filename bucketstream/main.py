"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn bucketstream.main:app --reload --port 8080

For production:
    python -m bucketstream.main
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from anyio import to_thread
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .api.routes import health, stream
from .config.settings import Settings, get_settings
from .infrastructure.http.proxy import create_http_client
from .infrastructure.storage.resolvers import build_url_resolver

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup builds the process-wide state every request reads: the
    immutable backend selection, the URL resolver for it, and the
    upstream HTTP client. Shutdown closes the client's connection pool.
    """
    settings: Settings = app.state.settings

    selection = settings.backend_selection()
    app.state.backend_selection = selection
    app.state.url_resolver = await to_thread.run_sync(build_url_resolver, selection)
    app.state.http_client = create_http_client(settings.upstream_timeout_seconds)

    logger.info(
        "Bucket Stream starting",
        extra={
            "version": settings.api_version,
            "backend": selection.kind.value,
        }
    )

    if not selection.is_supported:
        logger.error(
            "Unsupported object storage service; every request will fail",
            extra={"service_name": settings.service_name}
        )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    await app.state.http_client.aclose()
    logger.info("Bucket Stream shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Settings are loaded here, so a malformed environment fails the
    process before it ever binds a port.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Download proxy for object storage.

        `GET /stream/{bucket}/{key}` returns the object's bytes from the
        configured backend (S3, R2 or Minio). The key may contain `/`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        stream.router,
        prefix="/stream",
        tags=["Stream"],
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message,
        so stack traces never leak to clients.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return PlainTextResponse(
            "Internal server error",
            status_code=500,
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("Listening on %s:%d", settings.host, settings.port)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
