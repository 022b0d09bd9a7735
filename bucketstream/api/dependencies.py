"""
FastAPI dependency injection.

Dependencies hand route handlers the settings the app was created with,
the process-wide backend selection and URL resolver, and the streaming
proxy. All of these are built once at startup and parked on app.state;
tests replace them via app.dependency_overrides.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings
from ..core.models import BackendSelection
from ..infrastructure.http.proxy import StreamingProxy
from ..infrastructure.storage.resolvers import URLResolver

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """
    Provide the settings passed to create_app.

    Reading them from app.state rather than the environment keeps the
    routes and the lifespan on the same configuration.
    """
    return request.app.state.settings


def get_backend_selection(request: Request) -> BackendSelection:
    """
    Provide the immutable backend selection built at startup.

    Read-only and shared across all requests, so no locking is needed.
    """
    return request.app.state.backend_selection


def get_url_resolver(request: Request) -> URLResolver:
    """Provide the resolver built once for the selected backend."""
    return request.app.state.url_resolver


def get_streaming_proxy(request: Request) -> StreamingProxy:
    """
    Provide a streaming proxy over the shared upstream HTTP client.

    The proxy itself is a thin per-request wrapper; the connection pool
    lives for the whole process.
    """
    return StreamingProxy(request.app.state.http_client)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_app_settings)]
BackendSelectionDep = Annotated[BackendSelection, Depends(get_backend_selection)]
URLResolverDep = Annotated[URLResolver, Depends(get_url_resolver)]
StreamingProxyDep = Annotated[StreamingProxy, Depends(get_streaming_proxy)]
