"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (is a backend configured well enough to serve?)

Neither contacts the storage backend; readiness only inspects the
configuration the process started with.
"""

import logging
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ... import __version__
from ..dependencies import BackendSelectionDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check the backend.",
)
async def health_check(selection: BackendSelectionDep) -> HealthResponse:
    """Liveness check - is the process alive?"""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"backend": selection.kind.value},
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if a supported backend is configured with credentials.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    settings: SettingsDep,
    selection: BackendSelectionDep,
):
    """
    Readiness check - can we serve traffic?

    Returns 503 if the backend is unsupported or missing credentials,
    which tells load balancers not to route traffic here.
    """
    checks: list[ReadinessCheck] = []

    if selection.is_supported:
        checks.append(ReadinessCheck(name="backend", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="backend",
            status="error",
            error=f"Unsupported SERVICE_NAME: {selection.service_name!r}",
        ))

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}",
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    all_ok = all(check.status == "ok" for check in checks)

    response = ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )

    if not all_ok:
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )

    return response
