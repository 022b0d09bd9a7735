"""
Object streaming endpoint.

GET /stream/{bucket}/{key...} resolves a short-lived presigned URL for the
object on whichever backend is configured, fetches it, and returns the
bytes. Callers never see the backend, its credentials, or the signed URL.

Flow per request (strictly sequential):
1. Parse the path into bucket + key
2. Presign a GET on the active backend
3. Fetch the presigned URL and buffer the body
4. Re-serve the body with storage headers
"""

import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from ...core.errors import StreamError
from ...core.models import parse_object_path
from ...infrastructure.storage.resolvers import resolve
from ..dependencies import (
    BackendSelectionDep,
    SettingsDep,
    StreamingProxyDep,
    URLResolverDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def error_response(error: StreamError, use_status_codes: bool) -> PlainTextResponse:
    """
    Render a failure as a plaintext body.

    With status codes disabled every failure is a 200, matching the
    behaviour older clients were written against.
    """
    status_code = error.status_code if use_status_codes else 200
    return PlainTextResponse(error.message, status_code=status_code)


@router.get(
    "/{object_path:path}",
    response_class=Response,
    summary="Stream an object",
    description="Fetch an object from the configured storage backend by bucket and key.",
    responses={
        200: {"content": {"application/octet-stream": {}}, "description": "Object bytes"},
    },
)
async def stream_object(
    object_path: str,
    settings: SettingsDep,
    selection: BackendSelectionDep,
    resolver: URLResolverDep,
    proxy: StreamingProxyDep,
) -> Response:
    """
    Stream one object back to the caller.

    Every failure is terminal and rendered by error_response; nothing
    is retried and no partial body is ever sent.
    """
    try:
        ref = parse_object_path(object_path)
        presigned = await resolve(
            ref, settings.presign_lifetime_seconds, selection, resolver
        )
        return await proxy.fetch_and_serve(presigned, ref.key)

    except StreamError as e:
        logger.warning(
            "Stream request failed",
            extra={
                "path": object_path,
                "error_type": type(e).__name__,
                "error": e.detail,
            }
        )
        return error_response(e, settings.error_status_codes)
