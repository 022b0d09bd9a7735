"""
Streaming proxy: fetch a presigned URL and re-serve its bytes.

The whole upstream body is read into memory before anything is sent
back, so the response always carries an exact Content-Length and a
failed read never leaks a partial object to the caller. The cost is
that objects must fit in memory.
"""

import logging
from typing import Optional

import httpx
from fastapi.responses import Response

from ...core.errors import FetchFailedError, ReadFailedError
from ...core.models import PresignedURL, ProxiedPayload

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


def build_response_headers(payload: ProxiedPayload) -> dict[str, str]:
    """
    Headers for a proxied object.

    Accept-Ranges is advertised but ranges are not served; every
    response is the full object. No Last-Modified is sent, so
    conditional requests never short-circuit.
    """
    return {
        "Content-Type": OCTET_STREAM,
        "Accept-Ranges": "bytes",
        "Content-Length": str(payload.content_length),
        "Access-Control-Allow-Origin": "*",
    }


def create_http_client(
    timeout_seconds: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the shared client for upstream fetches.

    Redirects are followed. With no timeout a hung backend stalls the
    request until the caller gives up.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        transport=transport,
    )


class StreamingProxy:
    """
    Fetches presigned URLs and turns their bodies into responses.

    Holds only the (shared, thread-safe) httpx client; each call owns
    its own buffer, so concurrent requests never see each other's bytes.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: PresignedURL, object_key: str) -> ProxiedPayload:
        """
        GET the presigned URL and buffer the full body.

        Raises:
            FetchFailedError: Transport failure or non-2xx upstream status
            ReadFailedError: The body broke off before it was complete
        """
        try:
            async with self._client.stream("GET", url.url) as response:
                if not response.is_success:
                    logger.warning(
                        "Upstream returned error status",
                        extra={"object_key": object_key, "status": response.status_code}
                    )
                    raise FetchFailedError(
                        f"upstream returned {response.status_code} {response.reason_phrase}",
                        upstream_status=response.status_code,
                    )

                try:
                    body = await response.aread()
                except httpx.HTTPError as e:
                    logger.error(
                        "Failed to read object body",
                        extra={"object_key": object_key, "error": str(e)}
                    )
                    raise ReadFailedError(str(e) or type(e).__name__) from e

        except httpx.HTTPError as e:
            logger.error(
                "Failed to fetch object",
                extra={"object_key": object_key, "error": str(e)}
            )
            raise FetchFailedError(str(e) or type(e).__name__) from e

        logger.debug(
            "Fetched object",
            extra={"object_key": object_key, "size_bytes": len(body)}
        )

        return ProxiedPayload(object_key=object_key, body=body)

    def serve(self, payload: ProxiedPayload) -> Response:
        """Wrap a buffered payload in a response with storage headers."""
        return Response(
            content=payload.body,
            headers=build_response_headers(payload),
        )

    async def fetch_and_serve(self, url: PresignedURL, object_key: str) -> Response:
        """Fetch `url` and return its body as the response to the caller."""
        payload = await self.fetch(url, object_key)
        return self.serve(payload)
