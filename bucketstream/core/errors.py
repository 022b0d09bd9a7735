"""
Errors raised while serving a stream request.

Every failure is terminal for the request that hit it: nothing here is
retried. Each error carries the plaintext message shown to the caller
and the HTTP status it maps to when status codes are enabled.
"""

from typing import Optional


class StreamError(Exception):
    """Base class for all per-request failures."""

    status_code: int = 500
    message_prefix: str = "Error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    @property
    def message(self) -> str:
        """Plaintext body returned to the caller."""
        return f"{self.message_prefix}: {self.detail}"


class InvalidObjectPathError(StreamError, ValueError):
    """The request path does not name both a bucket and an object key."""
    status_code = 400
    message_prefix = "Invalid object path"


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------

class ResolutionError(StreamError):
    """Raised when a presigned URL cannot be produced."""
    message_prefix = "Error getting presigned URL"


class ConfigurationError(ResolutionError):
    """The storage client could not be built from the configured credentials."""
    status_code = 500


class UnsupportedBackendError(ResolutionError):
    """SERVICE_NAME names no known backend."""
    status_code = 501

    def __init__(self, service_name: str) -> None:
        super().__init__(f"unsupported object storage service: {service_name!r}")
        self.service_name = service_name


class SigningFailedError(ResolutionError):
    """The signer rejected the bucket/key (e.g. an invalid bucket name)."""
    status_code = 400


# ---------------------------------------------------------------------------
# Proxying
# ---------------------------------------------------------------------------

class ProxyError(StreamError):
    """Raised when the presigned URL cannot be fetched and re-served."""
    status_code = 502


class FetchFailedError(ProxyError):
    """The GET against the presigned URL failed or returned non-2xx."""
    message_prefix = "Error getting object"

    # Upstream statuses passed through as-is; anything else is a 502
    PASSTHROUGH_STATUSES = (403, 404)

    def __init__(self, detail: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(detail)
        self.upstream_status = upstream_status
        if upstream_status in self.PASSTHROUGH_STATUSES:
            self.status_code = upstream_status


class ReadFailedError(ProxyError):
    """The upstream body broke off mid-transfer. Partial bytes are dropped."""
    message_prefix = "Error reading object"
