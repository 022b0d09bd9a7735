"""Outbound HTTP: fetching presigned URLs and re-serving their bodies."""

from .proxy import StreamingProxy, build_response_headers, create_http_client

__all__ = ["StreamingProxy", "build_response_headers", "create_http_client"]
