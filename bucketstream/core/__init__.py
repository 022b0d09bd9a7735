"""
Core domain logic for the download proxy.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
minio or httpx. The storage and HTTP layers translate their own
failures into the errors defined here.
"""

from .errors import (
    ConfigurationError,
    FetchFailedError,
    InvalidObjectPathError,
    ProxyError,
    ReadFailedError,
    ResolutionError,
    SigningFailedError,
    StreamError,
    UnsupportedBackendError,
)
from .models import (
    BackendKind,
    BackendSelection,
    ObjectReference,
    PresignedURL,
    ProxiedPayload,
    StorageCredentials,
    parse_object_path,
)

__all__ = [
    "BackendKind",
    "BackendSelection",
    "ConfigurationError",
    "FetchFailedError",
    "InvalidObjectPathError",
    "ObjectReference",
    "PresignedURL",
    "ProxiedPayload",
    "ProxyError",
    "ReadFailedError",
    "ResolutionError",
    "SigningFailedError",
    "StorageCredentials",
    "StreamError",
    "UnsupportedBackendError",
    "parse_object_path",
]
