"""
Object storage integration: presigned URL resolution.

Supports S3 and R2 via the S3-compatible API, and Minio via its own client.
"""

from .resolvers import (
    MINIO_PRESIGN_LIFETIME,
    MinioURLResolver,
    MisconfiguredURLResolver,
    S3URLResolver,
    UnsupportedURLResolver,
    URLResolver,
    build_url_resolver,
    create_url_resolver,
    resolve,
)

__all__ = [
    "MINIO_PRESIGN_LIFETIME",
    "MinioURLResolver",
    "MisconfiguredURLResolver",
    "S3URLResolver",
    "UnsupportedURLResolver",
    "URLResolver",
    "build_url_resolver",
    "create_url_resolver",
    "resolve",
]
