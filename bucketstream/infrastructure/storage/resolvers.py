"""
Presigned URL resolution for each supported storage backend.

A resolver turns (bucket, key, lifetime) into a URL that anyone can GET
until it expires. Presigning is a local HMAC computation over the held
credentials: none of these resolvers contact the backend.

One resolver class per backend kind, looked up through a registry, so a
new backend is a new class plus one registry entry. The storage SDKs are
synchronous, so client construction and signing run in a worker thread
and never hold up the event loop.
"""

import logging
from datetime import timedelta
from functools import partial
from typing import Any, Callable, Optional, Protocol

import boto3
from anyio import to_thread
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from minio import Minio
from minio.error import MinioException

from ...core.errors import ConfigurationError, SigningFailedError, UnsupportedBackendError
from ...core.models import BackendKind, BackendSelection, ObjectReference, PresignedURL

logger = logging.getLogger(__name__)

# Pseudo-region accepted by R2 and Minio; also avoids a bucket-location lookup
SIGNING_REGION = "auto"

# Minio URLs are always signed for this long, whatever the caller asks for
MINIO_PRESIGN_LIFETIME = timedelta(seconds=60)


async def _run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(partial(func, *args, **kwargs))


class URLResolver(Protocol):
    """
    Protocol for presigning a GET on one object.

    Implementations are built once per process from the immutable
    BackendSelection. Their storage clients are thread-safe and hold
    no per-request state, so one instance serves every request.
    """

    async def presign_get(
        self,
        ref: ObjectReference,
        lifetime_seconds: int,
    ) -> PresignedURL:
        """Return a presigned GET URL for the object."""
        ...


class S3URLResolver:
    """
    Presigner for S3 and R2.

    Uses boto3 pointed at the configured endpoint rather than the
    regional AWS default, with SigV4 and path-style addressing so the
    same code works for AWS, R2 and other S3-compatible hosts.
    """

    def __init__(self, selection: BackendSelection) -> None:
        credentials = selection.credentials
        if not credentials.endpoint:
            raise ConfigurationError(f"no endpoint configured for {selection.kind.value}")

        self._kind = selection.kind

        boto_config = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )

        try:
            self._s3_client = boto3.client(
                "s3",
                endpoint_url=credentials.endpoint,
                aws_access_key_id=credentials.access_key,
                aws_secret_access_key=credentials.secret_key,
                region_name=SIGNING_REGION,
                config=boto_config,
            )
        except (BotoCoreError, ValueError) as e:
            raise ConfigurationError(str(e)) from e

    async def presign_get(
        self,
        ref: ObjectReference,
        lifetime_seconds: int,
    ) -> PresignedURL:
        """Sign a GET valid for exactly `lifetime_seconds`."""
        url = await _run_sync(self._sign, ref, lifetime_seconds)
        return PresignedURL(url=url, backend=self._kind, expires_in=lifetime_seconds)

    def _sign(self, ref: ObjectReference, lifetime_seconds: int) -> str:
        try:
            return self._s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": ref.bucket, "Key": ref.key},
                ExpiresIn=lifetime_seconds,
            )
        except (BotoCoreError, ClientError, ValueError) as e:
            logger.error(
                "Couldn't get a presigned request",
                extra={"bucket": ref.bucket, "key": ref.key, "error": str(e)}
            )
            raise SigningFailedError(str(e)) from e


class MinioURLResolver:
    """
    Presigner for Minio-compatible storage.

    Always signs for MINIO_PRESIGN_LIFETIME and ignores the requested
    lifetime. The endpoint is host[:port] and is reached over TLS.
    """

    def __init__(self, selection: BackendSelection) -> None:
        credentials = selection.credentials
        if not credentials.endpoint:
            raise ConfigurationError("no endpoint configured for minio")

        try:
            self._client = Minio(
                endpoint=credentials.endpoint,
                access_key=credentials.access_key,
                secret_key=credentials.secret_key,
                secure=True,
                region=SIGNING_REGION,
            )
        except (MinioException, ValueError, TypeError) as e:
            raise ConfigurationError(str(e)) from e

    async def presign_get(
        self,
        ref: ObjectReference,
        lifetime_seconds: int,
    ) -> PresignedURL:
        if lifetime_seconds != MINIO_PRESIGN_LIFETIME.total_seconds():
            logger.debug(
                "Minio ignores requested presign lifetime",
                extra={
                    "requested_seconds": lifetime_seconds,
                    "signed_seconds": int(MINIO_PRESIGN_LIFETIME.total_seconds()),
                }
            )

        url = await _run_sync(self._sign, ref)
        return PresignedURL(
            url=url,
            backend=BackendKind.MINIO,
            expires_in=int(MINIO_PRESIGN_LIFETIME.total_seconds()),
        )

    def _sign(self, ref: ObjectReference) -> str:
        try:
            return self._client.presigned_get_object(
                bucket_name=ref.bucket,
                object_name=ref.key,
                expires=MINIO_PRESIGN_LIFETIME,
            )
        except (MinioException, ValueError) as e:
            logger.error(
                "Couldn't get a presigned request",
                extra={"bucket": ref.bucket, "key": ref.key, "error": str(e)}
            )
            raise SigningFailedError(str(e)) from e


class UnsupportedURLResolver:
    """Stand-in for an unknown SERVICE_NAME. Every call fails."""

    def __init__(self, selection: BackendSelection) -> None:
        self._service_name = selection.service_name

    async def presign_get(
        self,
        ref: ObjectReference,
        lifetime_seconds: int,
    ) -> PresignedURL:
        raise UnsupportedBackendError(self._service_name)


class MisconfiguredURLResolver:
    """
    Stand-in for a backend whose client couldn't be built at startup.

    The server still starts; every request fails with the original
    ConfigurationError detail until the configuration is fixed.
    """

    def __init__(self, error: ConfigurationError) -> None:
        self._detail = error.detail

    async def presign_get(
        self,
        ref: ObjectReference,
        lifetime_seconds: int,
    ) -> PresignedURL:
        raise ConfigurationError(self._detail)


# ---------------------------------------------------------------------------
# Factory Functions
# ---------------------------------------------------------------------------

_RESOLVERS: dict[BackendKind, Callable[[BackendSelection], URLResolver]] = {
    BackendKind.S3: S3URLResolver,
    BackendKind.R2: S3URLResolver,
    BackendKind.MINIO: MinioURLResolver,
    BackendKind.UNSUPPORTED: UnsupportedURLResolver,
}


def create_url_resolver(selection: BackendSelection) -> URLResolver:
    """
    Create the resolver for the selected backend.

    Building a boto3 client loads botocore's service model, which takes
    tens of milliseconds; call this once, off the event loop.

    Raises:
        ConfigurationError: If the client can't be built from the credentials
    """
    factory = _RESOLVERS.get(selection.kind, UnsupportedURLResolver)
    return factory(selection)


def build_url_resolver(selection: BackendSelection) -> URLResolver:
    """
    Like create_url_resolver, but never raises.

    A ConfigurationError is logged and deferred to request time, so a bad
    credential fails requests rather than the whole process.
    """
    try:
        return create_url_resolver(selection)
    except ConfigurationError as e:
        logger.error(
            "Could not build storage client; every request will fail",
            extra={"backend": selection.kind.value, "error": e.detail}
        )
        return MisconfiguredURLResolver(e)


async def resolve(
    ref: ObjectReference,
    lifetime_seconds: int,
    selection: BackendSelection,
    resolver: Optional[URLResolver] = None,
) -> PresignedURL:
    """
    Produce a presigned GET URL for `ref` on the selected backend.

    Pass the process-wide `resolver` built at startup; without one a
    resolver is built for this call in a worker thread.

    Raises:
        ConfigurationError: Bad credentials or endpoint shape
        UnsupportedBackendError: SERVICE_NAME matched no backend
        SigningFailedError: The signer rejected the bucket or key
    """
    logger.info(
        "Getting a presigned request to get object",
        extra={
            "bucket": ref.bucket,
            "key": ref.key,
            "backend": selection.kind.value,
        }
    )

    if resolver is None:
        resolver = await _run_sync(create_url_resolver, selection)

    presigned = await resolver.presign_get(ref, lifetime_seconds)

    logger.debug(
        "Got a presigned request",
        extra={"url": presigned.url, "expires_in": presigned.expires_in}
    )

    return presigned
