"""
Unit tests for presigned URL resolution.

Presigning is a local computation, so these tests sign real URLs with
real boto3 and minio clients against made-up endpoints. Nothing here
touches the network.
"""

import asyncio
from urllib.parse import parse_qs, urlsplit

import pytest

from bucketstream.core.errors import (
    ConfigurationError,
    ResolutionError,
    SigningFailedError,
    UnsupportedBackendError,
)
from bucketstream.core.models import (
    BackendKind,
    BackendSelection,
    ObjectReference,
    StorageCredentials,
)
from bucketstream.infrastructure.storage.resolvers import (
    MINIO_PRESIGN_LIFETIME,
    MisconfiguredURLResolver,
    MinioURLResolver,
    S3URLResolver,
    UnsupportedURLResolver,
    build_url_resolver,
    create_url_resolver,
    resolve,
)

R2_ENDPOINT = "https://account123.r2.cloudflarestorage.com"
MINIO_ENDPOINT = "minio.example.com"


def query_params(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def object_ref() -> ObjectReference:
    return ObjectReference(bucket="mybucket", key="a/b/c.png")


def s3_selection(kind: BackendKind = BackendKind.R2, endpoint: str = R2_ENDPOINT) -> BackendSelection:
    return BackendSelection(
        kind=kind,
        credentials=StorageCredentials(
            access_key="AKIDEXAMPLE",
            secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
            endpoint=endpoint,
        ),
        service_name=kind.value,
    )


def minio_selection(endpoint: str = MINIO_ENDPOINT) -> BackendSelection:
    return BackendSelection(
        kind=BackendKind.MINIO,
        credentials=StorageCredentials(
            access_key="minioadmin",
            secret_key="minioadmin",
            endpoint=endpoint,
        ),
        service_name="minio",
    )


# ---------------------------------------------------------------------------
# Factory Tests
# ---------------------------------------------------------------------------

class TestCreateURLResolver:

    @pytest.mark.parametrize("kind", [BackendKind.S3, BackendKind.R2])
    def test_s3_compatible_kinds_get_s3_resolver(self, kind):
        assert isinstance(create_url_resolver(s3_selection(kind)), S3URLResolver)

    def test_minio_gets_minio_resolver(self):
        assert isinstance(create_url_resolver(minio_selection()), MinioURLResolver)

    def test_unsupported_gets_failing_resolver(self):
        selection = BackendSelection(kind=BackendKind.UNSUPPORTED, service_name="gcs")
        assert isinstance(create_url_resolver(selection), UnsupportedURLResolver)


# ---------------------------------------------------------------------------
# S3 / R2
# ---------------------------------------------------------------------------

class TestS3Resolution:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [BackendKind.S3, BackendKind.R2])
    @pytest.mark.parametrize("lifetime", [1, 10, 3600])
    async def test_expiry_is_exactly_requested_lifetime(self, object_ref, kind, lifetime):
        presigned = await resolve(object_ref, lifetime, s3_selection(kind))

        assert presigned.backend is kind
        assert presigned.expires_in == lifetime
        assert query_params(presigned.url)["X-Amz-Expires"] == str(lifetime)

    @pytest.mark.asyncio
    async def test_url_targets_custom_endpoint_path_style(self, object_ref):
        presigned = await resolve(object_ref, 10, s3_selection())
        parts = urlsplit(presigned.url)

        assert f"{parts.scheme}://{parts.netloc}" == R2_ENDPOINT
        assert parts.path == "/mybucket/a/b/c.png"

    @pytest.mark.asyncio
    async def test_url_is_sigv4_signed_with_auto_region(self, object_ref):
        params = query_params((await resolve(object_ref, 10, s3_selection())).url)

        assert params["X-Amz-Algorithm"] == "AWS4-HMAC-SHA256"
        assert params["X-Amz-Credential"].startswith("AKIDEXAMPLE/")
        assert "/auto/s3/aws4_request" in params["X-Amz-Credential"]
        assert "X-Amz-Signature" in params

    def test_missing_endpoint_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            S3URLResolver(s3_selection(endpoint=""))

    def test_malformed_endpoint_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            S3URLResolver(s3_selection(endpoint="not a url"))

    @pytest.mark.asyncio
    async def test_invalid_bucket_name_is_signing_failure(self):
        ref = ObjectReference(bucket="bad bucket!", key="file.txt")

        with pytest.raises(SigningFailedError):
            await resolve(ref, 10, s3_selection())


# ---------------------------------------------------------------------------
# Minio
# ---------------------------------------------------------------------------

class TestMinioResolution:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lifetime", [1, 10, 3600])
    async def test_expiry_is_fixed_regardless_of_request(self, object_ref, lifetime):
        """Minio always signs for the fixed window, unlike S3/R2."""
        presigned = await resolve(object_ref, lifetime, minio_selection())
        fixed = int(MINIO_PRESIGN_LIFETIME.total_seconds())

        assert fixed == 60
        assert presigned.expires_in == fixed
        assert query_params(presigned.url)["X-Amz-Expires"] == str(fixed)

    @pytest.mark.asyncio
    async def test_minio_and_s3_diverge_for_same_request(self, object_ref):
        minio_url = await resolve(object_ref, 10, minio_selection())
        s3_url = await resolve(object_ref, 10, s3_selection())

        assert query_params(s3_url.url)["X-Amz-Expires"] == "10"
        assert query_params(minio_url.url)["X-Amz-Expires"] == "60"

    @pytest.mark.asyncio
    async def test_url_uses_secure_transport(self, object_ref):
        presigned = await resolve(object_ref, 10, minio_selection())
        parts = urlsplit(presigned.url)

        assert parts.scheme == "https"
        assert parts.hostname == MINIO_ENDPOINT
        assert parts.path == "/mybucket/a/b/c.png"

    def test_missing_endpoint_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            MinioURLResolver(minio_selection(endpoint=""))

    def test_endpoint_with_path_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            MinioURLResolver(minio_selection(endpoint="minio.example.com/some/path"))

    @pytest.mark.asyncio
    async def test_invalid_bucket_name_is_signing_failure(self):
        ref = ObjectReference(bucket="x", key="file.txt")

        with pytest.raises(SigningFailedError):
            await resolve(ref, 10, minio_selection())


# ---------------------------------------------------------------------------
# Unsupported
# ---------------------------------------------------------------------------

class TestUnsupportedResolution:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("service_name", ["", "gcs", "s3"])
    async def test_always_fails(self, object_ref, service_name):
        selection = BackendSelection(kind=BackendKind.UNSUPPORTED, service_name=service_name)

        with pytest.raises(UnsupportedBackendError) as exc_info:
            await resolve(object_ref, 10, selection)

        assert exc_info.value.service_name == service_name
        assert isinstance(exc_info.value, ResolutionError)
        assert "unsupported object storage service" in exc_info.value.message


# ---------------------------------------------------------------------------
# Startup Construction
# ---------------------------------------------------------------------------

class TestBuildURLResolver:

    def test_valid_config_builds_real_resolver(self):
        assert isinstance(build_url_resolver(s3_selection()), S3URLResolver)

    @pytest.mark.asyncio
    async def test_configuration_error_is_deferred_to_each_call(self, object_ref):
        resolver = build_url_resolver(s3_selection(endpoint="not a url"))

        assert isinstance(resolver, MisconfiguredURLResolver)
        for _ in range(2):
            with pytest.raises(ConfigurationError):
                await resolve(object_ref, 10, s3_selection(), resolver)

    @pytest.mark.asyncio
    async def test_shared_resolver_serves_many_requests(self, object_ref):
        selection = s3_selection()
        resolver = build_url_resolver(selection)

        urls = await asyncio.gather(*[
            resolve(ObjectReference(bucket="mybucket", key=f"k{i}"), 10, selection, resolver)
            for i in range(10)
        ])

        assert [urlsplit(u.url).path for u in urls] == [f"/mybucket/k{i}" for i in range(10)]


class TestEventLoopResponsiveness:
    """Signing runs off the event loop, so other requests keep moving."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("selection_factory", [s3_selection, minio_selection])
    async def test_resolve_does_not_stall_event_loop(self, object_ref, selection_factory):
        selection = selection_factory()
        resolver = build_url_resolver(selection)
        loop = asyncio.get_running_loop()
        gaps: list[float] = []
        done = asyncio.Event()

        async def heartbeat():
            last = loop.time()
            while not done.is_set():
                await asyncio.sleep(0.001)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(heartbeat())
        await asyncio.sleep(0.005)

        for _ in range(20):
            await resolve(object_ref, 10, selection, resolver)

        done.set()
        await ticker

        assert gaps
        assert max(gaps) < 0.05
