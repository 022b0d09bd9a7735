"""
Domain models for the download proxy.

These models represent the core concepts: which storage backend is active,
which object a request refers to, the signed URL that grants access to it,
and the bytes fetched through that URL. They have no dependencies on
external frameworks or storage SDKs.
"""

from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidObjectPathError

STREAM_PATH_PREFIX = "/stream/"


class BackendKind(Enum):
    """
    The object storage APIs we know how to presign for.

    Values are the SERVICE_NAME strings that select them. Matching is
    exact, so "s3" or "Minio" fall through to UNSUPPORTED.
    """
    S3 = "S3"
    R2 = "R2"
    MINIO = "minio"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_service_name(cls, service_name: str) -> "BackendKind":
        for kind in (cls.S3, cls.R2, cls.MINIO):
            if service_name == kind.value:
                return kind
        return cls.UNSUPPORTED

    @property
    def is_s3_compatible(self) -> bool:
        return self in (BackendKind.S3, BackendKind.R2)


@dataclass(frozen=True)
class StorageCredentials:
    """Access key, secret key and endpoint for one backend."""
    access_key: str = ""
    secret_key: str = field(default="", repr=False)
    endpoint: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.access_key and self.secret_key and self.endpoint)


@dataclass(frozen=True)
class BackendSelection:
    """
    The active backend plus the credentials needed to sign for it.

    Built once at startup and shared read-only by every request.
    Frozen so concurrent requests can read it without locking.
    """
    kind: BackendKind
    credentials: StorageCredentials = field(default_factory=StorageCredentials)
    service_name: str = ""  # raw configured value, for diagnostics

    @property
    def is_supported(self) -> bool:
        return self.kind is not BackendKind.UNSUPPORTED


@dataclass(frozen=True)
class ObjectReference:
    """A single stored object: bucket name plus key (which may contain '/')."""
    bucket: str
    key: str

    def __post_init__(self) -> None:
        if not self.bucket:
            raise InvalidObjectPathError("Bucket name cannot be empty")
        if not self.key:
            raise InvalidObjectPathError("Object key cannot be empty")


@dataclass(frozen=True)
class PresignedURL:
    """
    A time-limited URL granting GET access to one object.

    The embedded expiry is only meaningful to the backend's signing
    scheme. `expires_in` records the lifetime that was actually signed,
    which for Minio differs from what the caller asked for.
    """
    url: str = field(repr=False)
    backend: BackendKind
    expires_in: int

    def __str__(self) -> str:
        return self.url


@dataclass
class ProxiedPayload:
    """The fully buffered body of one upstream fetch."""
    object_key: str
    body: bytes

    @property
    def content_length(self) -> int:
        return len(self.body)


def parse_object_path(path: str, prefix: str = STREAM_PATH_PREFIX) -> ObjectReference:
    """
    Split a request path into bucket and object key.

    The prefix is optional so both the full request path
    ("/stream/photos/a/b.png") and the routed remainder ("photos/a/b.png")
    are accepted. Everything after the bucket segment is the key, verbatim.
    """
    if path.startswith(prefix):
        path = path[len(prefix):]
    path = path.lstrip("/")

    bucket, sep, key = path.partition("/")
    if not sep:
        raise InvalidObjectPathError(
            f"Path must contain a bucket and an object key: {path!r}"
        )

    return ObjectReference(bucket=bucket, key=key)
