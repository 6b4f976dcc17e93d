"""Core data types for registry pull operations."""

from dataclasses import dataclass, field
from typing import Any, Mapping

DEFAULT_REGISTRY_URL = "https://registry-1.docker.io"
DEFAULT_NAMESPACE = "library"
DEFAULT_PLATFORM = "linux/amd64"
DEFAULT_TAG = "latest"


@dataclass(frozen=True)
class RegistryConfig:
    """Registry connection settings for a single pull."""

    url: str = DEFAULT_REGISTRY_URL
    namespace: str = DEFAULT_NAMESPACE
    timeout: int = 300
    proxy: str | None = None
    verify_digests: bool = True

    @property
    def base_url(self) -> str:
        """Registry URL without trailing slash."""
        return self.url.rstrip("/")

    def repository(self, name: str) -> str:
        """Repository path for an image name.

        Names that already carry a namespace (``bitnami/redis``) are used as-is.
        """
        if "/" in name or not self.namespace:
            return name
        return f"{self.namespace}/{name}"

    def manifest_url(self, name: str, reference: str) -> str:
        return f"{self.base_url}/v2/{self.repository(name)}/manifests/{reference}"

    def blob_url(self, name: str, digest: str) -> str:
        return f"{self.base_url}/v2/{self.repository(name)}/blobs/{digest}"


@dataclass(frozen=True)
class ImageReference:
    """Image name and tag parsed from ``name[:tag]``."""

    name: str
    tag: str = DEFAULT_TAG

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"


@dataclass(frozen=True)
class AuthChallenge:
    """Parameters of a ``WWW-Authenticate: Bearer`` challenge."""

    realm: str
    service: str = ""
    scope: str = ""


@dataclass(frozen=True)
class BearerToken:
    """Opaque registry bearer token."""

    token: str

    def __repr__(self) -> str:
        return "BearerToken(token=***)"


@dataclass(frozen=True)
class ManifestIndexEntry:
    """One platform variant inside a manifest list / image index."""

    os: str
    architecture: str
    digest: str
    media_type: str
    variant: str = ""

    @property
    def platform(self) -> str:
        return f"{self.os}/{self.architecture}"


@dataclass(frozen=True)
class Descriptor:
    """Content descriptor of a config or layer blob."""

    digest: str
    media_type: str
    size: int = 0

    @property
    def hex(self) -> str:
        """Digest without its algorithm prefix."""
        return self.digest.split(":", 1)[-1]


@dataclass
class ImageManifest:
    """Concrete image manifest: config descriptor plus ordered layers."""

    config: Descriptor
    layers: list[Descriptor] = field(default_factory=list)
    media_type: str = ""


@dataclass
class RegistryResponse:
    """Body and headers of a registry HTTP response."""

    status: int
    body: bytes
    headers: Mapping[str, str]
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        value = self.headers.get(name)
        if value is not None:
            return value
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None

    def text(self, limit: int = 200) -> str:
        return self.body[:limit].decode("utf-8", errors="replace")


PlatformIndex = dict[str, ManifestIndexEntry]

JSONDict = dict[str, Any]
