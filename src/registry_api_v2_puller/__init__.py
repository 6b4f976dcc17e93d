"""Registry API v2 Puller - Async Docker Registry API v2 image puller."""

__version__ = "0.1.0"

from .core.types import ImageManifest, ImageReference, RegistryConfig
from .exceptions import (
    ArchiveError,
    AuthenticationError,
    BlobFetchError,
    ConfigurationError,
    DigestMismatchError,
    LayoutWriteError,
    ManifestError,
    PlatformNotFoundError,
    PullCancelledError,
    RegistryConnectionError,
    RegistryError,
    ValidationError,
)
from .pull import list_platforms, pull_image
from .tar.tags import extract_repo_tags, parse_image_reference
from .utils.digest import compute_chain_id
from .utils.validator import validate_legacy_tar

__all__ = [
    "pull_image",
    "list_platforms",
    "parse_image_reference",
    "compute_chain_id",
    "extract_repo_tags",
    "validate_legacy_tar",
    "ImageManifest",
    "ImageReference",
    "RegistryConfig",
    "RegistryError",
    "RegistryConnectionError",
    "ConfigurationError",
    "AuthenticationError",
    "ManifestError",
    "PlatformNotFoundError",
    "BlobFetchError",
    "DigestMismatchError",
    "LayoutWriteError",
    "ArchiveError",
    "PullCancelledError",
    "ValidationError",
]
