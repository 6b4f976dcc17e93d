"""Custom exceptions for Registry API v2 puller."""


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry or auth server."""

    pass


class ConfigurationError(RegistryError):
    """Raised when pull options are invalid (proxy, platform, output path)."""

    pass


class AuthenticationError(RegistryError):
    """Raised when the bearer challenge or token exchange fails."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class PlatformNotFoundError(ManifestError):
    """Raised when the requested platform is absent from a manifest index."""

    def __init__(self, platform: str, available: list[str]) -> None:
        self.platform = platform
        self.available = available
        choices = ", ".join(available) if available else "none"
        super().__init__(
            f"Platform {platform} not found in manifest index "
            f"(available: {choices})"
        )


class BlobFetchError(RegistryError):
    """Raised when blob download fails."""

    pass


class DigestMismatchError(BlobFetchError):
    """Raised when downloaded blob content does not hash to its digest."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Digest mismatch: expected {expected}, got {actual}")


class LayoutWriteError(RegistryError):
    """Raised when the legacy image layout cannot be written to disk."""

    pass


class ArchiveError(RegistryError):
    """Raised when the final tar.gz archive cannot be built."""

    pass


class PullCancelledError(RegistryError):
    """Raised when a pull is cancelled between blob fetches."""

    pass


class ValidationError(RegistryError):
    """Raised when a legacy image archive cannot be read for validation."""

    pass
