"""Content digests and legacy layer chain IDs."""

import hashlib
import re

# Algorithms a registry may use to address blobs
SUPPORTED_ALGORITHMS = ("sha256", "sha512")

DIGEST_PATTERN = re.compile(r"^(?P<algorithm>[a-z0-9]+):(?P<hex>[a-f0-9]+)$")


def split_digest(digest: str) -> tuple[str, str]:
    """Split ``algorithm:hex`` into its two parts.

    Raises:
        ValueError: If the digest is malformed or uses an unsupported algorithm
    """
    match = DIGEST_PATTERN.match(digest) if isinstance(digest, str) else None
    if match is None or match["algorithm"] not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Invalid digest format: {digest}")
    return match["algorithm"], match["hex"]


def validate_digest(digest: str) -> bool:
    """Return True if ``digest`` is a well formed sha256/sha512 digest."""
    try:
        split_digest(digest)
    except ValueError:
        return False
    return True


def calculate_digest(data: bytes | bytearray, algorithm: str = "sha256") -> str:
    """Digest of ``data`` as ``algorithm:hex``.

    Raises:
        ValueError: If data is not bytes-like or the algorithm is unsupported
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def compute_chain_id(parent_id: str, blob_digest: str) -> str:
    """Compute the legacy layer ID for a blob on top of its parent.

    The ID is ``sha256(parent_id + "-" + blob_digest)`` in lowercase hex.
    The first layer uses an empty parent, so its ID hashes ``"-" + digest``.

    Args:
        parent_id: Legacy ID of the parent layer ("" for the base layer)
        blob_digest: Layer blob digest (e.g. "sha256:abc...")

    Returns:
        64 character hex string
    """
    data = f"{parent_id}-{blob_digest}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
