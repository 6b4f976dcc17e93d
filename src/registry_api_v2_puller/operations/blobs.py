"""Blob download operations."""

import logging

import aiohttp

from ..core.session import ensure_ok, fetch
from ..core.types import BearerToken, ImageReference, RegistryConfig
from ..exceptions import BlobFetchError, DigestMismatchError
from ..utils.digest import calculate_digest, split_digest

logger = logging.getLogger(__name__)


async def fetch_blob(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    image: ImageReference,
    digest: str,
    media_type: str,
    token: BearerToken,
) -> bytes:
    """Download a blob from the registry.

    Args:
        session: aiohttp client session
        config: Registry configuration
        image: Image the blob belongs to
        digest: Blob digest
        media_type: Declared media type, sent as Accept
        token: Bearer token

    Returns:
        Raw blob content

    Raises:
        BlobFetchError: If the download fails
        DigestMismatchError: If verification is enabled and content does not
            match the digest
    """
    try:
        algorithm, _ = split_digest(digest)
    except ValueError as e:
        raise BlobFetchError(str(e)) from e

    url = config.blob_url(image.name, digest)
    response = await fetch(session, url, accept=media_type or None, token=token, proxy=config.proxy)
    ensure_ok(response, BlobFetchError, f"Blob download of {digest}")

    if config.verify_digests:
        actual = calculate_digest(response.body, algorithm)
        if actual != digest:
            raise DigestMismatchError(digest, actual)

    logger.debug("Fetched blob %s (%d bytes)", digest, len(response.body))
    return response.body
