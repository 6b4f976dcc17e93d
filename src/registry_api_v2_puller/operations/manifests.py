"""Manifest index and image manifest operations."""

import logging
from typing import Any

import aiohttp

from ..core.session import ensure_ok, fetch, parse_json_response
from ..core.types import (
    BearerToken,
    Descriptor,
    ImageManifest,
    ImageReference,
    ManifestIndexEntry,
    PlatformIndex,
    RegistryConfig,
)
from ..exceptions import ManifestError, PlatformNotFoundError

logger = logging.getLogger(__name__)

DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
OCI_MANIFEST_V1 = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX_V1 = "application/vnd.oci.image.index.v1+json"

INDEX_ACCEPT = ",".join(
    [DOCKER_MANIFEST_V2, DOCKER_MANIFEST_LIST_V2, OCI_MANIFEST_V1, OCI_INDEX_V1]
)

# Registries publish attestation manifests under this platform
UNKNOWN = "unknown"


def parse_manifest_index(data: Any) -> PlatformIndex:
    """Build the platform lookup of a manifest list / image index.

    Args:
        data: Decoded index JSON

    Returns:
        Mapping of "<os>/<architecture>" to its index entry

    Raises:
        ManifestError: If the document has no ``manifests`` array
    """
    if not isinstance(data, dict) or "manifests" not in data:
        raise ManifestError("Manifest index has no 'manifests' list")

    manifests = data["manifests"]
    if not isinstance(manifests, list):
        raise ManifestError("Manifest index 'manifests' is not a list")

    index: PlatformIndex = {}
    for item in manifests:
        if not isinstance(item, dict):
            raise ManifestError(f"Manifest index entry is not an object: {item!r}")
        platform = item.get("platform")
        if not isinstance(platform, dict):
            platform = {}
        os_name = platform.get("os", "")
        architecture = platform.get("architecture", "")
        if os_name == UNKNOWN or architecture == UNKNOWN:
            continue
        if not os_name or not architecture:
            logger.debug("Skipping index entry without platform: %s", item.get("digest"))
            continue
        if "digest" not in item:
            raise ManifestError(f"Manifest index entry {os_name}/{architecture} has no digest")

        entry = ManifestIndexEntry(
            os=os_name,
            architecture=architecture,
            digest=item["digest"],
            media_type=item.get("mediaType", DOCKER_MANIFEST_V2),
            variant=platform.get("variant", ""),
        )
        # Later variants of the same os/architecture replace earlier ones
        index[entry.platform] = entry
        if entry.variant:
            index[f"{entry.platform}/{entry.variant}"] = entry

    return index


def select_platform(index: PlatformIndex, platform: str) -> ManifestIndexEntry:
    """Pick the index entry for ``platform``.

    Raises:
        PlatformNotFoundError: If the platform is not in the index
    """
    entry = index.get(platform)
    if entry is None:
        raise PlatformNotFoundError(platform, sorted(index))
    return entry


def parse_image_manifest(data: Any) -> ImageManifest:
    """Parse an image manifest into config and ordered layer descriptors.

    Raises:
        ManifestError: If config or layers are missing
    """
    if not isinstance(data, dict):
        raise ManifestError("Image manifest is not a JSON object")

    try:
        config = data["config"]
        layers = data["layers"]
        return ImageManifest(
            config=Descriptor(
                digest=config["digest"],
                media_type=config.get("mediaType", ""),
                size=config.get("size", 0),
            ),
            layers=[
                Descriptor(
                    digest=layer["digest"],
                    media_type=layer.get("mediaType", ""),
                    size=layer.get("size", 0),
                )
                for layer in layers
            ],
            media_type=data.get("mediaType", ""),
        )
    except (KeyError, TypeError) as e:
        raise ManifestError(f"Malformed image manifest, missing {e}") from e


async def get_manifest_index(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    image: ImageReference,
    token: BearerToken,
) -> PlatformIndex:
    """Fetch the manifest list for ``image`` and build its platform lookup."""
    url = config.manifest_url(image.name, image.tag)
    response = await fetch(session, url, accept=INDEX_ACCEPT, token=token, proxy=config.proxy)
    ensure_ok(response, ManifestError, f"Manifest request for {image}")

    data = parse_json_response(response, ManifestError, f"manifest index of {image}")
    index = parse_manifest_index(data)
    logger.debug("Available platforms for %s: %s", image, ", ".join(sorted(index)))
    return index


async def get_image_manifest(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    image: ImageReference,
    digest: str,
    token: BearerToken,
    media_type: str = DOCKER_MANIFEST_V2,
) -> ImageManifest:
    """Fetch the concrete image manifest by digest."""
    url = config.manifest_url(image.name, digest)
    response = await fetch(session, url, accept=media_type, token=token, proxy=config.proxy)
    ensure_ok(response, ManifestError, f"Manifest request for {digest}")

    data = parse_json_response(response, ManifestError, f"manifest {digest}")
    manifest = parse_image_manifest(data)
    logger.debug(
        "Manifest %s: config %s, %d layers",
        digest,
        manifest.config.digest,
        len(manifest.layers),
    )
    return manifest


async def resolve_manifest(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    image: ImageReference,
    platform: str,
    token: BearerToken,
) -> ImageManifest:
    """Resolve ``image`` to the image manifest of ``platform``.

    Raises:
        ManifestError: If the index or manifest cannot be fetched or parsed
        PlatformNotFoundError: If ``platform`` is not published for the tag
    """
    index = await get_manifest_index(session, config, image, token)
    entry = select_platform(index, platform)
    media_type = entry.media_type
    if media_type not in (DOCKER_MANIFEST_V2, OCI_MANIFEST_V1):
        media_type = DOCKER_MANIFEST_V2
    return await get_image_manifest(session, config, image, entry.digest, token, media_type)
