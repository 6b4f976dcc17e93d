"""Async functional style pull operations."""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

from .core.auth import authenticate
from .core.config import parse_platform, validate_proxy
from .core.session import create_session
from .core.types import (
    DEFAULT_NAMESPACE,
    DEFAULT_PLATFORM,
    DEFAULT_REGISTRY_URL,
    ImageReference,
    RegistryConfig,
)
from .exceptions import ArchiveError, ConfigurationError
from .operations.manifests import get_manifest_index, resolve_manifest
from .tar.archive import build_archive_async
from .tar.tags import default_output_name, parse_image_reference
from .tar.writer import assemble_layout

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "registry-pull-"


def layout_dir_name(image: ImageReference, platform: str) -> str:
    """Directory name of the layout root inside the temp dir."""
    name = image.name.replace("/", "-").replace(":", "-")
    return f"{name}-{image.tag}-{platform.replace('/', '-')}"


def prepare_output_path(
    output: Optional[str], image: ImageReference, platform: str
) -> Path:
    """Resolve the archive path and reject one that already exists.

    Raises:
        ConfigurationError: If the path already exists
    """
    path = Path(output) if output else Path(default_output_name(image, platform))
    if path.exists():
        raise ConfigurationError(f"Output path already exists: {path}")
    return path


async def pull_image(
    image: str,
    platform: str = DEFAULT_PLATFORM,
    output: Optional[str] = None,
    registry_url: str = DEFAULT_REGISTRY_URL,
    namespace: str = DEFAULT_NAMESPACE,
    proxy: Optional[str] = None,
    timeout: int = 300,
    verify_digests: bool = True,
    cancel: Optional[asyncio.Event] = None,
    progress_callback: Optional[Callable] = None,
) -> str:
    """레지스트리에서 이미지를 받아 docker load 가능한 tar.gz로 저장합니다.

    Options are validated before any network request. The temporary layout
    directory is removed whether or not the pull succeeds.

    Args:
        image: Image reference "name[:tag]" (e.g. "nginx:alpine", "redis")
        platform: Target platform "os/architecture" (default: linux/amd64)
        output: Archive path (default: "<name>-<tag>-<os>-<arch>.tar.gz")
        registry_url: Registry URL (default: Docker Hub)
        namespace: Repository namespace for single-segment names
        proxy: Optional proxy URL (e.g. "http://127.0.0.1:7890")
        timeout: Total timeout per request in seconds
        verify_digests: Check downloaded blobs against their digests
        cancel: Optional event; setting it aborts the pull between blobs
        progress_callback: Optional callback(current, total, description)

    Returns:
        str: Path of the written archive

    Raises:
        ConfigurationError: Invalid options or existing output path
        AuthenticationError: Token could not be obtained
        PlatformNotFoundError: Platform not published for the tag
        RegistryError: Any other pull failure

    Examples:
        path = await pull_image("nginx:alpine", platform="linux/arm64")
        print(f"docker load -i {path}")
    """
    reference = parse_image_reference(image)
    platform = parse_platform(platform)
    config = RegistryConfig(
        url=registry_url,
        namespace=namespace,
        timeout=timeout,
        proxy=validate_proxy(proxy),
        verify_digests=verify_digests,
    )
    output_path = prepare_output_path(output, reference, platform)

    session = await create_session(config)
    try:
        token = await authenticate(session, config, reference)
        manifest = await resolve_manifest(session, config, reference, platform, token)

        temp_dir = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX)
        logger.debug("Created temporary directory %s", temp_dir)
        try:
            root = Path(temp_dir) / layout_dir_name(reference, platform)
            layout = await assemble_layout(
                session,
                config,
                manifest,
                reference,
                token,
                root,
                cancel=cancel,
                progress_callback=progress_callback,
            )
            logger.info("Packing %d layers into %s", len(layout.layers), output_path)
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ArchiveError(f"Cannot create output directory {output_path.parent}: {e}") from e
            await build_archive_async(layout.root, output_path)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)
            logger.debug("Removed temporary directory %s", temp_dir)
    finally:
        await session.close()

    return str(output_path)


async def list_platforms(
    image: str,
    registry_url: str = DEFAULT_REGISTRY_URL,
    namespace: str = DEFAULT_NAMESPACE,
    proxy: Optional[str] = None,
    timeout: int = 30,
) -> list[str]:
    """이미지 태그가 제공하는 플랫폼 목록을 조회합니다.

    Attestation entries (unknown/unknown) are not listed.

    Args:
        image: Image reference "name[:tag]"
        registry_url: Registry URL (default: Docker Hub)
        namespace: Repository namespace for single-segment names
        proxy: Optional proxy URL
        timeout: Request timeout in seconds

    Returns:
        list[str]: Sorted platform keys (e.g. ["linux/amd64", "linux/arm64"])
    """
    reference = parse_image_reference(image)
    config = RegistryConfig(
        url=registry_url,
        namespace=namespace,
        timeout=timeout,
        proxy=validate_proxy(proxy),
    )
    session = await create_session(config)
    try:
        token = await authenticate(session, config, reference)
        index = await get_manifest_index(session, config, reference, token)
    finally:
        await session.close()
    return sorted(index)
