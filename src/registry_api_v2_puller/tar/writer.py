"""Legacy docker save layout writer."""

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import aiofiles
import aiofiles.os
import aiohttp

from ..core.types import BearerToken, ImageManifest, ImageReference, RegistryConfig
from ..exceptions import LayoutWriteError, ManifestError, PullCancelledError
from ..operations.blobs import fetch_blob
from ..utils.digest import compute_chain_id
from .models import LegacyImageLayout, LegacyLayer

logger = logging.getLogger(__name__)

LAYOUT_VERSION = "1.0"
DEFAULT_CREATED = "1970-01-01T08:00:00+08:00"

VERSION_FILE = "VERSION"
LAYER_JSON_FILE = "json"
LAYER_TAR_FILE = "layer.tar"
REPOSITORIES_FILE = "repositories"
MANIFEST_FILE = "manifest.json"

# Keys of the image config that do not belong in the top layer's json
STRIPPED_CONFIG_KEYS = ("history", "rootfs")

CONTAINER_CONFIG: dict[str, Any] = {
    "Hostname": "",
    "Domainname": "",
    "User": "",
    "AttachStdin": False,
    "AttachStdout": False,
    "AttachStderr": False,
    "Tty": False,
    "OpenStdin": False,
    "StdinOnce": False,
    "Env": None,
    "Cmd": None,
    "Image": "",
    "Volumes": None,
    "WorkingDir": "",
    "Entrypoint": None,
    "OnBuild": None,
    "Labels": None,
}


def dump_json(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def build_layer_metadata(
    layer_id: str,
    parent_id: str,
    image_config: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build the ``json`` metadata of one legacy layer.

    The top layer passes the image config, which is copied without
    ``history`` and ``rootfs``. Lower layers get a fixed creation time.

    Args:
        layer_id: Chain ID of the layer
        parent_id: Chain ID of the parent ("" for the base layer)
        image_config: Image config, only for the top layer

    Returns:
        Metadata dictionary
    """
    if image_config is not None:
        metadata = copy.deepcopy(image_config)
        for key in STRIPPED_CONFIG_KEYS:
            metadata.pop(key, None)
    else:
        metadata = {"created": DEFAULT_CREATED}

    metadata["container_config"] = copy.deepcopy(CONTAINER_CONFIG)
    metadata["id"] = layer_id
    if parent_id:
        metadata["parent"] = parent_id
    return metadata


def build_repositories(image: ImageReference, top_layer_id: str) -> dict[str, Any]:
    return {image.name: {image.tag: top_layer_id}}


def build_root_manifest(
    config_file: str, image: ImageReference, layer_paths: list[str]
) -> list[dict[str, Any]]:
    return [
        {
            "Config": config_file,
            "RepoTags": [str(image)],
            "Layers": list(layer_paths),
        }
    ]


async def _write_file(path: Path, content: bytes) -> None:
    try:
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)
    except OSError as e:
        raise LayoutWriteError(f"Failed to write {path}: {e}") from e


async def _make_dir(path: Path) -> None:
    try:
        await aiofiles.os.mkdir(path)
    except FileExistsError:
        pass
    except OSError as e:
        raise LayoutWriteError(f"Failed to create directory {path}: {e}") from e


async def _report_progress(
    progress_callback: Optional[Callable], current: int, total: int, description: str
) -> None:
    if not progress_callback:
        return
    if asyncio.iscoroutinefunction(progress_callback):
        await progress_callback(current, total, description)
    else:
        progress_callback(current, total, description)


def _check_cancelled(cancel: Optional[asyncio.Event], what: str) -> None:
    if cancel is not None and cancel.is_set():
        raise PullCancelledError(f"Pull cancelled before {what}")


async def assemble_layout(
    session: aiohttp.ClientSession,
    config: RegistryConfig,
    manifest: ImageManifest,
    image: ImageReference,
    token: BearerToken,
    root: Path,
    cancel: Optional[asyncio.Event] = None,
    progress_callback: Optional[Callable] = None,
) -> LegacyImageLayout:
    """Download an image and write it as a legacy docker save layout.

    Layers are processed in manifest order; each layer ID is chained from
    the previous one, so downloads are strictly sequential.

    Args:
        session: aiohttp client session
        config: Registry configuration
        manifest: Resolved image manifest
        image: Image reference (name and tag for RepoTags)
        token: Bearer token
        root: Layout root directory (created if missing)
        cancel: Optional event, checked before every blob fetch
        progress_callback: Optional callback(current, total, description)

    Returns:
        The written layout

    Raises:
        BlobFetchError: If a blob cannot be downloaded
        LayoutWriteError: If a file or directory cannot be written
        PullCancelledError: If ``cancel`` is set during the pull
    """
    root = Path(root)
    try:
        await aiofiles.os.makedirs(root, exist_ok=True)
    except OSError as e:
        raise LayoutWriteError(f"Failed to create layout root {root}: {e}") from e

    _check_cancelled(cancel, f"config {manifest.config.digest}")
    config_blob = await fetch_blob(
        session, config, image, manifest.config.digest, manifest.config.media_type, token
    )
    try:
        image_config = json.loads(config_blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"Invalid JSON in config {manifest.config.digest}: {e}") from e
    if not isinstance(image_config, dict):
        raise ManifestError(f"Config {manifest.config.digest} is not a JSON object")

    config_file = f"{manifest.config.hex}.json"
    await _write_file(root / config_file, config_blob)

    layout = LegacyImageLayout(root=root, config_file=config_file, repo_tag=str(image))
    total = len(manifest.layers)
    logger.info("Downloading %d layers of %s", total, image)

    parent_id = ""
    for index, layer in enumerate(manifest.layers):
        current_id = compute_chain_id(parent_id, layer.digest)
        is_top = index == total - 1
        metadata = build_layer_metadata(
            current_id, parent_id, image_config if is_top else None
        )
        logger.debug("Layer %d/%d %s -> %s", index + 1, total, layer.digest, current_id)

        layer_dir = root / current_id
        await _make_dir(layer_dir)
        await _write_file(layer_dir / VERSION_FILE, LAYOUT_VERSION.encode("utf-8"))

        _check_cancelled(cancel, f"layer {layer.digest}")
        await _report_progress(progress_callback, index + 1, total, layer.hex[:12])
        blob = await fetch_blob(session, config, image, layer.digest, layer.media_type, token)
        await _write_file(layer_dir / LAYER_TAR_FILE, blob)
        await _write_file(layer_dir / LAYER_JSON_FILE, dump_json(metadata))

        layout.layers.append(
            LegacyLayer(
                id=current_id,
                parent=parent_id,
                digest=layer.digest,
                tar_path=f"{current_id}/{LAYER_TAR_FILE}",
            )
        )
        parent_id = current_id

    await _write_file(
        root / REPOSITORIES_FILE, dump_json(build_repositories(image, parent_id))
    )
    await _write_file(
        root / MANIFEST_FILE,
        dump_json(build_root_manifest(config_file, image, layout.layer_paths)),
    )
    return layout
