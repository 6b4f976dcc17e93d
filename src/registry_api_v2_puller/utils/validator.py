"""Structural checks for legacy docker save archives."""

import json
import logging
import tarfile
from pathlib import Path
from typing import Any

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

ROOT_FILES = ("manifest.json", "repositories")
ENTRY_FIELDS = ("Config", "RepoTags", "Layers")
LAYER_FILES = ("VERSION", "json", "layer.tar")


def missing_files(members: set[str], names: list[str] | tuple[str, ...]) -> list[str]:
    """Names that are not members of the archive."""
    return [name for name in names if name not in members]


def read_root_manifest(tar: tarfile.TarFile) -> list[Any] | None:
    """Decode manifest.json, or None if it is unreadable or not a non-empty list."""
    member = tar.extractfile("manifest.json")
    if member is None:
        return None
    try:
        data = json.loads(member.read().decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(data, list) or not data:
        return None
    return data


def layer_files(layer_path: str) -> list[str]:
    """Files expected next to ``<id>/layer.tar``."""
    layer_dir = layer_path.rsplit("/", 1)[0]
    return [f"{layer_dir}/{name}" for name in LAYER_FILES]


def check_manifest_entry(entry: Any, members: set[str]) -> list[str]:
    """List the problems of one manifest.json entry; empty means valid."""
    if not isinstance(entry, dict):
        return ["manifest entry is not an object"]

    fields = [name for name in ENTRY_FIELDS if name not in entry]
    if fields:
        return [f"manifest entry lacks {', '.join(fields)}"]

    problems = []
    if entry["Config"] not in members:
        problems.append(f"config {entry['Config']} missing")

    layers = entry["Layers"]
    if not isinstance(layers, list):
        return problems + ["Layers is not a list"]

    for layer in layers:
        if not isinstance(layer, str) or not layer.endswith("/layer.tar"):
            problems.append(f"{layer!r} is not a <id>/layer.tar path")
            continue
        problems.extend(f"{name} missing" for name in missing_files(members, layer_files(layer)))
    return problems


def validate_legacy_tar(tar_path: str | Path) -> bool:
    """Check that a tar file is a loadable legacy docker save archive.

    Args:
        tar_path: Path to the .tar or .tar.gz archive

    Returns:
        True if manifest.json, repositories, the config and every layer
        directory are present

    Raises:
        ValidationError: If the file is missing or cannot be read
    """
    tar_path = Path(tar_path)
    if not tar_path.exists():
        raise ValidationError(f"Tar file does not exist: {tar_path}")

    try:
        if not tarfile.is_tarfile(tar_path):
            logger.debug("%s is not a tar archive", tar_path)
            return False

        with tarfile.open(tar_path, "r") as tar:
            members = set(tar.getnames())
            absent = missing_files(members, ROOT_FILES)
            if absent:
                logger.debug("%s lacks %s", tar_path, ", ".join(absent))
                return False

            manifest = read_root_manifest(tar)
            if manifest is None:
                logger.debug("%s has an unusable manifest.json", tar_path)
                return False

            problems = [p for entry in manifest for p in check_manifest_entry(entry, members)]
    except (tarfile.TarError, OSError) as e:
        raise ValidationError(f"Error reading tar file: {e}") from e

    for problem in problems:
        logger.debug("%s: %s", tar_path, problem)
    return not problems
