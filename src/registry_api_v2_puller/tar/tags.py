"""Image reference parsing and tag extraction from legacy image archives."""

import json
import tarfile

from ..core.types import DEFAULT_TAG, ImageReference
from ..exceptions import ConfigurationError, ValidationError


def parse_repository_tag(repo_tag: str) -> tuple[str, str]:
    """Split a ``repository[:tag]`` string into repository and tag.

    Only a ``:`` after the last ``/`` separates the tag, so registry ports
    stay part of the repository.

    Examples:
        parse_repository_tag("nginx:alpine")          # ("nginx", "alpine")
        parse_repository_tag("redis")                 # ("redis", "latest")
        parse_repository_tag("localhost:5000/app:v1") # ("localhost:5000/app", "v1")
    """
    if ":" in repo_tag.rsplit("/", 1)[-1]:
        repository, tag = repo_tag.rsplit(":", 1)
        return repository, tag or DEFAULT_TAG

    return repo_tag, DEFAULT_TAG


def parse_image_reference(reference: str) -> ImageReference:
    """Parse a user supplied ``name[:tag]`` into an ImageReference.

    Raises:
        ConfigurationError: If the name is empty or a digest reference
    """
    reference = reference.strip()
    if "@" in reference:
        raise ConfigurationError(f"Digest references are not supported: {reference}")

    name, tag = parse_repository_tag(reference)
    if not name:
        raise ConfigurationError(f"Invalid image reference: {reference!r}")
    return ImageReference(name=name, tag=tag)


def default_output_name(image: ImageReference, platform: str) -> str:
    """Archive file name ``<name>-<tag>-<os>-<arch>.tar.gz``."""
    name = image.name.replace("/", "-").replace(":", "-")
    return f"{name}-{image.tag}-{platform.replace('/', '-')}.tar.gz"


def extract_repo_tags(tar_path: str) -> list[str]:
    """Extract RepoTags from manifest.json, falling back to repositories.

    Args:
        tar_path: Path to a (optionally gzip compressed) legacy image tar

    Returns:
        List of repository tags (e.g., ["nginx:alpine"])

    Raises:
        ValidationError: If the archive cannot be read or has neither file
    """
    try:
        with tarfile.open(tar_path, "r") as tar:
            names = set(tar.getnames())
            if "manifest.json" in names:
                manifest_data = _load_json_member(tar, "manifest.json")
                if isinstance(manifest_data, list) and manifest_data:
                    repo_tags = manifest_data[0].get("RepoTags") or []
                    if repo_tags:
                        return list(repo_tags)

            if "repositories" in names:
                repos_data = _load_json_member(tar, "repositories")
                return [
                    f"{repo_name}:{tag_name}"
                    for repo_name, tag_dict in repos_data.items()
                    if isinstance(tag_dict, dict)
                    for tag_name in tag_dict
                ]
    except (tarfile.TarError, OSError) as e:
        raise ValidationError(f"Cannot read tar file: {e}") from e

    raise ValidationError("Neither manifest.json nor repositories found in tar file")


def _load_json_member(tar: tarfile.TarFile, name: str):
    member = tar.extractfile(name)
    if member is None:
        raise ValidationError(f"{name} is not a regular file")
    try:
        return json.loads(member.read().decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid JSON in {name}: {e}") from e
