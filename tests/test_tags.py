"""Tests for image reference parsing and tag extraction from image tar files."""

import io
import json
import tarfile

import pytest

from registry_api_v2_puller.core.types import ImageReference
from registry_api_v2_puller.exceptions import ConfigurationError, ValidationError
from registry_api_v2_puller.tar.tags import (
    default_output_name,
    extract_repo_tags,
    parse_image_reference,
    parse_repository_tag,
)


def add_json(tar, name, data):
    content = json.dumps(data).encode("utf-8")
    info = tarfile.TarInfo(name)
    info.size = len(content)
    tar.addfile(info, fileobj=io.BytesIO(content))


def create_test_tar(path, manifest=None, repositories=None, mode="w"):
    """Create a test tar with the given manifest.json and repositories."""
    with tarfile.open(path, mode) as tar:
        if manifest is not None:
            add_json(tar, "manifest.json", manifest)
        if repositories is not None:
            add_json(tar, "repositories", repositories)
    return path


def test_parse_repository_tag():
    """Test parsing repository:tag strings."""
    assert parse_repository_tag("nginx:alpine") == ("nginx", "alpine")
    assert parse_repository_tag("nginx") == ("nginx", "latest")

    # Registry ports stay in the repository
    assert parse_repository_tag("localhost:5000/nginx:alpine") == (
        "localhost:5000/nginx",
        "alpine",
    )
    assert parse_repository_tag("localhost:5000/nginx") == ("localhost:5000/nginx", "latest")

    # Empty tag
    assert parse_repository_tag("app:") == ("app", "latest")


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("redis", ImageReference("redis", "latest")),
        ("nginx:alpine", ImageReference("nginx", "alpine")),
        ("  nginx:1.25  ", ImageReference("nginx", "1.25")),
        ("bitnami/redis:7.2", ImageReference("bitnami/redis", "7.2")),
    ],
)
def test_parse_image_reference(reference, expected):
    assert parse_image_reference(reference) == expected


@pytest.mark.parametrize("reference", ["", ":alpine", "nginx@sha256:" + "a" * 64])
def test_parse_image_reference_rejects(reference):
    with pytest.raises(ConfigurationError):
        parse_image_reference(reference)


def test_default_output_name():
    assert default_output_name(ImageReference("nginx", "alpine"), "linux/amd64") == (
        "nginx-alpine-linux-amd64.tar.gz"
    )
    assert default_output_name(ImageReference("bitnami/redis", "7.2"), "linux/arm64/v8") == (
        "bitnami-redis-7.2-linux-arm64-v8.tar.gz"
    )


def test_extract_repo_tags_from_manifest(tmp_path):
    tar_path = create_test_tar(
        tmp_path / "image.tar",
        manifest=[{"Config": "c.json", "RepoTags": ["nginx:alpine"], "Layers": []}],
        repositories={"different": {"tag": "xyz"}},
    )
    assert extract_repo_tags(str(tar_path)) == ["nginx:alpine"]


def test_extract_repo_tags_from_gzip_archive(tmp_path):
    tar_path = create_test_tar(
        tmp_path / "image.tar.gz",
        manifest=[{"Config": "c.json", "RepoTags": ["redis:latest"], "Layers": []}],
        mode="w:gz",
    )
    assert extract_repo_tags(str(tar_path)) == ["redis:latest"]


def test_extract_repo_tags_falls_back_to_repositories(tmp_path):
    tar_path = create_test_tar(
        tmp_path / "image.tar",
        manifest=[{"Config": "c.json", "RepoTags": [], "Layers": []}],
        repositories={"nginx": {"alpine": "abc", "latest": "def"}},
    )
    assert set(extract_repo_tags(str(tar_path))) == {"nginx:alpine", "nginx:latest"}


def test_extract_repo_tags_invalid_tar(tmp_path):
    invalid_tar = tmp_path / "empty.tar"
    invalid_tar.touch()
    with pytest.raises(ValidationError, match="Cannot read tar file"):
        extract_repo_tags(str(invalid_tar))


def test_extract_repo_tags_without_metadata(tmp_path):
    tar_path = create_test_tar(tmp_path / "image.tar")
    with pytest.raises(ValidationError, match="Neither manifest.json nor repositories"):
        extract_repo_tags(str(tar_path))


def test_extract_repo_tags_invalid_json(tmp_path):
    tar_path = tmp_path / "image.tar"
    with tarfile.open(tar_path, "w") as tar:
        info = tarfile.TarInfo("manifest.json")
        info.size = 5
        tar.addfile(info, fileobj=io.BytesIO(b"{not "))
    with pytest.raises(ValidationError, match="Invalid JSON"):
        extract_repo_tags(str(tar_path))
