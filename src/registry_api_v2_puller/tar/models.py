"""Data models for the legacy image layout."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class LegacyLayer:
    """One layer directory of a docker save layout."""

    id: str
    parent: str
    digest: str
    tar_path: str  # Path relative to the layout root, "<id>/layer.tar"


@dataclass
class LegacyImageLayout:
    """Legacy image layout written to disk."""

    root: Path
    config_file: str
    repo_tag: str
    layers: list[LegacyLayer] = field(default_factory=list)

    @property
    def top_layer_id(self) -> str:
        return self.layers[-1].id if self.layers else ""

    @property
    def layer_paths(self) -> list[str]:
        return [layer.tar_path for layer in self.layers]
