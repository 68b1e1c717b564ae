"""Layout of the ``~/.bifrost`` support tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from bifrost.errors import ConfigError, ConfigErrorKind

DOT_BIFROST = ".bifrost"
CONTAINER = "container"
BIFROST_CONTAINER = "bifrost"
HANDLES = "handles"

# Workspace names that would collide with the support tree itself.
RESERVED_NAMES = frozenset({DOT_BIFROST, CONTAINER, BIFROST_CONTAINER, ".bifrost_config", "tmp"})


@dataclass(frozen=True, slots=True)
class BifrostPaths:
    home: Path

    @property
    def root(self) -> Path:
        return self.home / DOT_BIFROST

    @property
    def container_dir(self) -> Path:
        return self.root / CONTAINER

    @property
    def staging_dir(self) -> Path:
        """Directory mounted into the container; one subdirectory per workspace."""
        return self.container_dir / BIFROST_CONTAINER

    @property
    def dockerfile(self) -> Path:
        return self.staging_dir / "Dockerfile"

    @property
    def handles_dir(self) -> Path:
        return self.root / HANDLES

    def workspace_dir(self, name: str) -> Path:
        ensure_workspace_name(name)
        return self.staging_dir / name

    def handle_file(self, name: str) -> Path:
        ensure_workspace_name(name)
        return self.handles_dir / f"{name}.json"


def ensure_workspace_name(name: str) -> str:
    if not name or not name.strip():
        raise ConfigError(
            "Workspace name cannot be empty.",
            kind=ConfigErrorKind.INVALID,
            hint="Set [workspace].name in Bifrost.toml.",
        )
    if name in RESERVED_NAMES or "/" in name or "\\" in name or name in {".", ".."}:
        raise ConfigError(
            "Workspace name is reserved or not a plain directory name.",
            kind=ConfigErrorKind.INVALID,
            hint="Choose a different [workspace].name in Bifrost.toml.",
            context={"workspace": name},
        )
    return name


__all__ = ["RESERVED_NAMES", "BifrostPaths", "ensure_workspace_name"]
