"""Workspace: a resolved configuration plus its walked directory snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from bifrost.config import Configuration
from bifrost.errors import ConfigError, ConfigErrorKind
from bifrost.snapshot import DirectorySnapshot, FileSystem, LocalFileSystem, walk

logger = logging.getLogger(__name__)

# Names that may never be loaded as workspace contents.
_UNLOADABLE_FRAGMENTS = (".bifrost", "container")


@dataclass(frozen=True, slots=True)
class WorkspaceRoot:
    path: Path
    prefix: str


@dataclass(slots=True)
class Workspace:
    """Owns one ``Configuration`` and, once populated, its snapshots.

    ``contents`` stays ``None`` until ``populate()`` walks the realm. Calling
    ``populate()`` again re-walks every root and replaces ``contents``.
    """

    config: Configuration
    filesystem: FileSystem = field(default_factory=LocalFileSystem)
    _contents: tuple[DirectorySnapshot, ...] | None = field(init=False, default=None, repr=False)

    @property
    def name(self) -> str:
        return self.config.workspace_name

    @property
    def contents(self) -> tuple[DirectorySnapshot, ...] | None:
        return self._contents

    @property
    def is_populated(self) -> bool:
        return self._contents is not None

    @property
    def size(self) -> int:
        return sum(snapshot.size for snapshot in self._contents or ())

    @property
    def file_count(self) -> int:
        return sum(len(snapshot) for snapshot in self._contents or ())

    def roots(self) -> tuple[WorkspaceRoot, ...]:
        """Return the roots to walk: the realm itself or the manifest's contents."""
        cwd = self.config.cwd
        requested = self.config.manifest.contents
        if not requested:
            return (WorkspaceRoot(path=cwd, prefix=""),)

        roots: list[WorkspaceRoot] = []
        seen: set[str] = set()
        for raw_name in requested:
            name = _strip_trailing_slash(raw_name)
            if name in seen:
                continue
            if not self._is_loadable(name):
                logger.warning("ignoring unloadable workspace entry", extra={"entry": raw_name})
                continue
            seen.add(name)
            roots.append(WorkspaceRoot(path=cwd / name, prefix=name))

        if not roots:
            raise ConfigError(
                "Contents were given but none name an entry of the realm directory.",
                kind=ConfigErrorKind.INVALID,
                hint="Pass names of files or directories directly inside the realm.",
                context={"path": str(cwd), "contents": ", ".join(requested)},
            )
        return tuple(sorted(roots, key=lambda root: root.prefix))

    def populate(self) -> tuple[DirectorySnapshot, ...]:
        ignore_list = self.config.ignore_list
        snapshots = tuple(
            walk(root.path, ignore_list, prefix=root.prefix, filesystem=self.filesystem)
            for root in self.roots()
        )
        self._contents = snapshots
        logger.info(
            "workspace populated",
            extra={
                "workspace": self.name,
                "snapshots": len(snapshots),
                "files": self.file_count,
                "bytes": self.size,
            },
        )
        return snapshots

    def _is_loadable(self, name: str) -> bool:
        if not name or name in {".", ".."} or "/" in name:
            return False
        if Path(name) == self.config.home_path:
            return False
        if any(fragment in name for fragment in _UNLOADABLE_FRAGMENTS):
            return False
        return self.filesystem.kind_of(self.config.cwd / name) is not None


def _strip_trailing_slash(name: str) -> str:
    if len(name) > 1 and name.endswith(("/", "\\")):
        return name[:-1]
    return name


__all__ = ["Workspace", "WorkspaceRoot"]
