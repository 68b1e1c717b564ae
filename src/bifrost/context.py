"""Deterministic build context archives for populated workspaces."""

from __future__ import annotations

import hashlib
import io
import os
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import cbor2

from bifrost.errors import PreconditionError, WalkError, WalkErrorKind
from bifrost.workspace import Workspace

ARCHIVE_FORMAT = tarfile.PAX_FORMAT
_FILE_MODE = 0o644
_EXEC_MODE = 0o755


@dataclass(frozen=True, slots=True)
class ContextEntry:
    name: str
    size: int
    sha256: str
    link_target: str | None = None


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Tar archive of a workspace's snapshots, ordered by archive member name."""

    name: str
    archive: bytes
    entries: tuple[ContextEntry, ...]

    @property
    def size(self) -> int:
        return sum(entry.size for entry in self.entries)

    @property
    def member_names(self) -> tuple[str, ...]:
        return tuple(entry.name for entry in self.entries)

    @property
    def digest(self) -> str:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        return hashlib.sha256(encoded).hexdigest()

    def _payload(self) -> dict[str, Any]:
        return {
            "schema_version": 1,
            "name": self.name,
            "entries": [
                [entry.name, entry.size, entry.sha256, entry.link_target or ""]
                for entry in self.entries
            ],
        }


def build_context(workspace: Workspace) -> BuildContext:
    """Serialize a populated workspace into a reproducible tar archive.

    Member metadata is normalised (zero mtime, root ownership, fixed modes)
    so that an unchanged tree always produces identical bytes.
    """
    snapshots = workspace.contents
    if snapshots is None:
        raise PreconditionError(
            "Workspace has not been populated.",
            hint="Call Workspace.populate() before building a context.",
            context={"workspace": workspace.name},
        )

    members: dict[str, tuple[Path, bool]] = {}
    for snapshot in snapshots:
        for rel_path in snapshot.paths:
            name = snapshot.archive_name(rel_path)
            members.setdefault(name, (snapshot.absolute(rel_path), rel_path in snapshot.links))

    buffer = io.BytesIO()
    entries: list[ContextEntry] = []
    with tarfile.open(fileobj=buffer, mode="w", format=ARCHIVE_FORMAT) as archive:
        for name in sorted(members):
            source, is_link = members[name]
            entries.append(_add_member(archive, name, source, is_link))
    return BuildContext(name=workspace.name, archive=buffer.getvalue(), entries=tuple(entries))


def _add_member(archive: tarfile.TarFile, name: str, source: Path, is_link: bool) -> ContextEntry:
    info = tarfile.TarInfo(name=name)
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = "root"
    if is_link:
        target = os.readlink(source)
        info.type = tarfile.SYMTYPE
        info.linkname = target
        info.mode = 0o777
        archive.addfile(info)
        return ContextEntry(
            name=name,
            size=0,
            sha256=hashlib.sha256(target.encode()).hexdigest(),
            link_target=target,
        )

    try:
        payload = source.read_bytes()
        executable = os.access(source, os.X_OK)
    except OSError as exc:
        raise WalkError(
            "File could not be read while building the context.",
            kind=WalkErrorKind.UNREADABLE,
            path=str(source),
            context={"detail": str(exc)},
        ) from exc
    info.size = len(payload)
    info.mode = _EXEC_MODE if executable else _FILE_MODE
    archive.addfile(info, io.BytesIO(payload))
    return ContextEntry(name=name, size=len(payload), sha256=hashlib.sha256(payload).hexdigest())


__all__ = ["BuildContext", "ContextEntry", "build_context"]
