"""Deterministic, ignore-filtered enumeration of a directory tree.

The walk is a depth-first traversal over a ``FileSystem`` port. Ignore rules
are checked before a directory is listed, so a pruned subtree is never read.
Symbolic links are recorded as opaque leaves and never followed, which keeps
the walk free of cycles without any visited-set bookkeeping.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Literal, Protocol

from bifrost.errors import WalkError, WalkErrorKind

logger = logging.getLogger(__name__)

EntryKind = Literal["dir", "file", "symlink", "other"]

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True, slots=True)
class DirEntry:
    name: str
    kind: EntryKind
    size: int = 0


class FileSystem(Protocol):
    def kind_of(self, path: Path) -> EntryKind | None:
        """Return the entry kind without following links, or None if absent."""

    def size_of(self, path: Path) -> int:
        """Return the byte size of a file entry."""

    def list_dir(self, path: Path) -> list[DirEntry]:
        """List direct children of a directory; raises OSError when unreadable."""


@dataclass(slots=True)
class LocalFileSystem:
    """``FileSystem`` backed by ``os.scandir``; links are never followed."""

    def kind_of(self, path: Path) -> EntryKind | None:
        try:
            mode = os.lstat(path).st_mode
        except FileNotFoundError:
            return None
        return _kind_from_mode(mode)

    def size_of(self, path: Path) -> int:
        return os.lstat(path).st_size

    def list_dir(self, path: Path) -> list[DirEntry]:
        entries: list[DirEntry] = []
        with os.scandir(path) as iterator:
            for item in iterator:
                if item.is_symlink():
                    entries.append(DirEntry(name=item.name, kind="symlink"))
                elif item.is_dir(follow_symlinks=False):
                    entries.append(DirEntry(name=item.name, kind="dir"))
                elif item.is_file(follow_symlinks=False):
                    try:
                        size = item.stat(follow_symlinks=False).st_size
                    except OSError as exc:
                        # Vanished or stale entries drop out; siblings are kept.
                        logger.warning(
                            "skipping unreadable entry",
                            extra={"path": item.path, "detail": str(exc)},
                        )
                        continue
                    entries.append(DirEntry(name=item.name, kind="file", size=size))
                else:
                    entries.append(DirEntry(name=item.name, kind="other"))
        return entries


def _kind_from_mode(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return "symlink"
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISREG(mode):
        return "file"
    return "other"


def normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.strip("/")


@dataclass(frozen=True, slots=True)
class IgnoreRules:
    """Exact/prefix-directory matching, with glob patterns as an extension.

    A plain pattern matches a relative path equal to it or any path beneath
    it. A pattern containing ``*``, ``?`` or ``[`` is matched with
    ``fnmatchcase`` against the path and each of its parent directories.
    """

    exact: frozenset[str] = frozenset()
    globs: tuple[str, ...] = ()

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> IgnoreRules:
        normalized = {normalize_pattern(pattern) for pattern in patterns}
        normalized.discard("")
        normalized.discard(".")
        globs = tuple(sorted(p for p in normalized if _GLOB_CHARS.intersection(p)))
        exact = frozenset(p for p in normalized if p not in globs)
        return cls(exact=exact, globs=globs)

    def matches(self, rel_path: str) -> bool:
        parts = PurePosixPath(rel_path).parts
        for depth in range(1, len(parts) + 1):
            candidate = "/".join(parts[:depth])
            if candidate in self.exact:
                return True
            if any(fnmatchcase(candidate, glob) for glob in self.globs):
                return True
        return False


@dataclass(frozen=True, slots=True)
class DirectorySnapshot:
    """One walked subtree.

    ``paths`` are POSIX paths relative to ``root``, sorted lexicographically.
    ``prefix`` is the root's location relative to the realm and is prepended
    to every path when the snapshot is archived.
    """

    root: Path
    paths: tuple[str, ...]
    ignore_list: frozenset[str]
    prefix: str = ""
    sizes: Mapping[str, int] = field(default_factory=dict)
    links: frozenset[str] = frozenset()
    errors: tuple[WalkError, ...] = ()

    @property
    def size(self) -> int:
        return sum(self.sizes.values())

    def __len__(self) -> int:
        return len(self.paths)

    def archive_name(self, rel_path: str) -> str:
        return _join(self.prefix, rel_path)

    def absolute(self, rel_path: str) -> Path:
        return self.root / rel_path


def walk(
    root: str | Path,
    ignore_list: Iterable[str],
    *,
    prefix: str = "",
    filesystem: FileSystem | None = None,
) -> DirectorySnapshot:
    """Walk ``root`` and return a ``DirectorySnapshot`` excluding ignored paths.

    Ignore patterns are matched against ``prefix`` joined with the path
    relative to ``root``, so nested roots share the realm's ignore list.

    Raises:
        WalkError: the root is missing (``ROOT_MISSING``) or cannot be listed
            (``UNREADABLE``). Unreadable subdirectories are recorded in
            ``DirectorySnapshot.errors`` instead.
    """
    fs = filesystem if filesystem is not None else LocalFileSystem()
    root_path = Path(root)
    patterns = frozenset(ignore_list)
    rules = IgnoreRules.from_patterns(patterns)
    prefix = normalize_pattern(prefix)

    try:
        kind = fs.kind_of(root_path)
    except OSError as exc:
        raise _unreadable_root(root_path, exc) from exc
    if kind is None:
        raise WalkError(
            "Walk root does not exist.",
            kind=WalkErrorKind.ROOT_MISSING,
            path=str(root_path),
            hint="Check the workspace contents named in the manifest or on the command line.",
        )
    if kind != "dir":
        return _leaf_snapshot(fs, root_path, kind, patterns, rules, prefix)

    sizes, links, errors = _traverse(
        fs,
        root_path,
        should_prune=lambda rel: rules.matches(_join(prefix, rel)),
    )
    return DirectorySnapshot(
        root=root_path,
        paths=tuple(sorted(sizes)),
        ignore_list=patterns,
        prefix=prefix,
        sizes=dict(sorted(sizes.items())),
        links=frozenset(links),
        errors=tuple(errors),
    )


def _traverse(
    fs: FileSystem,
    root: Path,
    *,
    should_prune: Callable[[str], bool],
) -> tuple[dict[str, int], set[str], list[WalkError]]:
    sizes: dict[str, int] = {}
    links: set[str] = set()
    errors: list[WalkError] = []
    pending = [""]
    while pending:
        rel_dir = pending.pop()
        directory = root / rel_dir if rel_dir else root
        try:
            entries = fs.list_dir(directory)
        except OSError as exc:
            if not rel_dir:
                raise _unreadable_root(directory, exc) from exc
            error = WalkError(
                "Directory is not readable; subtree skipped.",
                kind=WalkErrorKind.UNREADABLE,
                path=str(directory),
                context={"detail": str(exc)},
            )
            logger.warning("skipping unreadable directory", extra={"path": str(directory)})
            errors.append(error)
            continue

        for entry in sorted(entries, key=lambda item: item.name, reverse=True):
            rel_path = _join(rel_dir, entry.name)
            if should_prune(rel_path):
                continue
            if entry.kind == "dir":
                pending.append(rel_path)
            elif entry.kind == "file":
                sizes[rel_path] = entry.size
            elif entry.kind == "symlink":
                sizes[rel_path] = 0
                links.add(rel_path)
    return sizes, links, errors


def _leaf_snapshot(
    fs: FileSystem,
    path: Path,
    kind: EntryKind,
    patterns: frozenset[str],
    rules: IgnoreRules,
    prefix: str,
) -> DirectorySnapshot:
    parent_prefix = str(PurePosixPath(prefix).parent) if prefix else ""
    if parent_prefix == ".":
        parent_prefix = ""
    name = path.name
    if rules.matches(_join(parent_prefix, name)) or kind == "other":
        sizes: dict[str, int] = {}
    elif kind == "symlink":
        sizes = {name: 0}
    else:
        try:
            sizes = {name: fs.size_of(path)}
        except OSError as exc:
            raise _unreadable_root(path, exc) from exc
    return DirectorySnapshot(
        root=path.parent,
        paths=tuple(sizes),
        ignore_list=patterns,
        prefix=parent_prefix,
        sizes=sizes,
        links=frozenset(sizes) if kind == "symlink" else frozenset(),
    )


def _unreadable_root(path: Path, exc: OSError) -> WalkError:
    return WalkError(
        "Walk root is not readable.",
        kind=WalkErrorKind.UNREADABLE,
        path=str(path),
        context={"detail": str(exc)},
    )


def _join(prefix: str, rel_path: str) -> str:
    if not prefix:
        return rel_path
    if not rel_path:
        return prefix
    return f"{prefix}/{rel_path}"


__all__ = [
    "DirEntry",
    "DirectorySnapshot",
    "FileSystem",
    "IgnoreRules",
    "LocalFileSystem",
    "normalize_pattern",
    "walk",
]
