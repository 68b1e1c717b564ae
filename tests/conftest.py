"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from bifrost.config import Configuration, Manifest
from bifrost.gateway.inprocess import InProcessGateway
from bifrost.handles import HandleStore
from bifrost.paths import BifrostPaths
from bifrost.snapshot import DirEntry, EntryKind

# A virtual tree maps names to ints (file sizes), "->target" strings
# (symlinks) or nested dicts (directories).
VirtualTree = dict[str, Any]


@dataclass
class VirtualFileSystem:
    root: Path
    tree: VirtualTree
    unreadable: set[str] = field(default_factory=set)
    listed: list[str] = field(default_factory=list)

    def kind_of(self, path: Path) -> EntryKind | None:
        node = self._node(path)
        if node is None:
            return None
        return _kind(node)

    def size_of(self, path: Path) -> int:
        node = self._node(path)
        return node if isinstance(node, int) else 0

    def list_dir(self, path: Path) -> list[DirEntry]:
        rel = path.relative_to(self.root).as_posix()
        self.listed.append(rel)
        if rel in self.unreadable:
            raise PermissionError(13, "Permission denied", str(path))
        node = self._node(path)
        assert isinstance(node, dict)
        return [
            DirEntry(name=name, kind=_kind(child), size=child if isinstance(child, int) else 0)
            for name, child in node.items()
        ]

    def _node(self, path: Path) -> Any:
        try:
            rel = path.relative_to(self.root)
        except ValueError:
            return None
        node: Any = self.tree
        for part in rel.parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node


def _kind(node: Any) -> EntryKind:
    if isinstance(node, dict):
        return "dir"
    if isinstance(node, str) and node.startswith("->"):
        return "symlink"
    return "file"


@pytest.fixture
def virtual_fs() -> Callable[..., VirtualFileSystem]:
    """Build a counting in-memory filesystem rooted at ``/virtual``."""

    def factory(tree: VirtualTree, *, unreadable: set[str] | None = None) -> VirtualFileSystem:
        return VirtualFileSystem(root=Path("/virtual"), tree=tree, unreadable=unreadable or set())

    return factory


@pytest.fixture
def inprocess_gateway() -> InProcessGateway:
    """Provide an in-process gateway for tests that load or run workspaces."""
    return InProcessGateway()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def bifrost_paths(home: Path) -> BifrostPaths:
    return BifrostPaths(home=home)


@pytest.fixture
def handle_store(bifrost_paths: BifrostPaths) -> HandleStore:
    return HandleStore(bifrost_paths)


@pytest.fixture
def realm(tmp_path: Path) -> Path:
    """A realm directory holding a small C project."""
    path = tmp_path / "realm"
    path.mkdir()
    (path / "main.c").write_text(
        '#include <stdio.h>\n\nint main(void) {\n    printf("hello world\\n");\n    return 0;\n}\n',
        encoding="utf-8",
    )
    (path / ".git").mkdir()
    (path / ".git" / "config").write_text("[core]\n", encoding="utf-8")
    return path


@pytest.fixture
def make_config(home: Path) -> Callable[..., Configuration]:
    def factory(cwd: Path, **manifest: Any) -> Configuration:
        defaults: dict[str, Any] = {
            "project_name": "demo",
            "workspace_name": "demo",
            "ignore": (".git",),
            "cmds": ("gcc main.c -o main", "./main"),
        }
        defaults.update(manifest)
        return Configuration(home_path=home, cwd=cwd, manifest=Manifest(**defaults))

    return factory
