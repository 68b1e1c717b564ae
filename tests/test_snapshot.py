import os
from pathlib import Path

import pytest

from bifrost.errors import WalkError, WalkErrorKind
from bifrost.snapshot import IgnoreRules, LocalFileSystem, normalize_pattern, walk


def test_walk_excludes_ignored_git_directory(realm: Path) -> None:
    snapshot = walk(realm, [".git"])

    assert snapshot.paths == ("main.c",)
    assert snapshot.root == realm
    assert snapshot.ignore_list == frozenset({".git"})


def test_walk_never_lists_pruned_directories(virtual_fs) -> None:
    fs = virtual_fs(
        {
            "README": 2,
            "src": {"a.c": 3, "b.c": 4},
            "target": {"debug": {"app": 5}, "release": {"app": 6}},
        }
    )

    snapshot = walk(fs.root, ["target"], filesystem=fs)

    assert snapshot.paths == ("README", "src/a.c", "src/b.c")
    assert fs.listed == [".", "src"]


def test_walk_output_matches_no_ignore_pattern(virtual_fs) -> None:
    fs = virtual_fs(
        {
            "main.c": 10,
            "build": {"main.o": 20, "notes.txt": 1},
            "docs": {"guide.md": 3, "drafts": {"old.md": 4}},
            ".gitignore": 1,
        }
    )
    patterns = ["docs/drafts", "*.o", ".gitignore"]
    rules = IgnoreRules.from_patterns(patterns)

    snapshot = walk(fs.root, patterns, filesystem=fs)

    assert snapshot.paths == ("build/notes.txt", "docs/guide.md", "main.c")
    assert not any(rules.matches(path) for path in snapshot.paths)


def test_walk_is_deterministic_for_unchanged_tree(realm: Path) -> None:
    (realm / "lib").mkdir()
    (realm / "lib" / "util.c").write_text("int x;\n", encoding="utf-8")
    (realm / "a.txt").write_text("a\n", encoding="utf-8")

    first = walk(realm, [".git"])
    second = walk(realm, [".git"])

    assert first == second
    assert first.paths == ("a.txt", "lib/util.c", "main.c")


def test_walk_orders_paths_by_full_relative_path(virtual_fs) -> None:
    fs = virtual_fs({"a": {"b": 1}, "a.txt": 1, "B": 1})

    snapshot = walk(fs.root, [], filesystem=fs)

    assert snapshot.paths == ("B", "a.txt", "a/b")


def test_prefix_directory_pattern_does_not_match_sibling_names(virtual_fs) -> None:
    fs = virtual_fs({"src": {"gen": {"out.c": 1}, "generated.c": 2}})

    snapshot = walk(fs.root, ["src/gen"], filesystem=fs)

    assert snapshot.paths == ("src/generated.c",)
    assert "src/gen" not in fs.listed


def test_patterns_are_normalised() -> None:
    assert normalize_pattern("./target/") == "target"
    assert normalize_pattern("build\\out") == "build/out"
    assert IgnoreRules.from_patterns(["./target/", "", "."]).exact == frozenset({"target"})


def test_walk_records_sizes(virtual_fs) -> None:
    fs = virtual_fs({"main.c": 120, "lib": {"util.c": 158}})

    snapshot = walk(fs.root, [], filesystem=fs)

    assert snapshot.sizes == {"lib/util.c": 158, "main.c": 120}
    assert snapshot.size == 278
    assert len(snapshot) == 2


def test_unreadable_subdirectory_is_recorded_and_skipped(virtual_fs) -> None:
    fs = virtual_fs(
        {"main.c": 1, "secret": {"key": 1}, "src": {"a.c": 1}},
        unreadable={"secret"},
    )

    snapshot = walk(fs.root, [], filesystem=fs)

    assert snapshot.paths == ("main.c", "src/a.c")
    assert len(snapshot.errors) == 1
    assert snapshot.errors[0].kind == WalkErrorKind.UNREADABLE
    assert snapshot.errors[0].path.endswith("secret")


def test_unreadable_root_is_fatal(virtual_fs) -> None:
    fs = virtual_fs({"main.c": 1}, unreadable={"."})

    with pytest.raises(WalkError) as excinfo:
        walk(fs.root, [], filesystem=fs)

    assert excinfo.value.kind == WalkErrorKind.UNREADABLE
    assert excinfo.value.code == "E_WALK"


def test_root_stat_failure_is_unreadable(virtual_fs, monkeypatch: pytest.MonkeyPatch) -> None:
    fs = virtual_fs({"main.c": 1})

    def denied(path: Path) -> None:
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(fs, "kind_of", denied)

    with pytest.raises(WalkError) as excinfo:
        walk(fs.root, [], filesystem=fs)

    assert excinfo.value.kind == WalkErrorKind.UNREADABLE
    assert excinfo.value.exit_code == 3


def test_unsizable_file_root_is_unreadable(virtual_fs, monkeypatch: pytest.MonkeyPatch) -> None:
    fs = virtual_fs({"main.c": 1})

    def denied(path: Path) -> int:
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(fs, "size_of", denied)

    with pytest.raises(WalkError) as excinfo:
        walk(fs.root / "main.c", [], prefix="main.c", filesystem=fs)

    assert excinfo.value.kind == WalkErrorKind.UNREADABLE


def test_missing_root_raises_root_missing(tmp_path: Path) -> None:
    with pytest.raises(WalkError) as excinfo:
        walk(tmp_path / "nope", [])

    assert excinfo.value.kind == WalkErrorKind.ROOT_MISSING
    assert excinfo.value.context["path"] == str(tmp_path / "nope")


def test_symlinks_are_recorded_but_not_followed(realm: Path) -> None:
    outside = realm.parent / "outside"
    outside.mkdir()
    (outside / "big.bin").write_bytes(b"x" * 64)
    os.symlink(outside, realm / "linked")
    os.symlink(realm, realm / "loop")

    snapshot = walk(realm, [".git"])

    assert snapshot.paths == ("linked", "loop", "main.c")
    assert snapshot.links == frozenset({"linked", "loop"})
    assert snapshot.sizes["linked"] == 0


def test_single_file_root_yields_one_path(realm: Path) -> None:
    snapshot = walk(realm / "main.c", [], prefix="main.c")

    assert snapshot.paths == ("main.c",)
    assert snapshot.root == realm
    assert snapshot.prefix == ""
    assert snapshot.archive_name("main.c") == "main.c"


def test_nested_root_matches_patterns_relative_to_realm(virtual_fs) -> None:
    fs = virtual_fs({"gen": {"x.c": 1}, "lib.c": 1})

    snapshot = walk(fs.root, ["src/gen"], prefix="src", filesystem=fs)

    assert snapshot.paths == ("lib.c",)
    assert snapshot.archive_name("lib.c") == "src/lib.c"


class _Entry:
    def __init__(self, name: str, *, vanished: bool = False) -> None:
        self.name = name
        self.path = f"/virtual/{name}"
        self.vanished = vanished

    def is_symlink(self) -> bool:
        return False

    def is_dir(self, follow_symlinks: bool = True) -> bool:
        return False

    def is_file(self, follow_symlinks: bool = True) -> bool:
        return True

    def stat(self, follow_symlinks: bool = True) -> os.stat_result:
        if self.vanished:
            raise FileNotFoundError(2, "No such file or directory", self.path)
        return os.stat_result((0o100644, 0, 0, 1, 0, 0, 7, 0, 0, 0))


class _Listing:
    def __init__(self, entries: list[_Entry]) -> None:
        self.entries = entries

    def __enter__(self) -> list[_Entry]:
        return self.entries

    def __exit__(self, *exc_info: object) -> None:
        return None


def test_entry_vanishing_mid_listing_keeps_its_siblings(monkeypatch: pytest.MonkeyPatch) -> None:
    listing = _Listing([_Entry("a.c"), _Entry("gone.o", vanished=True), _Entry("b.c")])
    monkeypatch.setattr("bifrost.snapshot.os.scandir", lambda _: listing)

    entries = LocalFileSystem().list_dir(Path("/virtual"))

    assert [(entry.name, entry.size) for entry in entries] == [("a.c", 7), ("b.c", 7)]
