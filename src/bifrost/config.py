"""Manifest parsing, serialization, and override resolution.

A realm is described by a ``Bifrost.toml`` manifest in its root directory.
``resolve()`` reads that manifest, merges caller-supplied overrides on top of
it field by field, and returns an immutable ``Configuration`` that carries the
environment context (home directory, realm directory) alongside the manifest.
"""

from __future__ import annotations

import json
import logging
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from bifrost.errors import ConfigError, ConfigErrorKind

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Bifrost.toml"

PLACEHOLDER_PROJECT = "project name"
PLACEHOLDER_WORKSPACE = "name of workspace"
PLACEHOLDER_COMMAND = "command string(s)"
DEFAULT_CONTAINER = "docker"
DEFAULT_IGNORE = ("target", ".git", ".gitignore")

# Override key -> Manifest attribute.
OVERRIDE_FIELDS = {
    "project": "project_name",
    "container": "container_name",
    "workspace": "workspace_name",
    "ignore": "ignore",
    "cmds": "cmds",
    "contents": "contents",
}
_LIST_FIELDS = frozenset({"ignore", "cmds", "contents"})


@dataclass(frozen=True, slots=True)
class Manifest:
    project_name: str = PLACEHOLDER_PROJECT
    container_name: str = DEFAULT_CONTAINER
    workspace_name: str = PLACEHOLDER_WORKSPACE
    ignore: tuple[str, ...] = DEFAULT_IGNORE
    cmds: tuple[str, ...] = (PLACEHOLDER_COMMAND,)
    contents: tuple[str, ...] = ()

    @classmethod
    def default(cls) -> Manifest:
        return cls()

    @property
    def has_runnable_commands(self) -> bool:
        commands = [cmd for cmd in self.cmds if cmd.strip()]
        return bool(commands) and PLACEHOLDER_COMMAND not in commands

    def merged_with(self, overrides: Mapping[str, object]) -> Manifest:
        """Return a manifest where every supplied override replaces its field.

        List-valued overrides replace the persisted list wholesale. ``None``
        means the override was not supplied.
        """
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in OVERRIDE_FIELDS:
                allowed = ", ".join(sorted(OVERRIDE_FIELDS))
                raise ConfigError(
                    f"Unknown manifest override '{key}'.",
                    kind=ConfigErrorKind.INVALID,
                    hint=f"Allowed override keys: {allowed}.",
                )
            if value is None:
                continue
            if key in _LIST_FIELDS:
                if isinstance(value, str) or not isinstance(value, (list, tuple)):
                    raise ConfigError(
                        f"Override '{key}' must be a list of strings.",
                        kind=ConfigErrorKind.INVALID,
                        context={"override": key},
                    )
                changes[OVERRIDE_FIELDS[key]] = tuple(str(item) for item in value)
            else:
                changes[OVERRIDE_FIELDS[key]] = str(value)
        if not changes:
            return self
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class Configuration:
    """Runtime union of a manifest with the invocation's environment paths."""

    home_path: Path
    cwd: Path
    manifest: Manifest = field(default_factory=Manifest)
    manifest_path: Path | None = None

    @property
    def workspace_name(self) -> str:
        name = self.manifest.workspace_name.strip()
        if not name or name == PLACEHOLDER_WORKSPACE:
            return self.cwd.name
        return name

    @property
    def ignore_list(self) -> frozenset[str]:
        return frozenset(self.manifest.ignore)

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(cmd for cmd in self.manifest.cmds if cmd.strip())


def default_manifest_path(cwd: Path) -> Path:
    return cwd / MANIFEST_NAME


def resolve(
    manifest_path: str | Path | None = None,
    overrides: Mapping[str, object] | None = None,
    *,
    initializing: bool = False,
    cwd: str | Path | None = None,
    home: str | Path | None = None,
) -> Configuration:
    """Resolve the persisted manifest and overrides into a ``Configuration``."""
    realm = Path(cwd) if cwd is not None else Path.cwd()
    home_path = Path(home) if home is not None else Path.home()
    _ensure_realm_allowed(realm, home_path)

    path = Path(manifest_path) if manifest_path is not None else default_manifest_path(realm)
    if path.exists():
        manifest = read_manifest(path)
    elif initializing:
        logger.debug("synthesizing default manifest", extra={"path": str(path)})
        manifest = Manifest.default()
    else:
        raise ConfigError(
            f"Could not find `{path.name}` in the realm directory.",
            kind=ConfigErrorKind.NOT_FOUND,
            hint="A Bifrost realm must be initialized before use; try `bifrost init`.",
            context={"path": str(path)},
        )

    merged = manifest.merged_with(overrides or {})
    return Configuration(home_path=home_path, cwd=realm, manifest=merged, manifest_path=path)


def read_manifest(path: str | Path) -> Manifest:
    manifest_path = Path(path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            "Could not read the manifest file.",
            kind=ConfigErrorKind.MALFORMED,
            context={"path": str(manifest_path), "detail": str(exc)},
        ) from exc
    return parse_manifest(text, source=str(manifest_path))


def parse_manifest(text: str, *, source: str = MANIFEST_NAME) -> Manifest:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            "Manifest is not valid TOML.",
            kind=ConfigErrorKind.MALFORMED,
            hint="Fix the syntax error or re-create the manifest with `bifrost init`.",
            context={"path": source, "detail": str(exc)},
        ) from exc

    defaults = Manifest.default()
    return Manifest(
        project_name=_string(data, "project", "name", defaults.project_name, source),
        container_name=_string(data, "container", "name", defaults.container_name, source),
        workspace_name=_string(data, "workspace", "name", defaults.workspace_name, source),
        ignore=_string_list(data, "workspace", "ignore", (), source),
        cmds=_string_list(data, "command", "cmds", (), source),
        contents=_string_list(data, "workspace", "contents", (), source),
    )


def serialize_manifest(manifest: Manifest) -> str:
    lines = [
        "[project]",
        f"name = {_quote(manifest.project_name)}",
        "",
        "[container]",
        f"name = {_quote(manifest.container_name)}",
        "",
        "[workspace]",
        f"name = {_quote(manifest.workspace_name)}",
        f"ignore = {_array(manifest.ignore)}",
    ]
    if manifest.contents:
        lines.append(f"contents = {_array(manifest.contents)}")
    lines.extend(
        [
            "",
            "[command]",
            f"cmds = {_array(manifest.cmds)}",
        ]
    )
    return "\n".join(lines) + "\n"


def write_manifest(manifest: Manifest, path: str | Path) -> Path:
    manifest_path = Path(path)
    manifest_path.write_text(serialize_manifest(manifest), encoding="utf-8")
    return manifest_path


def _ensure_realm_allowed(cwd: Path, home: Path) -> None:
    forbidden = {
        home,
        Path("/"),
        home / ".bifrost",
        home / ".bifrost" / "container",
    }
    if cwd in forbidden:
        raise ConfigError(
            "Cannot configure this directory as a Bifrost realm.",
            kind=ConfigErrorKind.INVALID,
            hint="Run bifrost from a project directory, not the home, root, or support directory.",
            context={"path": str(cwd)},
        )


def _section(data: dict[str, Any], section: str, source: str) -> dict[str, Any]:
    value = data.get(section, {})
    if not isinstance(value, dict):
        raise ConfigError(
            f"Manifest section [{section}] must be a table.",
            kind=ConfigErrorKind.MALFORMED,
            context={"path": source, "section": section},
        )
    return value


def _string(data: dict[str, Any], section: str, key: str, default: str, source: str) -> str:
    value = _section(data, section, source).get(key, default)
    if not isinstance(value, str):
        raise ConfigError(
            f"Manifest field {section}.{key} must be a string.",
            kind=ConfigErrorKind.MALFORMED,
            context={"path": source, "field": f"{section}.{key}"},
        )
    return value


def _string_list(
    data: dict[str, Any],
    section: str,
    key: str,
    default: tuple[str, ...],
    source: str,
) -> tuple[str, ...]:
    value = _section(data, section, source).get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(
            f"Manifest field {section}.{key} must be a list of strings.",
            kind=ConfigErrorKind.MALFORMED,
            context={"path": source, "field": f"{section}.{key}"},
        )
    return tuple(value)


def _quote(value: str) -> str:
    # JSON string escapes are a subset of TOML basic-string escapes; JSON
    # leaves DEL raw, which TOML forbids.
    return json.dumps(value, ensure_ascii=False).replace("\x7f", "\\u007f")


def _array(values: tuple[str, ...]) -> str:
    return "[" + ", ".join(_quote(value) for value in values) + "]"


__all__ = [
    "DEFAULT_IGNORE",
    "MANIFEST_NAME",
    "PLACEHOLDER_COMMAND",
    "Configuration",
    "Manifest",
    "default_manifest_path",
    "parse_manifest",
    "read_manifest",
    "resolve",
    "serialize_manifest",
    "write_manifest",
]
