"""Persisted load handles, one JSON record per loaded workspace."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from bifrost.errors import ConfigError, ConfigErrorKind
from bifrost.models import LoadHandle
from bifrost.paths import BifrostPaths

logger = logging.getLogger(__name__)


class HandleStore:
    def __init__(self, paths: BifrostPaths) -> None:
        self.paths = paths

    def get(self, name: str) -> LoadHandle | None:
        path = self.paths.handle_file(name)
        if not path.exists():
            return None
        return LoadHandle.from_payload(self._read(path))

    def save(self, handle: LoadHandle) -> Path:
        path = self.paths.handle_file(handle.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(handle.to_payload(), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        logger.debug("handle saved", extra={"workspace": handle.name, "handle_path": str(path)})
        return path

    def remove(self, name: str) -> bool:
        path = self.paths.handle_file(name)
        if not path.exists():
            return False
        path.unlink()
        return True

    def _read(self, path: Path) -> dict[str, object]:
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(
                "Load handle record is not valid JSON.",
                kind=ConfigErrorKind.MALFORMED,
                hint="Remove the handle file and load the workspace again.",
                context={"path": str(path)},
            ) from exc
        if not isinstance(parsed, dict) or not {"name", "engine", "location", "digest", "size"} <= parsed.keys():
            raise ConfigError(
                "Load handle record has invalid structure.",
                kind=ConfigErrorKind.MALFORMED,
                hint="Remove the handle file and load the workspace again.",
                context={"path": str(path)},
            )
        return parsed


__all__ = ["HandleStore"]
