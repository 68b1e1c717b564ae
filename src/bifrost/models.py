"""Core typed dataclasses shared by operations, gateways, and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class OperationKind(StrEnum):
    LOAD = "load"
    UNLOAD = "unload"
    SHOW = "show"
    RUN = "run"


class Stage(StrEnum):
    NEW = "new"
    PREPARED = "prepared"
    BUILT = "built"
    EXECUTED = "executed"


@dataclass(frozen=True, slots=True)
class LoadHandle:
    """Reference to a workspace that a gateway has accepted."""

    name: str
    engine: str
    location: str
    digest: str
    size: int
    loaded_at: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "engine": self.engine,
            "location": self.location,
            "digest": self.digest,
            "size": self.size,
            "loaded_at": self.loaded_at,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LoadHandle:
        return cls(
            name=str(payload["name"]),
            engine=str(payload["engine"]),
            location=str(payload["location"]),
            digest=str(payload["digest"]),
            size=int(payload["size"]),
            loaded_at=str(payload.get("loaded_at", "")),
        )


@dataclass(frozen=True, slots=True)
class CommandRequest:
    handle: LoadHandle
    commands: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True, slots=True)
class OperationInfo:
    """The information that results from executing one operation."""

    name: str
    kind: OperationKind
    bytes: int | None = None
    text: str | None = None
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    location: str | None = None


__all__ = [
    "CommandRequest",
    "ExecResult",
    "LoadHandle",
    "OperationInfo",
    "OperationKind",
    "Stage",
]
