"""Typed error model with stable error codes and process exit codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across the CLI and library surfaces."""

    CONFIG = "E_CONFIG"
    WALK = "E_WALK"
    STATE = "E_STATE"
    GATEWAY = "E_GATEWAY"
    PRECONDITION = "E_PRECONDITION"


EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.CONFIG: 2,
    ErrorCode.WALK: 3,
    ErrorCode.STATE: 4,
    ErrorCode.GATEWAY: 5,
    ErrorCode.PRECONDITION: 6,
}


class ConfigErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    INVALID = "invalid"


class WalkErrorKind(StrEnum):
    UNREADABLE = "unreadable"
    ROOT_MISSING = "root_missing"


class StateErrorKind(StrEnum):
    OUT_OF_ORDER = "out_of_order"


class GatewayErrorKind(StrEnum):
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"


class BifrostError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[ErrorCode(self.code)]

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigError(BifrostError):
    def __init__(
        self,
        message: str,
        *,
        kind: ConfigErrorKind,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)
        self.kind = kind


class WalkError(BifrostError):
    def __init__(
        self,
        message: str,
        *,
        kind: WalkErrorKind,
        path: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"path": path, **dict(context or {})}
        super().__init__(message, code=ErrorCode.WALK, hint=hint, context=merged)
        self.kind = kind
        self.path = path


class StateError(BifrostError):
    """Contract violation: a stage transition was attempted out of order."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.STATE, hint=hint, context=context)
        self.kind = StateErrorKind.OUT_OF_ORDER


class PreconditionError(BifrostError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PRECONDITION, hint=hint, context=context)


class GatewayError(BifrostError):
    def __init__(
        self,
        message: str,
        *,
        kind: GatewayErrorKind,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.GATEWAY, hint=hint, context=context)
        self.kind = kind


__all__ = [
    "EXIT_CODES",
    "BifrostError",
    "ConfigError",
    "ConfigErrorKind",
    "ErrorCode",
    "GatewayError",
    "GatewayErrorKind",
    "PreconditionError",
    "StateError",
    "StateErrorKind",
    "WalkError",
    "WalkErrorKind",
]
