"""Stage-typed spaces that drive one operation over one workspace.

Each stage class exposes only the transition to the next stage, so calling
``build`` on a ``NewSpace`` or ``execute`` on a ``PreparedSpace`` fails with
``AttributeError`` before anything runs. Later stages can only be created by
those transitions; constructing one directly, or driving a space that has
already been advanced, raises ``StateError``.
"""

from __future__ import annotations

from typing import Any, ClassVar

from bifrost.errors import StateError
from bifrost.models import OperationInfo, Stage
from bifrost.observability import StructuredLogger
from bifrost.ops.base import Operation
from bifrost.workspace import Workspace

_TRANSITION = object()


class _Space:
    __slots__ = ("workspace", "operation", "log", "_consumed")

    stage: ClassVar[Stage]

    def __init__(
        self,
        workspace: Workspace,
        operation: Operation,
        log: StructuredLogger | None,
    ) -> None:
        self.workspace = workspace
        self.operation = operation
        self.log = log
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _consume(self, transition: str) -> None:
        if self._consumed:
            raise StateError(
                f"{type(self).__name__} has already been advanced.",
                hint="Open a new space for every operation.",
                context={"stage": self.stage.value, "transition": transition},
            )
        self._consumed = True

    def _record(self, stage: Stage, message: str, **extra: Any) -> None:
        if self.log is None:
            return
        self.log.log(
            operation=self.operation.kind.value,
            kind=type(self.operation).__name__,
            stage=stage.value,
            workspace=self.workspace.name,
            message=message,
            extra=extra or None,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(workspace={self.workspace.name!r}, operation={self.operation.kind.value!r})"


def _check_token(space: _Space, token: object) -> None:
    if token is not _TRANSITION:
        raise StateError(
            f"{type(space).__name__} can only be reached through its preceding stage.",
            hint="Start from open_space() and call prepare(), build(), execute() in order.",
            context={"stage": space.stage.value},
        )


class NewSpace(_Space):
    __slots__ = ()

    stage = Stage.NEW

    def prepare(self) -> PreparedSpace:
        self._consume("prepare")
        prepared = self.operation.prepare(self.workspace)
        self._record(Stage.PREPARED, "prepared")
        return PreparedSpace(self.workspace, self.operation, self.log, prepared, _token=_TRANSITION)


class PreparedSpace(_Space):
    __slots__ = ("prepared",)

    stage = Stage.PREPARED

    def __init__(
        self,
        workspace: Workspace,
        operation: Operation,
        log: StructuredLogger | None,
        prepared: Any,
        *,
        _token: object = None,
    ) -> None:
        super().__init__(workspace, operation, log)
        _check_token(self, _token)
        self.prepared = prepared

    def build(self) -> BuiltSpace:
        self._consume("build")
        artifact = self.operation.build(self.workspace, self.prepared)
        self._record(Stage.BUILT, "built")
        return BuiltSpace(self.workspace, self.operation, self.log, artifact, _token=_TRANSITION)


class BuiltSpace(_Space):
    __slots__ = ("artifact",)

    stage = Stage.BUILT

    def __init__(
        self,
        workspace: Workspace,
        operation: Operation,
        log: StructuredLogger | None,
        artifact: Any,
        *,
        _token: object = None,
    ) -> None:
        super().__init__(workspace, operation, log)
        _check_token(self, _token)
        self.artifact = artifact

    def execute(self) -> ExecutedSpace:
        self._consume("execute")
        info = self.operation.execute(self.workspace, self.artifact)
        self._record(Stage.EXECUTED, "executed", bytes=info.bytes, exit_code=info.exit_code)
        return ExecutedSpace(self.workspace, self.operation, self.log, info, _token=_TRANSITION)


class ExecutedSpace(_Space):
    __slots__ = ("info",)

    stage = Stage.EXECUTED

    def __init__(
        self,
        workspace: Workspace,
        operation: Operation,
        log: StructuredLogger | None,
        info: OperationInfo,
        *,
        _token: object = None,
    ) -> None:
        super().__init__(workspace, operation, log)
        _check_token(self, _token)
        self.info = info
        self._consumed = True


def open_space(
    workspace: Workspace,
    operation: Operation,
    *,
    log: StructuredLogger | None = None,
) -> NewSpace:
    space = NewSpace(workspace, operation, log)
    space._record(Stage.NEW, "opened")
    return space


def drive(
    workspace: Workspace,
    operation: Operation,
    *,
    log: StructuredLogger | None = None,
) -> OperationInfo:
    """Run ``operation`` through every stage and return its result."""
    return open_space(workspace, operation, log=log).prepare().build().execute().info


__all__ = [
    "BuiltSpace",
    "ExecutedSpace",
    "NewSpace",
    "PreparedSpace",
    "drive",
    "open_space",
]
