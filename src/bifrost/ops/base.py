"""Protocol for operations and the preconditions they share."""

from __future__ import annotations

from typing import Any, Protocol

from bifrost.errors import PreconditionError
from bifrost.handles import HandleStore
from bifrost.models import LoadHandle, OperationInfo, OperationKind
from bifrost.workspace import Workspace


class Operation(Protocol):
    """One lifecycle operation, split into three hooks.

    ``prepare`` checks preconditions and returns whatever ``build`` needs.
    ``build`` turns that into the operation's artifact. ``execute`` is the only
    hook allowed to touch the runtime gateway.
    """

    kind: OperationKind

    def prepare(self, workspace: Workspace) -> Any:
        """Validate readiness; raise on any unmet precondition."""

    def build(self, workspace: Workspace, prepared: Any) -> Any:
        """Produce the artifact that ``execute`` consumes."""

    def execute(self, workspace: Workspace, artifact: Any) -> OperationInfo:
        """Carry out the operation."""


def require_populated(workspace: Workspace, operation: OperationKind) -> None:
    if not workspace.is_populated:
        raise PreconditionError(
            "Workspace has not been populated.",
            hint="Call Workspace.populate() before preparing this operation.",
            context={"workspace": workspace.name, "operation": operation.value},
        )


def require_handle(handles: HandleStore, workspace: Workspace, operation: OperationKind) -> LoadHandle:
    handle = handles.get(workspace.name)
    if handle is None:
        raise PreconditionError(
            f"Workspace `{workspace.name}` is not loaded.",
            hint="are you sure you have called `bifrost load`?",
            context={"workspace": workspace.name, "operation": operation.value},
        )
    return handle
