"""Unload: remove a previously loaded workspace."""

from __future__ import annotations

from dataclasses import dataclass

from bifrost.errors import PreconditionError
from bifrost.gateway.base import RuntimeGateway
from bifrost.handles import HandleStore
from bifrost.models import LoadHandle, OperationInfo, OperationKind
from bifrost.ops.base import require_handle
from bifrost.workspace import Workspace


@dataclass(slots=True)
class Unload:
    gateway: RuntimeGateway
    handles: HandleStore
    kind: OperationKind = OperationKind.UNLOAD

    def prepare(self, workspace: Workspace) -> LoadHandle:
        return require_handle(self.handles, workspace, self.kind)

    def build(self, workspace: Workspace, prepared: LoadHandle) -> LoadHandle:
        if prepared.name != workspace.name:
            raise PreconditionError(
                "Load handle does not belong to this workspace.",
                context={"workspace": workspace.name, "handle": prepared.name},
            )
        return prepared

    def execute(self, workspace: Workspace, artifact: LoadHandle) -> OperationInfo:
        self.gateway.teardown(artifact)
        self.handles.remove(artifact.name)
        return OperationInfo(name=workspace.name, kind=self.kind, location=artifact.location)
