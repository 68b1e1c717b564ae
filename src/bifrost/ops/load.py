"""Load: stage a populated workspace in the container engine."""

from __future__ import annotations

from dataclasses import dataclass

from bifrost.context import BuildContext, build_context
from bifrost.errors import ConfigError, ConfigErrorKind, PreconditionError
from bifrost.gateway.base import RuntimeGateway
from bifrost.gateway.docker import SUPPORTED_ENGINES
from bifrost.handles import HandleStore
from bifrost.models import OperationInfo, OperationKind
from bifrost.ops.base import require_populated
from bifrost.paths import ensure_workspace_name
from bifrost.workspace import Workspace


@dataclass(slots=True)
class Load:
    gateway: RuntimeGateway
    handles: HandleStore
    kind: OperationKind = OperationKind.LOAD

    def prepare(self, workspace: Workspace) -> None:
        require_populated(workspace, self.kind)
        ensure_workspace_name(workspace.name)
        engine = workspace.config.manifest.container_name
        if engine not in SUPPORTED_ENGINES:
            raise ConfigError(
                f"Container profile `{engine}` is not supported.",
                kind=ConfigErrorKind.INVALID,
                hint=f"Set [container].name to one of: {', '.join(SUPPORTED_ENGINES)}.",
                context={"workspace": workspace.name},
            )
        if self.handles.get(workspace.name) is not None:
            raise PreconditionError(
                f"Workspace `{workspace.name}` is already loaded.",
                hint="Run `bifrost unload` before loading it again.",
                context={"workspace": workspace.name},
            )

    def build(self, workspace: Workspace, prepared: None) -> BuildContext:
        return build_context(workspace)

    def execute(self, workspace: Workspace, artifact: BuildContext) -> OperationInfo:
        handle = self.gateway.load(artifact)
        self.handles.save(handle)
        return OperationInfo(
            name=workspace.name,
            kind=self.kind,
            bytes=artifact.size,
            location=handle.location,
        )
