"""Run: execute the manifest's commands against a loaded workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bifrost.config import PLACEHOLDER_COMMAND
from bifrost.errors import ConfigError, ConfigErrorKind
from bifrost.gateway.base import RuntimeGateway
from bifrost.handles import HandleStore
from bifrost.models import CommandRequest, LoadHandle, OperationInfo, OperationKind
from bifrost.ops.base import require_handle
from bifrost.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Run:
    gateway: RuntimeGateway
    handles: HandleStore
    kind: OperationKind = OperationKind.RUN

    def prepare(self, workspace: Workspace) -> LoadHandle:
        handle = require_handle(self.handles, workspace, self.kind)
        if not workspace.config.manifest.has_runnable_commands:
            raise ConfigError(
                "No commands to run.",
                kind=ConfigErrorKind.INVALID,
                hint=(
                    "Replace the placeholder "
                    f"`{PLACEHOLDER_COMMAND}` in [command].cmds or pass `bifrost run -c ...`."
                ),
                context={"workspace": workspace.name},
            )
        return handle

    def build(self, workspace: Workspace, prepared: LoadHandle) -> CommandRequest:
        return CommandRequest(handle=prepared, commands=workspace.config.commands)

    def execute(self, workspace: Workspace, artifact: CommandRequest) -> OperationInfo:
        self.gateway.ensure_ready()
        result = self.gateway.execute(artifact.handle, artifact.commands)
        logger.info(
            "commands finished",
            extra={
                "workspace": workspace.name,
                "exit_code": result.exit_code,
                "duration_ms": result.duration_ms,
            },
        )
        return OperationInfo(
            name=workspace.name,
            kind=self.kind,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
        )
