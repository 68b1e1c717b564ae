"""Show: summarize a workspace without touching the container engine."""

from __future__ import annotations

from dataclasses import dataclass

from bifrost.handles import HandleStore
from bifrost.models import LoadHandle, OperationInfo, OperationKind
from bifrost.ops.base import require_populated
from bifrost.workspace import Workspace


@dataclass(slots=True)
class Show:
    handles: HandleStore
    verbose: bool = False
    kind: OperationKind = OperationKind.SHOW

    def prepare(self, workspace: Workspace) -> LoadHandle | None:
        require_populated(workspace, self.kind)
        return self.handles.get(workspace.name)

    def build(self, workspace: Workspace, prepared: LoadHandle | None) -> str:
        config = workspace.config
        manifest = config.manifest
        snapshots = workspace.contents or ()
        lines = [
            f"project: {manifest.project_name}",
            f"container: {manifest.container_name}",
            f"realm: {config.cwd}",
            f"ignore: {', '.join(sorted(config.ignore_list)) or '-'}",
            f"cmds: {' && '.join(config.commands) or '-'}",
            f"files: {workspace.file_count} ({workspace.size} bytes)",
        ]
        if prepared is None:
            lines.append("loaded: no")
        else:
            lines.append(f"loaded: yes ({prepared.location})")

        unreadable = [error.path for snapshot in snapshots for error in snapshot.errors]
        if unreadable:
            lines.append(f"unreadable: {', '.join(unreadable)}")

        if self.verbose:
            lines.append("contents:")
            lines.extend(
                f"  {snapshot.archive_name(path)}"
                for snapshot in snapshots
                for path in snapshot.paths
            )
        return "\n".join(lines)

    def execute(self, workspace: Workspace, artifact: str) -> OperationInfo:
        return OperationInfo(name=workspace.name, kind=self.kind, text=artifact)
