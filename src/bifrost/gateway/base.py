"""Protocol for container runtime gateways."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from typing import Protocol

from bifrost.context import BuildContext
from bifrost.models import ExecResult, LoadHandle


class RuntimeGateway(Protocol):
    name: str

    def ensure_ready(self) -> None:
        """Confirm the engine is reachable, or raise ``GatewayError``."""

    def load(self, context: BuildContext) -> LoadHandle:
        """Stage a build context and return a handle to it."""

    def teardown(self, handle: LoadHandle) -> None:
        """Release everything staged for ``handle``."""

    def execute(self, handle: LoadHandle, commands: Sequence[str]) -> ExecResult:
        """Run ``commands`` against a staged workspace and capture output."""


def compose_script(workspace: str, commands: Sequence[str]) -> str:
    """Chain ``commands`` so the first failure stops the rest."""
    return " && ".join([f"cd {shlex.quote(f'/bifrost/{workspace}')}", *commands]) + "\n"
