"""In-process runtime gateway for testing and development.

Keeps loaded contexts in memory and answers ``execute`` with a pluggable
responder, so the operation pipeline can be exercised without a container
engine.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from bifrost.context import BuildContext
from bifrost.errors import GatewayError, GatewayErrorKind
from bifrost.models import ExecResult, LoadHandle

Responder = Callable[[BuildContext, Sequence[str]], ExecResult]


def echo_responder(context: BuildContext, commands: Sequence[str]) -> ExecResult:
    stdout = "".join(f"{command}\n" for command in commands)
    return ExecResult(exit_code=0, stdout=stdout, stderr="")


@dataclass(slots=True)
class InProcessGateway:
    """Gateway that stages contexts in a dict keyed by workspace name."""

    name: str = "inprocess"
    responder: Responder = echo_responder
    reachable: bool = True
    contexts: dict[str, BuildContext] = field(default_factory=dict)
    calls: Counter[str] = field(default_factory=Counter)

    def ensure_ready(self) -> None:
        self.calls["ensure_ready"] += 1
        if not self.reachable:
            raise GatewayError(
                "In-process gateway is marked unreachable.",
                kind=GatewayErrorKind.UNREACHABLE,
                context={"engine": self.name, "operation": "ensure_ready"},
            )

    def load(self, context: BuildContext) -> LoadHandle:
        self.calls["load"] += 1
        self.contexts[context.name] = context
        return LoadHandle(
            name=context.name,
            engine=self.name,
            location=f"memory://{context.name}",
            digest=context.digest,
            size=context.size,
        )

    def teardown(self, handle: LoadHandle) -> None:
        self.calls["teardown"] += 1
        self.contexts.pop(handle.name, None)

    def execute(self, handle: LoadHandle, commands: Sequence[str]) -> ExecResult:
        self.calls["execute"] += 1
        context = self.contexts.get(handle.name)
        if context is None:
            raise GatewayError(
                "Workspace is not staged in the in-process gateway.",
                kind=GatewayErrorKind.UNREACHABLE,
                context={"engine": self.name, "workspace": handle.name},
            )
        return self.responder(context, commands)
