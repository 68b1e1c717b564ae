"""Docker (or Podman) CLI gateway.

Workspaces are staged as plain directories under
``~/.bifrost/container/bifrost/<name>``. Running commands mounts that staging
root at ``/bifrost`` in a throwaway container and pipes a bash script to it.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tarfile
import tempfile
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

from bifrost.context import BuildContext
from bifrost.errors import ConfigError, ConfigErrorKind, GatewayError, GatewayErrorKind
from bifrost.gateway.base import compose_script
from bifrost.models import ExecResult, LoadHandle
from bifrost.paths import BifrostPaths

logger = logging.getLogger(__name__)

SUPPORTED_ENGINES = ("docker", "podman")
DEFAULT_IMAGE = "bifrost:0.1"
MOUNT_POINT = "/bifrost"


@dataclass(slots=True)
class DockerGateway:
    paths: BifrostPaths
    name: str = "docker"
    executable: str = "docker"
    image: str = DEFAULT_IMAGE
    ready_attempts: int = 3
    ready_timeout: float = 10.0
    backoff: float = 0.5
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def for_engine(cls, engine: str, paths: BifrostPaths) -> DockerGateway:
        if engine not in SUPPORTED_ENGINES:
            raise ConfigError(
                f"Container profile `{engine}` is not supported.",
                kind=ConfigErrorKind.INVALID,
                hint=f"Set [container].name to one of: {', '.join(SUPPORTED_ENGINES)}.",
                context={"engine": engine},
            )
        return cls(paths=paths, name=engine, executable=engine)

    def ensure_ready(self) -> None:
        self._ensure_executable("ensure_ready")
        command = [self.executable, "system", "info"]
        detail = ""
        for attempt in range(1, self.ready_attempts + 1):
            try:
                result = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    errors="replace",
                    timeout=self.ready_timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                detail = f"no answer within {self.ready_timeout}s"
            except OSError as exc:
                raise self._spawn_error("ensure_ready", command, exc) from exc
            else:
                if result.returncode == 0:
                    return
                detail = (result.stderr or "").strip()[:2000]

            logger.warning(
                "container engine not ready",
                extra={"engine": self.name, "attempt": attempt, "detail": detail},
            )
            if attempt < self.ready_attempts:
                self.sleep(self.backoff * 2 ** (attempt - 1))

        raise GatewayError(
            "Container engine did not become ready.",
            kind=GatewayErrorKind.TIMEOUT,
            hint=f"Start the {self.name} daemon and try again.",
            context={
                "engine": self.name,
                "operation": "ensure_ready",
                "attempts": str(self.ready_attempts),
                "detail": detail,
            },
        )

    def load(self, context: BuildContext) -> LoadHandle:
        staging = self.paths.staging_dir
        staging.mkdir(parents=True, exist_ok=True)
        target = self.paths.workspace_dir(context.name)

        temp_dir = Path(tempfile.mkdtemp(prefix=f".{context.name}-", dir=staging))
        try:
            with tarfile.open(fileobj=BytesIO(context.archive), mode="r") as archive:
                archive.extractall(temp_dir, filter="tar")
            if target.exists():
                shutil.rmtree(target)
            shutil.move(str(temp_dir), str(target))
        finally:
            if temp_dir.exists():
                shutil.rmtree(temp_dir, ignore_errors=True)

        logger.info(
            "workspace staged",
            extra={"engine": self.name, "workspace": context.name, "location": str(target)},
        )
        return LoadHandle(
            name=context.name,
            engine=self.name,
            location=str(target),
            digest=context.digest,
            size=context.size,
            loaded_at=datetime.now(UTC).isoformat(timespec="seconds"),
        )

    def teardown(self, handle: LoadHandle) -> None:
        location = self.paths.workspace_dir(handle.name)
        if not location.exists():
            logger.warning("staged workspace already gone", extra={"location": str(location)})
            return
        shutil.rmtree(location)

    def execute(self, handle: LoadHandle, commands: Sequence[str]) -> ExecResult:
        command = [
            self.executable,
            "run",
            "--rm",
            "-i",
            "--volume",
            f"{self.paths.staging_dir}:{MOUNT_POINT}",
            self.image,
            "bash",
        ]
        started = time.monotonic()
        try:
            result = subprocess.run(
                command,
                input=compose_script(handle.name, commands),
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise self._spawn_error("execute", command, exc) from exc
        return ExecResult(
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def build_image(self) -> None:
        self._ensure_executable("build_image")
        command = [self.executable, "build", "-t", self.image, str(self.paths.staging_dir)]
        try:
            result = subprocess.run(
                command, capture_output=True, text=True, errors="replace", check=False
            )
        except OSError as exc:
            raise self._spawn_error("build_image", command, exc) from exc
        if result.returncode != 0:
            raise GatewayError(
                "Container image build failed.",
                kind=GatewayErrorKind.NON_ZERO_EXIT,
                hint="Check the Dockerfile under ~/.bifrost/container/bifrost.",
                context={
                    "engine": self.name,
                    "operation": "build_image",
                    "returncode": str(result.returncode),
                    "stderr": result.stderr[:2000] if result.stderr else "",
                    "command": " ".join(command),
                },
            )

    def _ensure_executable(self, operation: str) -> None:
        if shutil.which(self.executable) is None:
            raise GatewayError(
                f"Container engine `{self.executable}` is not in PATH.",
                kind=GatewayErrorKind.UNREACHABLE,
                hint=f"Install {self.name} and ensure it is available before running bifrost.",
                context={"engine": self.name, "operation": operation},
            )

    def _spawn_error(self, operation: str, command: list[str], exc: OSError) -> GatewayError:
        return GatewayError(
            "Container engine could not be started.",
            kind=GatewayErrorKind.UNREACHABLE,
            context={
                "engine": self.name,
                "operation": operation,
                "detail": str(exc),
                "command": " ".join(command),
            },
        )
