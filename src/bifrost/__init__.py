"""Public package entrypoint for Bifrost."""

from .config import Configuration, Manifest, resolve
from .context import BuildContext, build_context
from .errors import (
    BifrostError,
    ConfigError,
    GatewayError,
    PreconditionError,
    StateError,
    WalkError,
)
from .gateway import DockerGateway, InProcessGateway, RuntimeGateway
from .handles import HandleStore
from .models import CommandRequest, ExecResult, LoadHandle, OperationInfo, OperationKind, Stage
from .ops import Load, Run, Show, Unload
from .paths import BifrostPaths
from .snapshot import DirectorySnapshot, walk
from .space import BuiltSpace, ExecutedSpace, NewSpace, PreparedSpace, drive, open_space
from .workspace import Workspace

__all__ = [
    "BifrostError",
    "BifrostPaths",
    "BuildContext",
    "BuiltSpace",
    "CommandRequest",
    "ConfigError",
    "Configuration",
    "DirectorySnapshot",
    "DockerGateway",
    "ExecResult",
    "ExecutedSpace",
    "GatewayError",
    "HandleStore",
    "InProcessGateway",
    "Load",
    "LoadHandle",
    "Manifest",
    "NewSpace",
    "OperationInfo",
    "OperationKind",
    "PreconditionError",
    "PreparedSpace",
    "Run",
    "RuntimeGateway",
    "Show",
    "Stage",
    "StateError",
    "Unload",
    "WalkError",
    "Workspace",
    "build_context",
    "drive",
    "open_space",
    "resolve",
    "walk",
]
