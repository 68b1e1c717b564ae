"""``bifrost`` command line front end."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TextIO

from bifrost import support
from bifrost.config import Configuration, resolve
from bifrost.errors import BifrostError, PreconditionError
from bifrost.gateway.base import RuntimeGateway
from bifrost.gateway.docker import SUPPORTED_ENGINES, DockerGateway
from bifrost.handles import HandleStore
from bifrost.observability import StructuredLogger, configure_logging
from bifrost.ops import Load, Run, Show, Unload
from bifrost.paths import BifrostPaths
from bifrost.space import drive
from bifrost.workspace import Workspace

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bifrost",
        description="Stage a local realm into a container and run commands there as if local.",
    )
    parser.add_argument("--manifest", help="Path to Bifrost.toml. Defaults to ./Bifrost.toml.")
    parser.add_argument("--log-level", help="Logging level. Falls back to LOG_LEVEL, then WARNING.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Initialize a Bifrost realm in the current directory.")
    init.add_argument("-p", "--project", help="Project name.")
    init.add_argument("-t", "--container", help="Container profile (docker or podman).")
    init.add_argument("-w", "--workspace", help="Workspace name.")
    init.add_argument("-i", "--ignore", nargs="+", help="Paths to leave out of the workspace.")
    init.add_argument("-c", "--cmds", nargs="+", help="Commands that `bifrost run` executes.")

    setup = subparsers.add_parser("setup", help="Create the ~/.bifrost support tree.")
    setup.add_argument("--no-build", action="store_true", help="Skip building the container image.")
    setup.add_argument(
        "--engine",
        choices=SUPPORTED_ENGINES,
        default="docker",
        help="Container engine used to build the image.",
    )

    subparsers.add_parser("teardown", help="Remove the ~/.bifrost support tree.")

    load = subparsers.add_parser("load", help="Load the realm into the container staging area.")
    load.add_argument("contents", nargs="*", help="Entries of the realm to load. Defaults to all.")
    load.add_argument("-i", "--ignore", nargs="+", help="Paths to leave out for this load.")

    show = subparsers.add_parser("show", help="Summarize the workspace.")
    show.add_argument("-a", "--all", action="store_true", dest="verbose", help="List every path.")

    run = subparsers.add_parser("run", help="Run commands inside the container.")
    run.add_argument("-c", "--cmds", nargs="+", help="Commands to run instead of the manifest's.")

    subparsers.add_parser("unload", help="Remove the loaded workspace from the staging area.")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    gateway: RuntimeGateway | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    environ = os.environ if env is None else env
    out = stdout if stdout is not None else sys.stdout
    err = stderr if stderr is not None else sys.stderr

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or environ.get("LOG_LEVEL") or "WARNING")

    home = Path(environ["BIFROST_HOME"]) if environ.get("BIFROST_HOME") else Path.home()
    paths = BifrostPaths(home=home)
    try:
        return _dispatch(args, paths, gateway, out, err)
    except BifrostError as exc:
        logger.debug("command failed", extra={"command": args.command, "error": exc.to_dict()})
        print(f"bifrost: error: {exc}", file=err)
        return exc.exit_code


def _dispatch(
    args: argparse.Namespace,
    paths: BifrostPaths,
    gateway: RuntimeGateway | None,
    out: TextIO,
    err: TextIO,
) -> int:
    if args.command == "init":
        return _init(args, paths, out)
    if args.command == "setup":
        build_gateway = None if args.no_build else DockerGateway.for_engine(args.engine, paths)
        result = support.setup(paths, build_gateway)
        state = "created" if result.created else "kept existing"
        print(f"bifrost: support tree ready in {paths.root} ({state} Dockerfile)", file=out)
        return 0
    if args.command == "teardown":
        removed = support.teardown(paths)
        print(f"bifrost: removed support tree {removed}", file=out)
        return 0

    overrides: dict[str, object] = {}
    if args.command == "load":
        overrides = {"contents": args.contents or None, "ignore": args.ignore}
    elif args.command == "run":
        overrides = {"cmds": args.cmds}
    config = resolve(args.manifest, overrides, home=paths.home)
    workspace = Workspace(config)
    handles = HandleStore(paths)
    log = StructuredLogger()

    if args.command == "show":
        workspace.populate()
        info = drive(workspace, Show(handles, verbose=args.verbose), log=log)
        print(f"bifrost-realm `{info.name}`:\n{info.text}", file=out)
        return 0

    engine = gateway if gateway is not None else _engine_for(config, paths)
    if args.command == "load":
        workspace.populate()
        info = drive(workspace, Load(engine, handles), log=log)
        print(f"bifrost: loaded {info.bytes} bytes from `{info.name}`", file=out)
        return 0
    if args.command == "run":
        info = drive(workspace, Run(engine, handles), log=log)
        print(f"stdout:\n{info.stdout}", file=out)
        print(f"stderr:\n{info.stderr}", file=out)
        if info.exit_code:
            print(f"bifrost: commands exited with status {info.exit_code}", file=err)
        return 0
    if args.command == "unload":
        info = drive(workspace, Unload(engine, handles), log=log)
        print(f"bifrost: successfully unloaded workspace realm `{info.name}`", file=out)
        return 0
    raise AssertionError(f"unhandled command {args.command!r}")


def _init(args: argparse.Namespace, paths: BifrostPaths, out: TextIO) -> int:
    overrides = {
        "project": args.project,
        "container": args.container,
        "workspace": args.workspace,
        "ignore": args.ignore,
        "cmds": args.cmds,
    }
    config = resolve(args.manifest, overrides, initializing=True, home=paths.home)
    supplied = [key for key, value in overrides.items() if value is not None]
    if supplied and config.manifest_path is not None and config.manifest_path.exists():
        raise PreconditionError(
            "`bifrost init` cannot change an existing Bifrost realm.",
            hint="Edit Bifrost.toml directly.",
            context={"path": str(config.manifest_path), "options": ", ".join(supplied)},
        )
    _, created = support.init_realm(config)
    if created:
        print(f"Initialized default Bifrost realm in {config.cwd}", file=out)
    else:
        print(f"Bifrost realm already initialized in {config.cwd}", file=out)
    return 0


def _engine_for(config: Configuration, paths: BifrostPaths) -> RuntimeGateway:
    return DockerGateway.for_engine(config.manifest.container_name, paths)


if __name__ == "__main__":
    raise SystemExit(main())
