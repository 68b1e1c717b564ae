"""The ``~/.bifrost`` support tree and realm initialization."""

from __future__ import annotations

import logging
import shutil
import textwrap
from dataclasses import dataclass
from pathlib import Path

from bifrost.config import Configuration, default_manifest_path, read_manifest, write_manifest
from bifrost.errors import PreconditionError
from bifrost.gateway.docker import DockerGateway
from bifrost.paths import BifrostPaths

logger = logging.getLogger(__name__)

DOCKERFILE_TEMPLATE = textwrap.dedent("""\
    FROM ubuntu:22.04

    # Update default packages
    RUN apt-get update

    # Get Ubuntu packages
    RUN apt-get install -y \\
        build-essential \\
        curl

    # Update new packages
    RUN apt-get update
""")


@dataclass(frozen=True, slots=True)
class SetupResult:
    dockerfile: Path
    created: bool
    image_built: bool


def setup(paths: BifrostPaths, gateway: DockerGateway | None = None) -> SetupResult:
    """Create the support tree; an existing Dockerfile is left untouched."""
    paths.staging_dir.mkdir(parents=True, exist_ok=True)
    paths.handles_dir.mkdir(parents=True, exist_ok=True)

    created = not paths.dockerfile.exists()
    if created:
        paths.dockerfile.write_text(DOCKERFILE_TEMPLATE, encoding="utf-8")
        logger.info("dockerfile written", extra={"dockerfile": str(paths.dockerfile)})

    image_built = False
    if gateway is not None:
        gateway.build_image()
        image_built = True
    return SetupResult(dockerfile=paths.dockerfile, created=created, image_built=image_built)


def teardown(paths: BifrostPaths) -> Path:
    if not paths.root.exists():
        raise PreconditionError(
            "Support tree does not exist.",
            hint="Run `bifrost setup` first.",
            context={"path": str(paths.root)},
        )
    shutil.rmtree(paths.root)
    return paths.root


def init_realm(config: Configuration) -> tuple[Path, bool]:
    """Write the realm's manifest, or confirm an existing one parses.

    Returns the manifest path and whether it was newly written.
    """
    path = config.manifest_path or default_manifest_path(config.cwd)
    if path.exists():
        read_manifest(path)
        return path, False
    write_manifest(config.manifest, path)
    return path, True
