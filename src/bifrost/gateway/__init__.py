"""Runtime gateways: the narrow seam between Bifrost and a container engine."""

from .base import RuntimeGateway
from .docker import DockerGateway
from .inprocess import InProcessGateway

__all__ = ["DockerGateway", "InProcessGateway", "RuntimeGateway"]
