"""The four workspace operations driven through an operable space."""

from .base import Operation
from .load import Load
from .run import Run
from .show import Show
from .unload import Unload

__all__ = ["Load", "Operation", "Run", "Show", "Unload"]
