"""Transfer operators between refinement levels."""

from .base import BaseTransfer
from .transfer import PrebuiltTransfer

__all__ = ["BaseTransfer", "PrebuiltTransfer"]
