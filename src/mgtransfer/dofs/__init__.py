"""Dof enumeration and renumbering."""

from .handler import DoFHandler, distribute
from .renumbering import (
    STRATEGIES, renumber, renumber_all_levels, compute_renumbering,
    natural, component_wise, cuthill_mckee
)

__all__ = [
    "DoFHandler",
    "distribute",
    "STRATEGIES",
    "renumber",
    "renumber_all_levels",
    "compute_renumbering",
    "natural",
    "component_wise",
    "cuthill_mckee",
]
