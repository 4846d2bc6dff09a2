"""
mgtransfer: geometric multigrid dof transfer on locally refined meshes

Builds level enumerations of a vector Lagrange element on an adaptively
refined box, assembles the prolongation matrices between levels with
boundary constraints, moves fields into the level hierarchy, and checks
that all of this does not depend on how the dofs are numbered.
"""

# Version information
from ._version import __version__

from .exceptions import TransferError, ConfigurationError, StructuralMismatchError
from .core import Cell, Triangulation, FiniteElement, LagrangeElement, LevelVectors, reinit_vector
from .dofs import DoFHandler, distribute, renumber, renumber_all_levels, STRATEGIES
from .boundary_conditions import (
    ZeroFunction, extract_boundary_indices, extract_active_boundary_indices
)
from .operators import BaseTransfer, PrebuiltTransfer
from .validation import (
    ComparisonReport, Violation, compare_level_fields, run_invariance_check
)
from .config import StudyConfig
from .utils import Reporter, setup_logging
from .applications import CycleResult, RenumberingStudy

__all__ = [
    "__version__",
    "TransferError",
    "ConfigurationError",
    "StructuralMismatchError",
    "Cell",
    "Triangulation",
    "FiniteElement",
    "LagrangeElement",
    "LevelVectors",
    "reinit_vector",
    "DoFHandler",
    "distribute",
    "renumber",
    "renumber_all_levels",
    "STRATEGIES",
    "ZeroFunction",
    "extract_boundary_indices",
    "extract_active_boundary_indices",
    "BaseTransfer",
    "PrebuiltTransfer",
    "ComparisonReport",
    "Violation",
    "compare_level_fields",
    "run_invariance_check",
    "StudyConfig",
    "Reporter",
    "setup_logging",
    "CycleResult",
    "RenumberingStudy",
]
