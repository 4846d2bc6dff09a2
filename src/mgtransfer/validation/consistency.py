"""
Renumbering consistency checks.

Two dof handlers on the same triangulation are run through boundary
extraction, transfer construction and ``copy_to_hierarchy``. The resulting
level fields are compared cell by cell through each handler's own
cell-to-dof map, so that different numberings of the same geometric dofs
compare equal.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

import numpy as np

from ..boundary_conditions.boundary_list import BoundarySpec, extract_boundary_indices
from ..core.level_object import LevelVectors
from ..dofs.handler import DoFHandler
from ..exceptions import StructuralMismatchError
from ..operators.transfer import PrebuiltTransfer
from ..utils.logging_utils import Reporter

logger = logging.getLogger(__name__)


@dataclass
class Violation:
    """Nonzero cell-wise difference at one level dof."""
    level: int
    index: int
    value: float


@dataclass
class LevelComparison:
    """Norms of both level fields and of their cell-wise difference."""
    level: int
    norm_a: float
    norm_b: float
    norm_difference: float


@dataclass
class ComparisonReport:
    """Outcome of comparing two level hierarchies."""
    levels: List[LevelComparison] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def max_difference(self) -> float:
        return max((abs(v.value) for v in self.violations), default=0.0)


@dataclass
class InvarianceResult:
    """Everything produced by one run of the invariance pipeline."""
    report: ComparisonReport
    levels_a: LevelVectors
    levels_b: LevelVectors
    differences: LevelVectors
    boundary_a: List[Set[int]]
    boundary_b: List[Set[int]]

    @property
    def passed(self) -> bool:
        return self.report.passed


def check_structure(dof_a: DoFHandler, dof_b: DoFHandler) -> None:
    """
    Make sure two handlers describe the same cells and element.

    Raises:
        StructuralMismatchError: if dimension, level count, cell layout,
            element or dof counts differ
    """
    tria_a, tria_b = dof_a.triangulation, dof_b.triangulation
    if tria_a.dim != tria_b.dim:
        raise StructuralMismatchError(f"Dimensions differ: {tria_a.dim} vs {tria_b.dim}")
    if dof_a.fe != dof_b.fe:
        raise StructuralMismatchError(f"Elements differ: {dof_a.fe} vs {dof_b.fe}")
    if dof_a.n_levels != dof_b.n_levels:
        raise StructuralMismatchError(f"Level counts differ: {dof_a.n_levels} vs {dof_b.n_levels}")
    if dof_a.n_dofs() != dof_b.n_dofs():
        raise StructuralMismatchError(f"Active dof counts differ: "
                                      f"{dof_a.n_dofs()} vs {dof_b.n_dofs()}")

    for level in range(dof_a.n_levels):
        cells_a, cells_b = tria_a.cells(level), tria_b.cells(level)
        if len(cells_a) != len(cells_b):
            raise StructuralMismatchError(
                f"Level {level}: cell counts differ: {len(cells_a)} vs {len(cells_b)}"
            )
        for cell_a, cell_b in zip(cells_a, cells_b):
            if cell_a.origin != cell_b.origin or cell_a.has_children != cell_b.has_children:
                raise StructuralMismatchError(
                    f"Level {level}: cell {cell_a.index} differs in position or refinement"
                )
        if dof_a.n_dofs(level) != dof_b.n_dofs(level):
            raise StructuralMismatchError(
                f"Level {level}: dof counts differ: {dof_a.n_dofs(level)} vs {dof_b.n_dofs(level)}"
            )


def cellwise_difference(
    dof_a: DoFHandler,
    dof_b: DoFHandler,
    u: np.ndarray,
    v: np.ndarray,
    level: int
) -> np.ndarray:
    """
    Difference of two level vectors, matched through the cells of the level.

    ``u`` is read through ``dof_a``'s cell-to-dof map and ``v`` through
    ``dof_b``'s; the result is indexed in ``dof_a``'s numbering.
    """
    indices_a = dof_a.level_cell_dofs(level).reshape(-1)
    indices_b = dof_b.level_cell_dofs(level).reshape(-1)
    if len(u) != dof_a.n_dofs(level) or len(v) != dof_b.n_dofs(level):
        raise ValueError(f"Level {level}: vectors of size {len(u)} and {len(v)} do not match "
                         f"the level enumerations")
    difference = np.zeros_like(u, dtype=np.float64)
    difference[indices_a] = u[indices_a] - v[indices_b]
    return difference


def compare_level_fields(
    dof_a: DoFHandler,
    dof_b: DoFHandler,
    u: LevelVectors,
    v: LevelVectors,
    reporter: Optional[Reporter] = None
) -> ComparisonReport:
    """
    Compare two level hierarchies cell by cell on every level.

    Every nonzero difference is collected and reported with its level and
    index; a violation on one level does not stop the comparison of the
    others.
    """
    check_structure(dof_a, dof_b)
    report = ComparisonReport()
    for level in u.levels():
        difference = cellwise_difference(dof_a, dof_b, u[level], v[level], level)
        comparison = LevelComparison(
            level=level,
            norm_a=float(np.linalg.norm(u[level])),
            norm_b=float(np.linalg.norm(v[level])),
            norm_difference=float(np.linalg.norm(difference)),
        )
        report.levels.append(comparison)
        if reporter is not None:
            reporter.info(f"{level} {comparison.norm_a:.4g}\t{comparison.norm_b:.4g}\t"
                          f"{comparison.norm_difference:.4g}")

        for index in np.flatnonzero(difference):
            violation = Violation(level, int(index), float(difference[index]))
            report.violations.append(violation)
            if reporter is not None:
                reporter.warning(f"{violation.index} {violation.value:.4g}")

    if report.violations:
        logger.warning(f"Cell-wise comparison found {len(report.violations)} nonzero differences")
    else:
        logger.debug(f"Cell-wise comparison passed on {len(report.levels)} levels")
    return report


def initialize_by_component(dof_handler: DoFHandler) -> np.ndarray:
    """Active-space vector with value ``component + 1`` on every dof."""
    values = np.zeros(dof_handler.n_dofs())
    cell_dofs = dof_handler.active_cell_dofs()
    local_values = (dof_handler.fe.component_map + 1).astype(np.float64)
    values[cell_dofs] = np.broadcast_to(local_values, cell_dofs.shape)
    return values


def run_invariance_check(
    dof_a: DoFHandler,
    dof_b: DoFHandler,
    boundary_spec: BoundarySpec,
    reporter: Optional[Reporter] = None,
    initial_field: Callable[[DoFHandler], np.ndarray] = initialize_by_component,
    component_mask: Optional[List[bool]] = None
) -> InvarianceResult:
    """
    Run the transfer pipeline on two handlers and compare the results.

    Args:
        dof_a: Reference handler
        dof_b: Handler with a different numbering of the same mesh
        boundary_spec: Constrained boundary ids
        reporter: Sink for the per-level report
        initial_field: Builds the active-space field for a handler
        component_mask: Components to constrain on the boundary

    Returns:
        The comparison report together with the computed level fields
    """
    check_structure(dof_a, dof_b)

    boundary_a = extract_boundary_indices(dof_a, boundary_spec, component_mask)
    boundary_b = extract_boundary_indices(dof_b, boundary_spec, component_mask)

    transfer_a = PrebuiltTransfer()
    transfer_a.build_matrices(dof_a, boundary_a)
    transfer_b = PrebuiltTransfer()
    transfer_b.build_matrices(dof_b, boundary_b)

    levels_a = transfer_a.copy_to_hierarchy(dof_a, initial_field(dof_a))
    levels_b = transfer_b.copy_to_hierarchy(dof_b, initial_field(dof_b))

    report = compare_level_fields(dof_a, dof_b, levels_a, levels_b, reporter)

    differences = LevelVectors(levels_a.min_level, levels_a.max_level)
    for level in differences.levels():
        differences[level] = cellwise_difference(dof_a, dof_b, levels_a[level], levels_b[level], level)

    return InvarianceResult(report, levels_a, levels_b, differences, boundary_a, boundary_b)
