"""Extraction of boundary-constrained dofs on every level."""

import logging
from typing import List, Mapping, Optional, Sequence, Set

import numpy as np

from ..core.triangulation import INTERNAL_FACE_BOUNDARY_ID
from ..dofs.handler import DoFHandler
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ZeroFunction:
    """Homogeneous boundary values, u = 0 for every component."""

    def __init__(self, n_components: int = 1):
        if n_components < 1:
            raise ConfigurationError(f"Need at least one component, got {n_components}")
        self.n_components = n_components

    def value(self, point: np.ndarray, component: int = 0) -> float:
        return 0.0

    def vector_value(self, point: np.ndarray) -> np.ndarray:
        return np.zeros(self.n_components)

    def __repr__(self) -> str:
        return f"ZeroFunction(n_components={self.n_components})"


# Maps boundary ids to their boundary value function
BoundarySpec = Mapping[int, ZeroFunction]


def validate_boundary_spec(boundary_spec: BoundarySpec, n_components: int) -> None:
    """Reject boundary specifications that cannot be applied to the element."""
    for boundary_id, function in boundary_spec.items():
        if not isinstance(boundary_id, (int, np.integer)) or isinstance(boundary_id, bool):
            raise ConfigurationError(f"Boundary id must be an integer, got {boundary_id!r}")
        if boundary_id < 0 or boundary_id >= INTERNAL_FACE_BOUNDARY_ID:
            raise ConfigurationError(f"Boundary id {boundary_id} is reserved or out of range")
        if not isinstance(function, ZeroFunction):
            raise ConfigurationError(f"Boundary id {boundary_id}: only homogeneous "
                                     f"(zero) constraints are supported")
        if function.n_components != n_components:
            raise ConfigurationError(
                f"Boundary id {boundary_id}: function has {function.n_components} components, "
                f"element has {n_components}"
            )


def _component_mask(component_mask: Optional[Sequence[bool]], n_components: int) -> np.ndarray:
    if component_mask is None:
        return np.ones(n_components, dtype=bool)
    mask = np.asarray(component_mask, dtype=bool)
    if mask.shape != (n_components,):
        raise ConfigurationError(f"Component mask has {mask.size} entries, "
                                 f"element has {n_components} components")
    return mask


def _constrained_local_dofs(dof_handler: DoFHandler, mask: np.ndarray) -> List[np.ndarray]:
    """Local dofs of every face that the component mask selects."""
    fe = dof_handler.fe
    selected = mask[fe.component_map]
    return [
        face_dofs[selected[face_dofs]]
        for face_dofs in (fe.face_dofs(f) for f in range(2 * fe.dim))
    ]


def extract_boundary_indices(
    dof_handler: DoFHandler,
    boundary_spec: BoundarySpec,
    component_mask: Optional[Sequence[bool]] = None
) -> List[Set[int]]:
    """
    Level dofs on boundary faces whose id appears in ``boundary_spec``.

    Args:
        dof_handler: Handler with distributed dofs
        boundary_spec: Constrained boundary ids and their (zero) values
        component_mask: Components to constrain; all by default

    Returns:
        One set of level dof indices per level
    """
    fe = dof_handler.fe
    if fe is None:
        raise RuntimeError("distribute_dofs() has not been called")
    validate_boundary_spec(boundary_spec, fe.n_components)
    mask = _component_mask(component_mask, fe.n_components)
    face_dofs = _constrained_local_dofs(dof_handler, mask)
    tria = dof_handler.triangulation

    boundary_indices = []
    for level in range(dof_handler.n_levels):
        cell_dofs = dof_handler.level_cell_dofs(level)
        constrained: Set[int] = set()
        for cell in tria.cells(level):
            for face in range(tria.faces_per_cell):
                if tria.boundary_id(cell, face) in boundary_spec:
                    constrained.update(cell_dofs[cell.index][face_dofs[face]].tolist())
        boundary_indices.append(constrained)
        logger.debug(f"Level {level}: {len(constrained)} of "
                     f"{dof_handler.n_dofs(level)} dofs constrained")
    return boundary_indices


def extract_active_boundary_indices(
    dof_handler: DoFHandler,
    boundary_spec: BoundarySpec,
    component_mask: Optional[Sequence[bool]] = None
) -> Set[int]:
    """Active dofs on boundary faces of active cells whose id appears in ``boundary_spec``."""
    fe = dof_handler.fe
    if fe is None:
        raise RuntimeError("distribute_dofs() has not been called")
    validate_boundary_spec(boundary_spec, fe.n_components)
    mask = _component_mask(component_mask, fe.n_components)
    face_dofs = _constrained_local_dofs(dof_handler, mask)
    tria = dof_handler.triangulation

    constrained: Set[int] = set()
    cell_dofs = dof_handler.active_cell_dofs()
    for row, cell in enumerate(dof_handler.active_cells()):
        for face in range(tria.faces_per_cell):
            if tria.boundary_id(cell, face) in boundary_spec:
                constrained.update(cell_dofs[row][face_dofs[face]].tolist())
    return constrained
