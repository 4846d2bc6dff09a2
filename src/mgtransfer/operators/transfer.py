"""Prebuilt sparse transfer matrices between refinement levels."""

import logging
from typing import List, Optional, Sequence, Set

import numpy as np
import scipy.sparse as sp

from ..core.level_object import LevelVectors, reinit_vector
from ..dofs.handler import DoFHandler
from ..utils.logging_utils import log_function_call
from .base import BaseTransfer

logger = logging.getLogger(__name__)


def _assemble(
    rows: List[np.ndarray],
    cols: List[np.ndarray],
    values: List[np.ndarray],
    shape: tuple
) -> sp.csr_matrix:
    """
    Assemble entries into CSR format, keeping the first of duplicate entries.

    Duplicates arise where children share dofs; they carry the same value,
    so entries are set rather than summed.
    """
    if not rows:
        return sp.csr_matrix(shape, dtype=np.float64)
    rows = np.concatenate(rows)
    cols = np.concatenate(cols)
    values = np.concatenate(values)
    _, first = np.unique(rows * shape[1] + cols, return_index=True)
    matrix = sp.csr_matrix((values[first], (rows[first], cols[first])), shape=shape)
    matrix.sum_duplicates()
    matrix.sort_indices()
    return matrix


class PrebuiltTransfer(BaseTransfer):
    """
    Level transfer through explicitly stored prolongation matrices.

    ``matrices[l]`` maps level ``l`` to level ``l + 1`` and has shape
    ``(n_dofs(l + 1), n_dofs(l))``. Boundary-constrained dofs are eliminated:
    their rows on the fine level and their columns on the coarse level are
    empty, so a constrained fine dof always receives the constraint value 0.
    """

    def __init__(self):
        super().__init__("PrebuiltTransfer")
        self.matrices: List[sp.csr_matrix] = []
        self.boundary_indices: Optional[List[Set[int]]] = None
        self._built_for = None

    @property
    def n_levels(self) -> int:
        return len(self.matrices) + 1 if self._built_for is not None else 0

    @log_function_call
    def build_matrices(
        self,
        dof_handler: DoFHandler,
        boundary_indices: Optional[Sequence[Set[int]]] = None
    ) -> None:
        """
        Build the prolongation matrices for the current level numberings.

        For every refined cell the element's embedding matrices are scattered
        into the matrix of its level with the level dof indices of the cell
        and its children.

        Args:
            dof_handler: Handler with distributed (possibly renumbered) dofs
            boundary_indices: Constrained level dofs, one set per level
        """
        n_levels = dof_handler.n_levels
        if boundary_indices is not None and len(boundary_indices) != n_levels:
            raise ValueError(f"Got boundary indices for {len(boundary_indices)} levels, "
                             f"dof handler has {n_levels}")

        fe = dof_handler.fe
        tria = dof_handler.triangulation
        embeddings = [fe.embedding(child) for child in range(fe.n_children)]
        nonzeros = [np.nonzero(matrix) for matrix in embeddings]

        self.matrices = []
        for level in range(n_levels - 1):
            coarse_dofs = dof_handler.level_cell_dofs(level)
            fine_dofs = dof_handler.level_cell_dofs(level + 1)
            rows, cols, values = [], [], []
            for cell in tria.cells(level):
                if not cell.has_children:
                    continue
                parent_dofs = coarse_dofs[cell.index]
                for child_no, child_index in enumerate(cell.children):
                    i, j = nonzeros[child_no]
                    rows.append(fine_dofs[child_index][i])
                    cols.append(parent_dofs[j])
                    values.append(embeddings[child_no][i, j])

            if boundary_indices is not None and rows:
                fine_constrained = np.fromiter(boundary_indices[level + 1], dtype=np.int64)
                coarse_constrained = np.fromiter(boundary_indices[level], dtype=np.int64)
                for k in range(len(rows)):
                    keep = (~np.isin(rows[k], fine_constrained)
                            & ~np.isin(cols[k], coarse_constrained))
                    rows[k], cols[k], values[k] = rows[k][keep], cols[k][keep], values[k][keep]

            shape = (dof_handler.n_dofs(level + 1), dof_handler.n_dofs(level))
            matrix = _assemble(rows, cols, values, shape)
            self.matrices.append(matrix)
            logger.debug(f"Transfer {level} -> {level + 1}: shape={shape}, nnz={matrix.nnz}")

        self.boundary_indices = (
            [set(indices) for indices in boundary_indices] if boundary_indices is not None else None
        )
        self._built_for = (id(dof_handler), dof_handler.numbering_version)
        logger.info(f"Built {len(self.matrices)} transfer matrices "
                    f"(constrained: {boundary_indices is not None})")

    def _check_built(self, dof_handler: DoFHandler) -> None:
        if self._built_for is None:
            raise RuntimeError("build_matrices() has not been called")
        if self._built_for != (id(dof_handler), dof_handler.numbering_version):
            raise RuntimeError("Transfer matrices were built for a different enumeration; "
                               "call build_matrices() again")

    def _check_level(self, level: int) -> sp.csr_matrix:
        if not 1 <= level <= len(self.matrices):
            raise ValueError(f"Fine level {level} not in [1, {len(self.matrices)}]")
        return self.matrices[level - 1]

    def prolongate(self, to_level: int, src: np.ndarray) -> np.ndarray:
        matrix = self._check_level(to_level)
        src = np.asarray(src)
        if src.shape != (matrix.shape[1],):
            raise ValueError(f"Source of shape {src.shape} does not fit level {to_level - 1} "
                             f"of size {matrix.shape[1]}")
        return matrix @ src

    def restrict_and_add(self, from_level: int, dst: np.ndarray, src: np.ndarray) -> None:
        matrix = self._check_level(from_level)
        src = np.asarray(src)
        if src.shape != (matrix.shape[0],) or dst.shape != (matrix.shape[1],):
            raise ValueError(f"Vectors of shape {src.shape} and {dst.shape} do not fit "
                             f"transfer {from_level - 1} -> {from_level}")
        dst += matrix.T @ src

    def copy_to_hierarchy(self, dof_handler: DoFHandler, src: np.ndarray) -> LevelVectors:
        """
        Build the multilevel representation of an active-space vector.

        The coarsest level receives the values of its active cells. Every
        finer level is the prolongation of the level below, overwritten with
        the values of its own active cells. Constrained dofs are set to zero
        on every level. ``src`` is not modified.
        """
        self._check_built(dof_handler)
        src = np.asarray(src)
        if src.shape != (dof_handler.n_dofs(),):
            raise ValueError(f"Source of shape {src.shape} does not match "
                             f"{dof_handler.n_dofs()} active dofs")

        dst = reinit_vector(dof_handler)
        for level in dst.levels():
            if level > dst.min_level:
                dst[level] = self.prolongate(level, dst[level - 1])
            pairs = dof_handler.copy_indices(level)
            if len(pairs):
                dst[level][pairs[:, 1]] = src[pairs[:, 0]]
            if self.boundary_indices is not None and self.boundary_indices[level]:
                dst[level][list(self.boundary_indices[level])] = 0.0
        return dst

    def copy_from_hierarchy(self, dof_handler: DoFHandler, levels: LevelVectors) -> np.ndarray:
        """Gather the active-space vector from the level vectors of the active cells."""
        self._check_built(dof_handler)
        dst = np.zeros(dof_handler.n_dofs())
        for level in levels.levels():
            pairs = dof_handler.copy_indices(level)
            if len(pairs):
                dst[pairs[:, 0]] = levels[level][pairs[:, 1]]
        return dst
