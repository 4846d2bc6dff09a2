"""Enumeration of degrees of freedom on the active mesh and on every level."""

import logging
from typing import List, Optional, Tuple

import numpy as np

from ..core.finite_element import FiniteElement
from ..core.triangulation import Cell, Triangulation
from ..exceptions import ConfigurationError
from ..utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)


def _enumerate_keys(keys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Number geometric dof keys in order of first appearance.

    Args:
        keys: One row per (cell, local dof), shape (n_cells * dofs_per_cell, dim + 1)

    Returns:
        indices: Dof index of every row
        ordered_keys: Key of every dof index, shape (n_dofs, dim + 1)
    """
    if len(keys) == 0:
        return np.zeros(0, dtype=np.int64), keys
    unique, first, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
    order = np.argsort(first, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))
    return rank[inverse.reshape(-1)], unique[order]


class DoFHandler:
    """
    Assigns indices to the degrees of freedom of a finite element on a triangulation.

    Two index spaces are maintained. The active space numbers the dofs of the
    active cells; support points of neighbouring active cells that coincide
    (also across levels) share their dofs. The level space of level ``l``
    numbers the dofs of all cells on that level, refined or not. Every
    dof carries a geometric key (lattice position and component) that
    renumbering never changes.
    """

    def __init__(self, triangulation: Triangulation):
        self.triangulation = triangulation
        self.fe: Optional[FiniteElement] = None
        self._generation = None

        # Incremented on every (re)numbering; transfer operators compare it
        self.numbering_version = 0

        self._level_cell_dofs: List[np.ndarray] = []
        self._level_keys: List[np.ndarray] = []
        self._active_cells: List[Cell] = []
        self._active_rows = {}
        self._active_cell_dofs = np.zeros((0, 0), dtype=np.int64)
        self._active_keys = np.zeros((0, 0), dtype=np.int64)

    @log_function_call
    def distribute_dofs(self, fe: FiniteElement) -> None:
        """
        Enumerate the dofs of ``fe`` in natural order.

        Cells are visited in triangulation order, local dofs in local order,
        and every dof gets the next free index when first seen.
        """
        fe.validate()
        tria = self.triangulation
        if fe.dim != tria.dim:
            raise ConfigurationError(f"Element {fe} is for dimension {fe.dim}, "
                                     f"triangulation has dimension {tria.dim}")
        if tria.n_levels == 0:
            raise RuntimeError("Cannot distribute dofs on an empty triangulation")

        self.fe = fe
        p = fe.degree
        components = fe.component_map[:, None]

        self._level_cell_dofs = []
        self._level_keys = []
        for level in range(tria.n_levels):
            origins = np.array([c.origin for c in tria.cells(level)], dtype=np.int64)
            lattice = p * origins[:, None, :] + fe.support_lattice[None, :, :]
            keys = np.concatenate(
                [lattice, np.broadcast_to(components, lattice.shape[:2] + (1,))], axis=2
            ).reshape(-1, fe.dim + 1)
            indices, ordered = _enumerate_keys(keys)
            self._level_cell_dofs.append(indices.reshape(len(origins), fe.dofs_per_cell))
            self._level_keys.append(ordered)

        # active dofs are keyed on the lattice of the finest level
        depth = tria.max_level
        self._active_cells = list(tria.active_cells())
        self._active_rows = {cell.id: row for row, cell in enumerate(self._active_cells)}
        origins = np.array([c.origin for c in self._active_cells], dtype=np.int64)
        scale = np.array([2 ** (depth - c.level) for c in self._active_cells], dtype=np.int64)
        lattice = (p * origins[:, None, :] + fe.support_lattice[None, :, :]) * scale[:, None, None]
        keys = np.concatenate(
            [lattice, np.broadcast_to(components, lattice.shape[:2] + (1,))], axis=2
        ).reshape(-1, fe.dim + 1)
        indices, ordered = _enumerate_keys(keys)
        self._active_cell_dofs = indices.reshape(len(origins), fe.dofs_per_cell)
        self._active_keys = ordered

        self._generation = tria.generation
        self.numbering_version += 1

        level_counts = "   ".join(f"L{l}: {self.n_dofs(l)}" for l in range(self.n_levels))
        logger.info(f"Distributed {fe}: {self.n_dofs()} active dofs   {level_counts}")

    def _check_distributed(self) -> None:
        if self.fe is None:
            raise RuntimeError("distribute_dofs() has not been called")
        if self._generation != self.triangulation.generation:
            raise RuntimeError("Triangulation has changed since distribute_dofs(); "
                               "distribute the dofs again")

    # ------------------------------------------------------------------
    # Sizes

    @property
    def n_levels(self) -> int:
        self._check_distributed()
        return len(self._level_keys)

    @property
    def max_level(self) -> int:
        return self.n_levels - 1

    def n_dofs(self, level: Optional[int] = None) -> int:
        """Number of active dofs, or of level dofs when ``level`` is given."""
        return len(self._keys(level))

    # ------------------------------------------------------------------
    # Cell-to-dof maps

    def level_dof_indices(self, cell: Cell) -> np.ndarray:
        """Level dof indices of a cell, in local dof order."""
        return self.level_cell_dofs(cell.level)[cell.index].copy()

    def active_cell_dof_indices(self, cell: Cell) -> np.ndarray:
        """Active dof indices of an active cell, in local dof order."""
        self._check_distributed()
        row = self._active_rows.get(cell.id)
        if row is None:
            raise ValueError(f"Cell {cell.id} is not active")
        return self._active_cell_dofs[row].copy()

    def level_cell_dofs(self, level: int) -> np.ndarray:
        """Level dof indices of all cells on a level, shape (n_cells, dofs_per_cell)."""
        self._check_distributed()
        if not 0 <= level < len(self._level_cell_dofs):
            raise IndexError(f"Level {level} not in [0, {len(self._level_cell_dofs)})")
        return self._level_cell_dofs[level]

    def active_cell_dofs(self) -> np.ndarray:
        """Active dof indices of all active cells, in ``active_cells()`` order."""
        self._check_distributed()
        return self._active_cell_dofs

    def active_cells(self) -> List[Cell]:
        self._check_distributed()
        return list(self._active_cells)

    def cell_dofs(self, level: Optional[int] = None) -> np.ndarray:
        """Cell-to-dof map of the active space (``level=None``) or of a level."""
        if level is None:
            return self.active_cell_dofs()
        return self.level_cell_dofs(level)

    def copy_indices(self, level: int) -> np.ndarray:
        """
        Pairs (active index, level index) for the dofs of active cells on a level.

        Returns:
            Array of shape (n_pairs, 2), without duplicates
        """
        self._check_distributed()
        rows = [row for row, cell in enumerate(self._active_cells) if cell.level == level]
        if not rows:
            return np.zeros((0, 2), dtype=np.int64)
        cells = [self._active_cells[row] for row in rows]
        active = self._active_cell_dofs[rows].reshape(-1)
        local = self._level_cell_dofs[level][[c.index for c in cells]].reshape(-1)
        return np.unique(np.stack([active, local], axis=1), axis=0)

    # ------------------------------------------------------------------
    # Geometric identity

    def _keys(self, level: Optional[int] = None) -> np.ndarray:
        self._check_distributed()
        if level is None:
            return self._active_keys
        if not 0 <= level < len(self._level_keys):
            raise IndexError(f"Level {level} not in [0, {len(self._level_keys)})")
        return self._level_keys[level]

    def dof_keys(self, level: Optional[int] = None) -> np.ndarray:
        """
        Geometric key of every dof: lattice position and component.

        Level keys live on the lattice of their level, active keys on the
        lattice of the finest level. Row ``i`` belongs to dof index ``i``.
        """
        return self._keys(level).copy()

    def dof_components(self, level: Optional[int] = None) -> np.ndarray:
        return self._keys(level)[:, -1].copy()

    def support_points(self, level: Optional[int] = None) -> np.ndarray:
        """Physical coordinates of the support point of every dof."""
        keys = self._keys(level)
        tria = self.triangulation
        depth = tria.max_level if level is None else level
        h = tria.cell_size(depth) / self.fe.degree
        return tria.p1 + keys[:, :-1] * h

    # ------------------------------------------------------------------
    # Renumbering

    def renumber_dofs(self, new_numbers: np.ndarray, level: Optional[int] = None) -> None:
        """
        Replace the numbering of the active space or of one level.

        Args:
            new_numbers: ``new_numbers[old_index]`` is the new index
            level: Level to renumber, ``None`` for the active space
        """
        keys = self._keys(level)
        new_numbers = np.asarray(new_numbers, dtype=np.int64)
        n = len(keys)
        if new_numbers.shape != (n,) or not np.array_equal(np.sort(new_numbers), np.arange(n)):
            raise ValueError(f"New numbers are not a permutation of [0, {n})")

        renumbered_keys = np.empty_like(keys)
        renumbered_keys[new_numbers] = keys
        if level is None:
            self._active_cell_dofs = new_numbers[self._active_cell_dofs]
            self._active_keys = renumbered_keys
        else:
            self._level_cell_dofs[level] = new_numbers[self._level_cell_dofs[level]]
            self._level_keys[level] = renumbered_keys
        self.numbering_version += 1

        logger.debug(f"Renumbered {n} dofs on "
                     f"{'active space' if level is None else f'level {level}'}")

    def __repr__(self) -> str:
        if self.fe is None:
            return "DoFHandler(fe=None)"
        return f"DoFHandler(fe={self.fe}, n_dofs={self.n_dofs()}, levels={self.n_levels})"


def distribute(triangulation: Triangulation, fe: FiniteElement) -> DoFHandler:
    """Create a dof handler and enumerate the active and level dofs of ``fe``."""
    dof_handler = DoFHandler(triangulation)
    dof_handler.distribute_dofs(fe)
    return dof_handler
