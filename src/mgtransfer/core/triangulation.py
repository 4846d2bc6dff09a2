"""Hierarchical tensor-product mesh for geometric multigrid."""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Boundary id reported for faces in the interior of the domain
INTERNAL_FACE_BOUNDARY_ID = 255


@lru_cache()
def unit_offsets(dim: int) -> Tuple[Tuple[int, ...], ...]:
    """
    Corner offsets of the unit hypercube.

    Bit ``d`` of the corner number is the offset in direction ``d``, so x
    runs fastest. The same numbering is used for vertices and children.
    """
    return tuple(
        tuple((i >> d) & 1 for d in range(dim)) for i in range(2 ** dim)
    )


@dataclass
class Cell:
    """
    A cell of the hierarchy, addressed by ``(level, index)``.

    ``origin`` is the integer position of the lower corner on the lattice of
    its level. Parent and children are stored as indices, never as
    references, so the hierarchy has no ownership cycles.
    """
    level: int
    index: int
    origin: Tuple[int, ...]
    parent: Optional[Tuple[int, int]] = None
    children: List[int] = field(default_factory=list)
    refine_flag: bool = False

    @property
    def id(self) -> Tuple[int, int]:
        return (self.level, self.index)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def is_active(self) -> bool:
        return not self.children


class Triangulation:
    """
    Coarse-to-fine refinement tree of axis-aligned cells.

    Level 0 holds the coarse mesh, a subdivided box. Refining a cell on level
    ``l`` appends its ``2**dim`` children to level ``l + 1``. Cells are kept
    in per-level lists in creation order, which is the traversal order used
    by every algorithm in the package.
    """

    def __init__(self, dim: int = 2, limit_level_difference_at_vertices: bool = False):
        """
        Initialize an empty triangulation.

        Args:
            dim: Space dimension (1, 2 or 3)
            limit_level_difference_at_vertices: Smooth refinement flags so
                that active cells touching each other differ by at most
                one level
        """
        if dim not in (1, 2, 3):
            raise ValueError(f"Unsupported dimension: {dim}")

        self.dim = dim
        self.limit_level_difference_at_vertices = limit_level_difference_at_vertices
        self.levels: List[List[Cell]] = []
        self.repetitions: Tuple[int, ...] = (1,) * dim
        self.p1 = np.zeros(dim)
        self.p2 = np.ones(dim)
        self.colorize = False

        # Bumped on every change of the cell set; dof handlers compare it
        self.generation = 0

    # ------------------------------------------------------------------
    # Coarse mesh generation

    def hyper_cube(self, left: float = 0.0, right: float = 1.0, colorize: bool = False) -> None:
        """Create a single coarse cell [left, right]^dim."""
        self.subdivided_hyper_rectangle(
            (1,) * self.dim, (left,) * self.dim, (right,) * self.dim, colorize
        )

    def subdivided_hyper_rectangle(
        self,
        repetitions: Sequence[int],
        p1: Sequence[float],
        p2: Sequence[float],
        colorize: bool = False
    ) -> None:
        """
        Create a coarse mesh of ``prod(repetitions)`` cells on the box [p1, p2].

        Args:
            repetitions: Number of coarse cells per direction
            p1: Lower corner of the box
            p2: Upper corner of the box
            colorize: Give each side of the box its own boundary id
                (``2*d`` for the lower and ``2*d + 1`` for the upper side in
                direction ``d``); otherwise every boundary face has id 0
        """
        if len(repetitions) != self.dim or len(p1) != self.dim or len(p2) != self.dim:
            raise ValueError(f"Box description must have {self.dim} entries per corner")
        if any(int(r) < 1 for r in repetitions):
            raise ValueError("Need at least one coarse cell in each direction")
        p1 = np.asarray(p1, dtype=np.float64)
        p2 = np.asarray(p2, dtype=np.float64)
        if np.any(p2 <= p1):
            raise ValueError(f"Invalid domain bounds: {p1} - {p2}")

        self.repetitions = tuple(int(r) for r in repetitions)
        self.p1 = p1
        self.p2 = p2
        self.colorize = colorize

        coarse = []
        for position in np.ndindex(*reversed(self.repetitions)):
            origin = tuple(int(i) for i in reversed(position))
            coarse.append(Cell(level=0, index=len(coarse), origin=origin))
        self.levels = [coarse]
        self.generation += 1

        logger.info(f"Created coarse mesh: {len(coarse)} cells, dim={self.dim}, "
                    f"domain={p1.tolist()} - {p2.tolist()}")

    # ------------------------------------------------------------------
    # Queries

    @property
    def n_levels(self) -> int:
        return len(self.levels)

    @property
    def max_level(self) -> int:
        return len(self.levels) - 1

    def n_cells(self, level: int) -> int:
        return len(self.levels[level])

    @property
    def n_active_cells(self) -> int:
        return sum(1 for _ in self.active_cells())

    def cells(self, level: int) -> List[Cell]:
        """All cells on a level, in traversal order."""
        if not 0 <= level < self.n_levels:
            raise IndexError(f"Level {level} not in [0, {self.n_levels})")
        return self.levels[level]

    def cell(self, level: int, index: int) -> Cell:
        return self.cells(level)[index]

    def active_cells(self) -> Iterator[Cell]:
        """Cells without children, coarse levels first."""
        for cells in self.levels:
            for cell in cells:
                if cell.is_active:
                    yield cell

    def parent(self, cell: Cell) -> Optional[Cell]:
        if cell.parent is None:
            return None
        return self.cell(*cell.parent)

    def children(self, cell: Cell) -> List[Cell]:
        return [self.levels[cell.level + 1][i] for i in cell.children]

    def cell_size(self, level: int) -> np.ndarray:
        """Edge lengths of cells on a level."""
        return (self.p2 - self.p1) / np.asarray(self.repetitions) / 2 ** level

    def vertices(self, cell: Cell) -> np.ndarray:
        """Vertex coordinates, shape (2**dim, dim), in corner numbering."""
        h = self.cell_size(cell.level)
        corners = np.asarray(cell.origin) + np.asarray(unit_offsets(self.dim))
        return self.p1 + corners * h

    def center(self, cell: Cell) -> np.ndarray:
        h = self.cell_size(cell.level)
        return self.p1 + (np.asarray(cell.origin) + 0.5) * h

    @property
    def faces_per_cell(self) -> int:
        return 2 * self.dim

    def face_at_boundary(self, cell: Cell, face: int) -> bool:
        """
        Whether a face lies on the exterior of the domain.

        Face ``2*d + s`` is orthogonal to direction ``d``, on the lower
        (``s == 0``) or upper (``s == 1``) side of the cell.
        """
        direction, side = divmod(face, 2)
        coordinate = cell.origin[direction] + side
        return coordinate == 0 or coordinate == self.repetitions[direction] * 2 ** cell.level

    def boundary_id(self, cell: Cell, face: int) -> int:
        if not self.face_at_boundary(cell, face):
            return INTERNAL_FACE_BOUNDARY_ID
        return face if self.colorize else 0

    def boundary_ids(self) -> List[int]:
        """Boundary ids used by this mesh."""
        return list(range(2 * self.dim)) if self.colorize else [0]

    # ------------------------------------------------------------------
    # Refinement

    def set_refine_flag(self, cell: Cell) -> None:
        if not cell.is_active:
            raise ValueError(f"Cell {cell.id} is already refined")
        cell.refine_flag = True

    def clear_refine_flags(self) -> None:
        for cells in self.levels:
            for cell in cells:
                cell.refine_flag = False

    def refine_global(self, times: int = 1) -> None:
        for _ in range(times):
            for cell in self.active_cells():
                cell.refine_flag = True
            self.execute_coarsening_and_refinement()

    def execute_coarsening_and_refinement(self) -> None:
        """
        Refine all flagged cells.

        Coarsening flags do not exist; only refinement is carried out.
        """
        if not self.levels:
            raise RuntimeError("Triangulation is empty")

        if self.limit_level_difference_at_vertices:
            self._smooth_refine_flags()

        n_refined = 0
        for level in range(self.n_levels):
            for cell in self.levels[level]:
                if not cell.refine_flag:
                    continue
                if level + 1 == self.n_levels:
                    self.levels.append([])
                fine = self.levels[level + 1]
                for offset in unit_offsets(self.dim):
                    origin = tuple(2 * o + s for o, s in zip(cell.origin, offset))
                    child = Cell(level=level + 1, index=len(fine), origin=origin,
                                 parent=cell.id)
                    fine.append(child)
                    cell.children.append(child.index)
                cell.refine_flag = False
                n_refined += 1

        self.generation += 1
        logger.info(f"Refined {n_refined} cells: {self.n_levels} levels, "
                    f"{self.n_active_cells} active cells")

    def _smooth_refine_flags(self) -> None:
        """Flag coarser cells touching flagged ones until the level jump is at most one."""
        active = list(self.active_cells())
        if not active:
            return
        depth = self.max_level + 1
        scale = np.array([2 ** (depth - c.level) for c in active])[:, None]
        lower = np.array([c.origin for c in active]) * scale
        upper = lower + scale
        levels = np.array([c.level for c in active])

        changed = True
        while changed:
            changed = False
            flagged = np.array([c.refine_flag for c in active])
            for i in np.flatnonzero(flagged):
                touching = np.all((lower <= upper[i]) & (lower[i] <= upper), axis=1)
                candidates = np.flatnonzero(touching & (levels < levels[i]) & ~flagged)
                for j in candidates:
                    active[j].refine_flag = True
                    changed = True
                if changed:
                    break

    def __str__(self) -> str:
        return f"Triangulation(dim={self.dim}, levels={self.n_levels})"

    def __repr__(self) -> str:
        return (f"Triangulation(dim={self.dim}, repetitions={self.repetitions}, "
                f"levels={[len(c) for c in self.levels]})")
