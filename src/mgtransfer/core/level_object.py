"""Per-level vector container for multilevel fields."""

import logging
from typing import TYPE_CHECKING, Dict, Iterator, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from ..dofs.handler import DoFHandler

logger = logging.getLogger(__name__)


class LevelVectors:
    """
    One vector per level over the contiguous range [min_level, max_level].

    Each vector owns its size; ``reinit`` sizes all of them from the level
    enumerations of a dof handler.
    """

    def __init__(self, min_level: int = 0, max_level: int = 0, dtype: np.dtype = np.float64):
        if min_level < 0 or max_level < min_level:
            raise ValueError(f"Invalid level range [{min_level}, {max_level}]")
        self.min_level = min_level
        self.max_level = max_level
        self.dtype = dtype
        self._vectors = [np.zeros(0, dtype=dtype) for _ in range(max_level - min_level + 1)]

    def reinit(self, dof_handler: 'DoFHandler') -> 'LevelVectors':
        """Allocate a zero vector of size ``n_dofs(level)`` on every level."""
        if self.max_level >= dof_handler.n_levels:
            raise ValueError(f"Level range ends at {self.max_level}, but the dof handler "
                             f"has {dof_handler.n_levels} levels")
        for level in self.levels():
            self[level] = np.zeros(dof_handler.n_dofs(level), dtype=self.dtype)
        return self

    def levels(self) -> range:
        return range(self.min_level, self.max_level + 1)

    def _position(self, level: int) -> int:
        if not self.min_level <= level <= self.max_level:
            raise IndexError(f"Level {level} not in [{self.min_level}, {self.max_level}]")
        return level - self.min_level

    def __getitem__(self, level: int) -> np.ndarray:
        return self._vectors[self._position(level)]

    def __setitem__(self, level: int, vector: np.ndarray) -> None:
        position = self._position(level)
        vector = np.asarray(vector, dtype=self.dtype)
        current = self._vectors[position]
        if current.size and vector.shape != current.shape:
            raise ValueError(f"Vector of shape {vector.shape} does not fit level {level} "
                             f"of size {current.size}")
        self._vectors[position] = vector

    def __len__(self) -> int:
        return len(self._vectors)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._vectors)

    def items(self) -> Iterator[Tuple[int, np.ndarray]]:
        return zip(self.levels(), self._vectors)

    def l2_norms(self) -> Dict[int, float]:
        return {level: float(np.linalg.norm(v)) for level, v in self.items()}

    def copy(self) -> 'LevelVectors':
        other = LevelVectors(self.min_level, self.max_level, self.dtype)
        other._vectors = [v.copy() for v in self._vectors]
        return other

    def __repr__(self) -> str:
        sizes = [v.size for v in self._vectors]
        return f"LevelVectors(levels=[{self.min_level}, {self.max_level}], sizes={sizes})"


def reinit_vector(
    dof_handler: 'DoFHandler',
    min_level: int = 0,
    max_level: Optional[int] = None
) -> LevelVectors:
    """Create level vectors covering all levels of a dof handler, filled with zeros."""
    if max_level is None:
        max_level = dof_handler.n_levels - 1
    return LevelVectors(min_level, max_level).reinit(dof_handler)
