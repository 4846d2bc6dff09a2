"""Base class for level transfer operators."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from ..core.level_object import LevelVectors
    from ..dofs.handler import DoFHandler


class BaseTransfer(ABC):
    """Abstract base class for transfers between refinement levels."""

    def __init__(self, name: str = "BaseTransfer"):
        """
        Initialize base transfer.

        Args:
            name: Human-readable name for the transfer
        """
        self.name = name

    @abstractmethod
    def prolongate(self, to_level: int, src: np.ndarray) -> np.ndarray:
        """
        Interpolate a level vector to the next finer level.

        Args:
            to_level: Fine level, at least 1
            src: Vector on level ``to_level - 1``

        Returns:
            Vector on ``to_level``
        """
        pass

    @abstractmethod
    def restrict_and_add(self, from_level: int, dst: np.ndarray, src: np.ndarray) -> None:
        """
        Add the restriction of a fine level vector to a coarse one.

        Args:
            from_level: Fine level, at least 1
            dst: Vector on level ``from_level - 1``, updated in place
            src: Vector on ``from_level``
        """
        pass

    @abstractmethod
    def copy_to_hierarchy(self, dof_handler: 'DoFHandler', src: np.ndarray) -> 'LevelVectors':
        """Distribute an active-space vector onto all levels."""
        pass

    @abstractmethod
    def copy_from_hierarchy(self, dof_handler: 'DoFHandler', levels: 'LevelVectors') -> np.ndarray:
        """Collect an active-space vector from the level vectors."""
        pass

    def __str__(self) -> str:
        """String representation of the transfer."""
        return self.name

    def __repr__(self) -> str:
        """Detailed representation of the transfer."""
        return f"{self.__class__.__name__}(name='{self.name}')"
