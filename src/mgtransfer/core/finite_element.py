"""Finite element descriptors on the reference hypercube."""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Dict, Sequence, Tuple

import numpy as np

from ..exceptions import ConfigurationError
from .triangulation import unit_offsets

logger = logging.getLogger(__name__)


class FiniteElement(ABC):
    """
    Description of a (possibly vector valued) nodal finite element.

    The transfer engine only needs the number of dofs per cell, the
    component of every local dof, the position of every local dof on the
    reference cell and the embedding of the cell's basis into the bases of
    its children.
    """

    def __init__(
        self,
        dim: int,
        degree: int,
        n_components: int,
        support_lattice: np.ndarray,
        component_map: Sequence[int],
        name: str = "FiniteElement"
    ):
        """
        Initialize the descriptor.

        Args:
            dim: Space dimension
            degree: Polynomial degree; support points lie on the lattice
                ``{0, ..., degree}**dim`` of the reference cell
            n_components: Number of vector components
            support_lattice: Integer lattice position of every local dof,
                shape (dofs_per_cell, dim)
            component_map: Component of every local dof
            name: Human-readable name
        """
        self.dim = dim
        self.degree = degree
        self.n_components = n_components
        self.support_lattice = np.asarray(support_lattice, dtype=np.int64)
        self.component_map = np.asarray(component_map, dtype=np.int64)
        self.dofs_per_cell = len(self.support_lattice)
        self.name = name

    @property
    def n_children(self) -> int:
        return 2 ** self.dim

    def validate(self) -> None:
        """Check the descriptor for consistency."""
        if self.component_map.shape != (self.dofs_per_cell,):
            raise ConfigurationError(
                f"{self.name}: component map has {self.component_map.size} entries, "
                f"but there are {self.dofs_per_cell} dofs per cell"
            )
        if self.support_lattice.shape != (self.dofs_per_cell, self.dim):
            raise ConfigurationError(f"{self.name}: support lattice has wrong shape "
                                     f"{self.support_lattice.shape}")
        if np.any(self.component_map < 0) or np.any(self.component_map >= self.n_components):
            raise ConfigurationError(f"{self.name}: component ids must be in [0, {self.n_components})")
        if np.any(self.support_lattice < 0) or np.any(self.support_lattice > self.degree):
            raise ConfigurationError(f"{self.name}: support points outside the reference cell")

    def system_to_component_index(self, i: int) -> Tuple[int, int]:
        """Return (component, index among the dofs of that component) of local dof ``i``."""
        component = int(self.component_map[i])
        within = int(np.count_nonzero(self.component_map[:i] == component))
        return component, within

    def face_dofs(self, face: int) -> np.ndarray:
        """Local dofs whose support point lies on face ``2*d + s``."""
        direction, side = divmod(face, 2)
        position = self.degree if side else 0
        return np.flatnonzero(self.support_lattice[:, direction] == position)

    def unit_support_points(self) -> np.ndarray:
        return self.support_lattice / self.degree

    @abstractmethod
    def shape_values(self, points: np.ndarray) -> np.ndarray:
        """
        Values of the scalar shape function of every local dof.

        Args:
            points: Reference coordinates, shape (n_points, dim)

        Returns:
            Array of shape (n_points, dofs_per_cell)
        """
        pass

    @abstractmethod
    def embedding(self, child: int) -> np.ndarray:
        """
        Prolongation matrix from the cell to child number ``child``.

        Entry (i, j) is the value of parent dof ``j`` at the support point of
        child dof ``i``; dofs of different components do not couple.
        """
        pass

    def __eq__(self, other) -> bool:
        if not isinstance(other, FiniteElement):
            return NotImplemented
        return (self.name == other.name and self.dim == other.dim
                and np.array_equal(self.component_map, other.component_map)
                and np.array_equal(self.support_lattice, other.support_lattice))

    def __hash__(self) -> int:
        return hash((self.name, self.dim, self.dofs_per_cell))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(dim={self.dim}, degree={self.degree}, "
                f"n_components={self.n_components})")


class LagrangeElement(FiniteElement):
    """
    Continuous tensor-product Lagrange element with equidistant support points.

    With ``n_components > 1`` every support point carries one dof per
    component, numbered consecutively (point-major ordering). Local dof ``i``
    belongs to support point ``i // n_components`` and component
    ``i % n_components``.
    """

    def __init__(self, dim: int = 2, degree: int = 1, n_components: int = 1):
        if degree < 1:
            raise ConfigurationError(f"Lagrange elements need degree >= 1, got {degree}")
        if n_components < 1:
            raise ConfigurationError(f"Need at least one component, got {n_components}")

        # x runs fastest
        points = [tuple(reversed(p)) for p in itertools.product(range(degree + 1), repeat=dim)]
        lattice = np.repeat(np.array(points, dtype=np.int64).reshape(-1, dim), n_components, axis=0)
        components = np.tile(np.arange(n_components), len(points))

        name = f"Q{degree}<{dim}>"
        if n_components > 1:
            name = f"{name}^{n_components}"
        super().__init__(dim, degree, n_components, lattice, components, name)

        self._embeddings: Dict[int, np.ndarray] = {}

    def _lagrange_1d(self, t: np.ndarray) -> np.ndarray:
        """
        1D Lagrange polynomials at lattice coordinates ``t = degree * x``.

        Returns:
            Array of shape (len(t), degree + 1)
        """
        p = self.degree
        values = np.ones((len(t), p + 1))
        for k in range(p + 1):
            for m in range(p + 1):
                if m != k:
                    values[:, k] *= (t - m) / (k - m)
        return values

    def _shape_values_lattice(self, t: np.ndarray) -> np.ndarray:
        t = np.atleast_2d(np.asarray(t, dtype=np.float64))
        values = np.ones((len(t), self.dofs_per_cell))
        for d in range(self.dim):
            basis = self._lagrange_1d(t[:, d])
            values *= basis[:, self.support_lattice[:, d]]
        return values

    def shape_values(self, points: np.ndarray) -> np.ndarray:
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if points.shape[1] != self.dim:
            raise ValueError(f"Points must have {self.dim} coordinates, got {points.shape[1]}")
        return self._shape_values_lattice(points * self.degree)

    def embedding(self, child: int) -> np.ndarray:
        if not 0 <= child < self.n_children:
            raise ValueError(f"Child number {child} not in [0, {self.n_children})")
        if child not in self._embeddings:
            offset = np.asarray(unit_offsets(self.dim)[child])
            # child support points in lattice coordinates of the parent
            t = (offset * self.degree + self.support_lattice) / 2.0
            matrix = self._shape_values_lattice(t)
            matrix[self.component_map[:, None] != self.component_map[None, :]] = 0.0
            matrix[np.abs(matrix) < 1e-12] = 0.0
            self._embeddings[child] = matrix
            logger.debug(f"{self.name}: embedding for child {child} "
                         f"has {np.count_nonzero(matrix)} nonzeros")
        return self._embeddings[child]
