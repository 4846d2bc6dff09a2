"""Mesh hierarchy, finite element descriptors and level containers."""

from .triangulation import Cell, Triangulation, INTERNAL_FACE_BOUNDARY_ID
from .finite_element import FiniteElement, LagrangeElement
from .level_object import LevelVectors, reinit_vector

__all__ = [
    "Cell",
    "Triangulation",
    "INTERNAL_FACE_BOUNDARY_ID",
    "FiniteElement",
    "LagrangeElement",
    "LevelVectors",
    "reinit_vector",
]
