"""Boundary specifications and boundary dof extraction."""

from .boundary_list import (
    ZeroFunction, BoundarySpec, validate_boundary_spec,
    extract_boundary_indices, extract_active_boundary_indices
)

__all__ = [
    "ZeroFunction",
    "BoundarySpec",
    "validate_boundary_spec",
    "extract_boundary_indices",
    "extract_active_boundary_indices",
]
