"""End-to-end studies built on the transfer engine."""

from .renumbering_study import CycleResult, RenumberingStudy

__all__ = [
    "CycleResult",
    "RenumberingStudy",
]
