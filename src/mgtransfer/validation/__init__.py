"""Renumbering consistency validation."""

from .consistency import (
    Violation, LevelComparison, ComparisonReport, InvarianceResult,
    check_structure, cellwise_difference, compare_level_fields,
    initialize_by_component, run_invariance_check
)

__all__ = [
    "Violation",
    "LevelComparison",
    "ComparisonReport",
    "InvarianceResult",
    "check_structure",
    "cellwise_difference",
    "compare_level_fields",
    "initialize_by_component",
    "run_invariance_check",
]
