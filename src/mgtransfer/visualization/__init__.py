"""Output of multilevel fields."""

from .gnuplot_output import loop_level, trapezoidal_points, write_gnuplot_levels
from .level_plots import plot_level_fields

__all__ = [
    "loop_level",
    "trapezoidal_points",
    "write_gnuplot_levels",
    "plot_level_fields",
]
