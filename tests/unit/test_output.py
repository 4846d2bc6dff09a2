"""Unit tests for gnuplot output and level plots."""

import numpy as np
import pytest
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from mgtransfer.boundary_conditions.boundary_list import ZeroFunction
from mgtransfer.core.level_object import reinit_vector
from mgtransfer.visualization.gnuplot_output import (
    loop_level, trapezoidal_points, write_gnuplot_levels
)
from mgtransfer.visualization.level_plots import plot_level_fields
from mgtransfer.validation.consistency import run_invariance_check
from tests import make_square, make_locally_refined, make_handler


def numeric_rows(path):
    return [line.split() for line in path.read_text().splitlines()
            if line and not line.startswith('#')]


class TestLoopLevel:
    """Test the per-cell loop."""

    def test_visits_every_cell(self):
        """Test that the worker sees every cell of the level with its dofs."""
        tria = make_locally_refined(1)
        dof_handler = make_handler(tria)
        visited = []

        def worker(cell, dof_indices):
            visited.append(cell.index)
            np.testing.assert_array_equal(dof_indices, dof_handler.level_dof_indices(cell))

        loop_level(dof_handler, 2, worker)

        assert visited == list(range(tria.n_cells(2)))


class TestGnuplot:
    """Test gnuplot patch files."""

    def test_trapezoidal_points(self):
        """Test sample points with x running fastest."""
        np.testing.assert_allclose(trapezoidal_points(2, 1), [[0, 0], [1, 0], [0, 1], [1, 1]])
        assert trapezoidal_points(3, 2).shape == (27, 3)

    def test_files_per_level(self, tmp_path):
        """Test one file per level with the expected name."""
        dof_handler = make_handler(make_square(1))
        levels = reinit_vector(dof_handler)

        paths = write_gnuplot_levels(dof_handler, levels, tmp_path / "out", prefix="mg")

        assert [p.name for p in paths] == ["mg-0.gpl", "mg-1.gpl"]
        assert all(p.exists() for p in paths)
        header = paths[0].read_text().splitlines()[0]
        assert header == "# <x0> <x1> <u0> <u1>"

    def test_sampled_values(self, tmp_path):
        """Test coordinates and interpolated values in the patches."""
        dof_handler = make_handler(make_square(1))
        levels = reinit_vector(dof_handler)
        levels[1][:] = dof_handler.dof_components(1) + 1.0

        paths = write_gnuplot_levels(dof_handler, levels, tmp_path, n_subdivisions=2)
        rows = np.array(numeric_rows(paths[1]), dtype=float)

        assert rows.shape == (4 * 9, 4)
        assert rows[:, :2].min() == -1.0
        assert rows[:, :2].max() == 1.0
        np.testing.assert_allclose(rows[:, 2], 1.0)
        np.testing.assert_allclose(rows[:, 3], 2.0)

    def test_invariance_result_output(self, tmp_path):
        """Test writing the hierarchy produced by the invariance check."""
        tria = make_locally_refined(1)
        a, b = make_handler(tria), make_handler(tria)
        result = run_invariance_check(a, b, {0: ZeroFunction(2)})

        paths = write_gnuplot_levels(a, result.levels_a, tmp_path, prefix="cycle0")

        assert len(paths) == a.n_levels
        rows = numeric_rows(paths[-1])
        assert len(rows) == tria.n_cells(a.max_level) * 9


class TestLevelPlots:
    """Test matplotlib level plots."""

    def test_plot_and_save(self, tmp_path):
        """Test one panel per level and saving to disk."""
        dof_handler = make_handler(make_locally_refined(1))
        levels = reinit_vector(dof_handler)
        for level in levels.levels():
            levels[level][:] = dof_handler.dof_components(level)
        save_path = tmp_path / "plots" / "levels.png"

        fig = plot_level_fields(dof_handler, levels, component=1, save_path=save_path)

        assert save_path.exists()
        # one panel per level plus the colorbar
        assert len(fig.axes) == dof_handler.n_levels + 1
        plt.close(fig)

    def test_invalid_arguments(self):
        """Test dimension and component validation."""
        cube = make_handler(make_square(1, dim=3), n_components=1)
        with pytest.raises(ValueError, match="2D"):
            plot_level_fields(cube, reinit_vector(cube))

        square = make_handler(make_square(1))
        with pytest.raises(ValueError, match="Component"):
            plot_level_fields(square, reinit_vector(square), component=2)
