"""Unit tests for renumbering strategies."""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from mgtransfer.dofs.renumbering import (
    STRATEGIES, component_wise, compute_renumbering, coupling_graph, cuthill_mckee,
    natural, random, renumber, renumber_all_levels
)
from mgtransfer.exceptions import ConfigurationError
from tests import TEST_CONFIG, make_square, make_locally_refined, make_handler


def sorted_keys(keys):
    return keys[np.lexsort(keys.T[::-1])]


class TestStrategies:
    """Test individual strategies."""

    def test_natural_is_identity_after_distribution(self):
        """Test that natural order reproduces the initial enumeration."""
        dof_handler = make_handler(make_locally_refined(1))

        for level in range(dof_handler.n_levels):
            np.testing.assert_array_equal(natural(dof_handler, level),
                                          np.arange(dof_handler.n_dofs(level)))
        np.testing.assert_array_equal(natural(dof_handler), np.arange(dof_handler.n_dofs()))

    def test_component_wise(self):
        """Test grouping dofs by component."""
        dof_handler = make_handler(make_square(1))
        renumber(dof_handler, "component_wise", level=0)

        np.testing.assert_array_equal(dof_handler.dof_components(0), [0, 0, 0, 0, 1, 1, 1, 1])

    def test_component_wise_keeps_construction_order(self):
        """Test that dofs of one component stay in first-appearance order."""
        dof_handler = make_handler(make_square(1))
        new_numbers = component_wise(dof_handler, level=1)

        np.testing.assert_array_equal(new_numbers[0::2], np.arange(9))
        np.testing.assert_array_equal(new_numbers[1::2], np.arange(9, 18))

    def test_component_order(self):
        """Test a custom block order."""
        dof_handler = make_handler(make_square(1))
        renumber(dof_handler, "component_wise", level=0, component_order=[1, 0])

        np.testing.assert_array_equal(dof_handler.dof_components(0), [1, 1, 1, 1, 0, 0, 0, 0])

    def test_component_order_length(self):
        """Test rejection of a block order of the wrong length."""
        dof_handler = make_handler(make_square(1))

        with pytest.raises(ConfigurationError, match="Component order"):
            component_wise(dof_handler, level=0, component_order=[0, 1, 2])

    def test_cuthill_mckee_reverse(self):
        """Test that the reverse flag reverses the ordering."""
        dof_handler = make_handler(make_square(2))
        n = dof_handler.n_dofs(2)

        forward = cuthill_mckee(dof_handler, 2)
        backward = cuthill_mckee(dof_handler, 2, reverse=True)
        np.testing.assert_array_equal(backward, n - 1 - forward)

    def test_random_is_seeded(self):
        """Test reproducibility of random permutations."""
        dof_handler = make_handler(make_square(2))

        np.testing.assert_array_equal(random(dof_handler, 2, seed=3), random(dof_handler, 2, seed=3))
        assert not np.array_equal(random(dof_handler, 2, seed=3), random(dof_handler, 2, seed=4))

    def test_coupling_graph(self):
        """Test the dof coupling graph."""
        dof_handler = make_handler(make_square(1), n_components=1)
        graph = coupling_graph(dof_handler, 1)

        assert graph.shape == (9, 9)
        assert (graph != graph.T).nnz == 0
        # the center couples with every dof
        center = dof_handler.level_cell_dofs(1)[0][3]
        assert graph[center].nnz == 9


class TestRenumber:
    """Test applying strategies."""

    @pytest.mark.parametrize("strategy", TEST_CONFIG['strategies'])
    def test_strategies_are_permutations(self, strategy):
        """Test that every strategy keeps bijection and geometric keys."""
        dof_handler = make_handler(make_locally_refined(1))
        keys_before = [sorted_keys(dof_handler.dof_keys(l)) for l in range(dof_handler.n_levels)]
        active_before = sorted_keys(dof_handler.dof_keys())

        renumber_all_levels(dof_handler, strategy)

        for level in range(dof_handler.n_levels):
            np.testing.assert_array_equal(np.unique(dof_handler.level_cell_dofs(level)),
                                          np.arange(dof_handler.n_dofs(level)))
            np.testing.assert_array_equal(sorted_keys(dof_handler.dof_keys(level)), keys_before[level])
        np.testing.assert_array_equal(sorted_keys(dof_handler.dof_keys()), active_before)

    def test_renumber_returns_applied_numbers(self):
        """Test that the applied numbers are returned."""
        dof_handler = make_handler(make_square(1))
        old = dof_handler.level_cell_dofs(1).copy()

        new_numbers = renumber(dof_handler, "random", level=1, seed=7)

        np.testing.assert_array_equal(dof_handler.level_cell_dofs(1), new_numbers[old])

    def test_renumber_all_levels_version(self):
        """Test that every level and the active space are renumbered."""
        dof_handler = make_handler(make_square(2))
        version = dof_handler.numbering_version

        renumber_all_levels(dof_handler, "cuthill_mckee", reverse=True)

        assert dof_handler.numbering_version == version + dof_handler.n_levels + 1

    def test_compute_does_not_apply(self):
        """Test that computing new numbers leaves the handler untouched."""
        dof_handler = make_handler(make_square(1))
        version = dof_handler.numbering_version

        compute_renumbering(dof_handler, "random", level=1)

        assert dof_handler.numbering_version == version

    def test_unknown_strategy(self):
        """Test rejection of unknown strategies."""
        dof_handler = make_handler(make_square(1))

        with pytest.raises(ConfigurationError, match="Unknown renumbering strategy"):
            renumber(dof_handler, "alphabetical")

    def test_strategy_registry(self):
        """Test the names of the registered strategies."""
        assert sorted(STRATEGIES) == sorted(TEST_CONFIG['strategies'])
