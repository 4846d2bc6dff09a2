"""Unit tests for prebuilt transfer matrices."""

import numpy as np
import pytest
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from mgtransfer.boundary_conditions.boundary_list import (
    ZeroFunction, extract_active_boundary_indices, extract_boundary_indices
)
from mgtransfer.core.level_object import LevelVectors
from mgtransfer.dofs.renumbering import renumber
from mgtransfer.operators.base import BaseTransfer
from mgtransfer.operators.transfer import PrebuiltTransfer
from tests import TEST_CONFIG, make_square, make_locally_refined, make_handler


def linear(points):
    return 1.0 + 2.0 * points[:, 0] - 3.0 * points[:, 1]


class TestBuildMatrices:
    """Test matrix construction."""

    def test_scalar_q1_shape(self):
        """Test shape and sparsity of the scalar Q1 prolongation."""
        dof_handler = make_handler(make_square(1), n_components=1)
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        assert isinstance(transfer, BaseTransfer)
        assert transfer.n_levels == 2
        matrix = transfer.matrices[0]
        assert matrix.shape == (9, 4)
        assert matrix.nnz == 16

    def test_values_are_set_not_summed(self):
        """Test that entries shared by several children are not accumulated."""
        dof_handler = make_handler(make_square(1), n_components=1)
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        np.testing.assert_allclose(transfer.matrices[0].toarray().sum(axis=1), 1.0)
        assert transfer.matrices[0].max() == 1.0

    def test_fully_constrained(self):
        """Test that constraining every coarse dof empties the matrix."""
        dof_handler = make_handler(make_square(1), n_components=1)
        boundary = extract_boundary_indices(dof_handler, {0: ZeroFunction(1)})
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler, boundary)

        assert transfer.matrices[0].nnz == 0

    def test_constrained_rows_and_columns(self):
        """Test that boundary rows and columns are empty."""
        dof_handler = make_handler(make_locally_refined(1))
        boundary = extract_boundary_indices(dof_handler, {0: ZeroFunction(2)})
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler, boundary)

        for level, matrix in enumerate(transfer.matrices):
            assert matrix.nnz > 0 or level == 0
            if boundary[level + 1]:
                assert matrix[sorted(boundary[level + 1])].nnz == 0
            if boundary[level]:
                assert matrix[:, sorted(boundary[level])].nnz == 0

    def test_rebuild_is_idempotent(self):
        """Test that building twice gives identical matrices."""
        dof_handler = make_handler(make_locally_refined(1))
        boundary = extract_boundary_indices(dof_handler, {0: ZeroFunction(2)})
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler, boundary)
        first = [m.copy() for m in transfer.matrices]

        transfer.build_matrices(dof_handler, boundary)
        for a, b in zip(first, transfer.matrices):
            assert (a != b).nnz == 0

    def test_boundary_level_count(self):
        """Test validation of the number of boundary sets."""
        dof_handler = make_handler(make_square(1))

        with pytest.raises(ValueError, match="levels"):
            PrebuiltTransfer().build_matrices(dof_handler, [set()])


class TestProlongation:
    """Test prolongation and restriction."""

    @pytest.mark.parametrize("degree", [1, 2])
    def test_reproduces_linear_functions(self, degree):
        """Test exact prolongation of a linear function."""
        dof_handler = make_handler(make_locally_refined(1), degree=degree, n_components=1)
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        for level in range(1, dof_handler.n_levels):
            coarse = linear(dof_handler.support_points(level - 1))
            fine = transfer.prolongate(level, coarse)
            np.testing.assert_allclose(fine, linear(dof_handler.support_points(level)),
                                       atol=TEST_CONFIG['tolerance'])

    def test_restrict_and_add_is_transpose(self):
        """Test that restriction is the transpose of prolongation."""
        dof_handler = make_handler(make_square(2))
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)
        rng = np.random.default_rng(0)

        src = rng.standard_normal(dof_handler.n_dofs(2))
        dst = np.ones(dof_handler.n_dofs(1))
        transfer.restrict_and_add(2, dst, src)

        np.testing.assert_allclose(dst, 1.0 + transfer.matrices[1].T @ src)

    def test_invalid_levels_and_sizes(self):
        """Test level and size validation."""
        dof_handler = make_handler(make_square(1))
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        with pytest.raises(ValueError, match="Fine level"):
            transfer.prolongate(0, np.zeros(8))

        with pytest.raises(ValueError, match="does not fit"):
            transfer.prolongate(1, np.zeros(3))

        with pytest.raises(ValueError, match="do not fit"):
            transfer.restrict_and_add(1, np.zeros(8), np.zeros(3))


class TestHierarchy:
    """Test copying between the active space and the levels."""

    def test_constant_field_uniform_mesh(self):
        """Test copy_to_hierarchy without constraints on a uniform mesh."""
        dof_handler = make_handler(make_square(1), n_components=1)
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        levels = transfer.copy_to_hierarchy(dof_handler, np.ones(dof_handler.n_dofs()))

        assert isinstance(levels, LevelVectors)
        assert len(levels) == 2
        # level 0 has no active cells
        np.testing.assert_array_equal(levels[0], 0.0)
        np.testing.assert_array_equal(levels[1], 1.0)

    def test_locally_refined_levels(self):
        """Test that every level holds the active values of its active cells."""
        dof_handler = make_handler(make_locally_refined(1), n_components=1)
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)
        src = linear(dof_handler.support_points())

        levels = transfer.copy_to_hierarchy(dof_handler, src)

        for level in levels.levels():
            pairs = dof_handler.copy_indices(level)
            np.testing.assert_array_equal(levels[level][pairs[:, 1]], src[pairs[:, 0]])

        # all cells of the finest level are active
        finest = dof_handler.max_level
        np.testing.assert_allclose(levels[finest], linear(dof_handler.support_points(finest)),
                                   atol=TEST_CONFIG['tolerance'])

    def test_boundary_dofs_are_zero(self):
        """Test that constrained dofs are zero on every level."""
        dof_handler = make_handler(make_locally_refined(2))
        boundary = extract_boundary_indices(dof_handler, {0: ZeroFunction(2)})
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler, boundary)

        levels = transfer.copy_to_hierarchy(dof_handler, np.full(dof_handler.n_dofs(), 5.0))

        for level in levels.levels():
            if boundary[level]:
                np.testing.assert_array_equal(levels[level][sorted(boundary[level])], 0.0)

    def test_round_trip(self):
        """Test that copy_from_hierarchy inverts copy_to_hierarchy off the boundary."""
        dof_handler = make_handler(make_locally_refined(2))
        spec = {0: ZeroFunction(2)}
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler, extract_boundary_indices(dof_handler, spec))
        src = np.random.default_rng(1).standard_normal(dof_handler.n_dofs())
        src_copy = src.copy()

        result = transfer.copy_from_hierarchy(dof_handler, transfer.copy_to_hierarchy(dof_handler, src))

        expected = src.copy()
        expected[sorted(extract_active_boundary_indices(dof_handler, spec))] = 0.0
        np.testing.assert_array_equal(result, expected)
        np.testing.assert_array_equal(src, src_copy)

    def test_stale_numbering(self):
        """Test that matrices must be rebuilt after renumbering."""
        dof_handler = make_handler(make_square(1))
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)
        renumber(dof_handler, "random", level=1)

        with pytest.raises(RuntimeError, match="different enumeration"):
            transfer.copy_to_hierarchy(dof_handler, np.zeros(dof_handler.n_dofs()))

    def test_not_built(self):
        """Test use before build_matrices."""
        dof_handler = make_handler(make_square(1))

        with pytest.raises(RuntimeError, match="build_matrices"):
            PrebuiltTransfer().copy_to_hierarchy(dof_handler, np.zeros(dof_handler.n_dofs()))

    def test_source_size(self):
        """Test source vector validation."""
        dof_handler = make_handler(make_square(1))
        transfer = PrebuiltTransfer()
        transfer.build_matrices(dof_handler)

        with pytest.raises(ValueError, match="active dofs"):
            transfer.copy_to_hierarchy(dof_handler, np.zeros(3))

    def test_renumbered_matrices_are_permuted(self):
        """Test that renumbering permutes matrix rows and columns."""
        reference = make_handler(make_square(2))
        renumbered = make_handler(reference.triangulation)
        new_numbers = [None] * 3
        renumber(renumbered, "random", seed=2)
        for level in range(3):
            new_numbers[level] = renumber(renumbered, "random", level=level, seed=level)

        transfer_a = PrebuiltTransfer()
        transfer_a.build_matrices(reference)
        transfer_b = PrebuiltTransfer()
        transfer_b.build_matrices(renumbered)

        for level in range(2):
            a = transfer_a.matrices[level].toarray()
            b = transfer_b.matrices[level].toarray()
            np.testing.assert_array_equal(b[np.ix_(new_numbers[level + 1], new_numbers[level])], a)
