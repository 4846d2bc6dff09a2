"""
Test Suite for mgtransfer

Unit tests cover the mesh hierarchy, elements, dof enumeration, renumbering,
boundary extraction, transfer matrices, validation, configuration, logging
and output. Integration tests run the refinement-cycle study end to end.

Test Categories:
    - Unit tests: Individual component testing
    - Integration tests: Renumbering invariance over refinement cycles
"""

import numpy as np
import sys
from pathlib import Path

# Add src directory to path for imports
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
sys.path.insert(0, str(src_dir))

from mgtransfer.core.finite_element import LagrangeElement
from mgtransfer.core.triangulation import Triangulation
from mgtransfer.dofs.handler import DoFHandler

# Test configuration
TEST_CONFIG = {
    'tolerance': 1e-12,
    'radius': 0.25 / np.pi,
    'strategies': ['natural', 'component_wise', 'cuthill_mckee', 'random'],
    'quick_cycles': 3,
}


# Test data generators
def make_square(n_refinements=1, dim=2, colorize=False, limit_level_difference=True):
    """Create [-1, 1]^dim refined globally ``n_refinements`` times."""
    tria = Triangulation(dim=dim, limit_level_difference_at_vertices=limit_level_difference)
    tria.hyper_cube(-1.0, 1.0, colorize=colorize)
    tria.refine_global(n_refinements)
    return tria


def refine_around_origin(tria, radius=TEST_CONFIG['radius'], times=1):
    """Refine the active cells having a vertex within ``radius`` of the origin."""
    for _ in range(times):
        for cell in tria.active_cells():
            if np.any(np.linalg.norm(tria.vertices(cell), axis=1) < radius):
                tria.set_refine_flag(cell)
        tria.execute_coarsening_and_refinement()
    return tria


def make_locally_refined(n_local=2, dim=2):
    """Square refined once globally, then ``n_local + 1`` times around the origin."""
    tria = make_square(1, dim=dim)
    return refine_around_origin(tria, times=n_local + 1)


def make_handler(tria, degree=1, n_components=2):
    """Distribute a Lagrange element on ``tria``."""
    dof_handler = DoFHandler(tria)
    dof_handler.distribute_dofs(LagrangeElement(tria.dim, degree, n_components))
    return dof_handler


__all__ = ['TEST_CONFIG', 'make_square', 'refine_around_origin',
           'make_locally_refined', 'make_handler']
