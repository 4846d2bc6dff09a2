"""
Renumbering strategies for dof enumerations.

Every strategy computes ``new_numbers`` with ``new_numbers[old] = new`` for
the active space (``level=None``) or for one level. A strategy only permutes
indices; the number of dofs and the geometric meaning of every dof stay the
same.
"""

import logging
from typing import Callable, Dict, Optional, Sequence

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import reverse_cuthill_mckee

from ..exceptions import ConfigurationError
from .handler import DoFHandler

logger = logging.getLogger(__name__)


def _first_appearance(cell_dofs: np.ndarray, n_dofs: int) -> np.ndarray:
    """Position of the first occurrence of every dof in the flattened cell-to-dof map."""
    dofs, first = np.unique(cell_dofs.reshape(-1), return_index=True)
    if len(dofs) != n_dofs:
        raise RuntimeError(f"Cell-to-dof map covers {len(dofs)} of {n_dofs} dofs")
    return first


def _ranks(order: np.ndarray) -> np.ndarray:
    """Invert an ordering: the dof at ``order[k]`` gets the new number ``k``."""
    new_numbers = np.empty(len(order), dtype=np.int64)
    new_numbers[order] = np.arange(len(order))
    return new_numbers


def natural(dof_handler: DoFHandler, level: Optional[int] = None) -> np.ndarray:
    """Construction order: first appearance while walking the cells."""
    cell_dofs = dof_handler.cell_dofs(level)
    first = _first_appearance(cell_dofs, dof_handler.n_dofs(level))
    return _ranks(np.argsort(first, kind="stable"))


def component_wise(
    dof_handler: DoFHandler,
    level: Optional[int] = None,
    component_order: Optional[Sequence[int]] = None
) -> np.ndarray:
    """
    Sort dofs by vector component, keeping construction order inside a component.

    Args:
        dof_handler: Handler with distributed dofs
        level: Level to renumber, ``None`` for the active space
        component_order: Block of every component; components sharing a block
            are numbered together. Defaults to one block per component.
    """
    fe = dof_handler.fe
    components = dof_handler.dof_components(level)
    if component_order is not None:
        component_order = np.asarray(component_order, dtype=np.int64)
        if component_order.shape != (fe.n_components,):
            raise ConfigurationError(f"Component order has {component_order.size} entries, "
                                     f"element has {fe.n_components} components")
        components = component_order[components]

    first = _first_appearance(dof_handler.cell_dofs(level), dof_handler.n_dofs(level))
    return _ranks(np.lexsort((first, components)))


def coupling_graph(dof_handler: DoFHandler, level: Optional[int] = None) -> sp.csr_matrix:
    """Symmetric graph of dofs sharing a cell."""
    cell_dofs = dof_handler.cell_dofs(level)
    n = dof_handler.n_dofs(level)
    dofs_per_cell = cell_dofs.shape[1]
    rows = np.repeat(cell_dofs, dofs_per_cell, axis=1).reshape(-1)
    cols = np.tile(cell_dofs, (1, dofs_per_cell)).reshape(-1)
    graph = sp.coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n)).tocsr()
    graph.sum_duplicates()
    return graph


def cuthill_mckee(
    dof_handler: DoFHandler,
    level: Optional[int] = None,
    reverse: bool = False
) -> np.ndarray:
    """Bandwidth-reducing Cuthill-McKee ordering of the coupling graph."""
    order = reverse_cuthill_mckee(coupling_graph(dof_handler, level), symmetric_mode=True)
    if not reverse:
        order = order[::-1]
    return _ranks(np.asarray(order))


def random(dof_handler: DoFHandler, level: Optional[int] = None, seed: int = 0) -> np.ndarray:
    """Seeded random permutation."""
    rng = np.random.default_rng(seed)
    return rng.permutation(dof_handler.n_dofs(level)).astype(np.int64)


STRATEGIES: Dict[str, Callable[..., np.ndarray]] = {
    "natural": natural,
    "component_wise": component_wise,
    "cuthill_mckee": cuthill_mckee,
    "random": random,
}


def compute_renumbering(
    dof_handler: DoFHandler,
    strategy: str,
    level: Optional[int] = None,
    **kwargs
) -> np.ndarray:
    """Compute new numbers with a named strategy without applying them."""
    if strategy not in STRATEGIES:
        raise ConfigurationError(f"Unknown renumbering strategy: {strategy}. "
                                 f"Available: {sorted(STRATEGIES)}")
    return STRATEGIES[strategy](dof_handler, level, **kwargs)


def renumber(
    dof_handler: DoFHandler,
    strategy: str,
    level: Optional[int] = None,
    **kwargs
) -> np.ndarray:
    """
    Renumber the active space or one level in place.

    Args:
        dof_handler: Handler with distributed dofs
        strategy: Name of a strategy in ``STRATEGIES``
        level: Level to renumber, ``None`` for the active space
        **kwargs: Strategy options

    Returns:
        The applied new numbers
    """
    new_numbers = compute_renumbering(dof_handler, strategy, level, **kwargs)
    dof_handler.renumber_dofs(new_numbers, level)
    logger.debug(f"Applied {strategy} renumbering to "
                 f"{'active space' if level is None else f'level {level}'}")
    return new_numbers


def renumber_all_levels(dof_handler: DoFHandler, strategy: str, **kwargs) -> None:
    """Renumber the active space and every level with the same strategy."""
    renumber(dof_handler, strategy, None, **kwargs)
    for level in range(dof_handler.n_levels):
        renumber(dof_handler, strategy, level, **kwargs)
    logger.info(f"Renumbered active space and {dof_handler.n_levels} levels: {strategy}")
