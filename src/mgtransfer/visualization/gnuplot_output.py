"""Per-level gnuplot output of multilevel fields."""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np

from ..core.level_object import LevelVectors
from ..core.triangulation import Cell
from ..dofs.handler import DoFHandler

logger = logging.getLogger(__name__)

CellWorker = Callable[[Cell, np.ndarray], None]


def loop_level(dof_handler: DoFHandler, level: int, worker: CellWorker) -> None:
    """Call ``worker(cell, level_dof_indices)`` for every cell on a level."""
    cell_dofs = dof_handler.level_cell_dofs(level)
    for cell in dof_handler.triangulation.cells(level):
        worker(cell, cell_dofs[cell.index])


def trapezoidal_points(dim: int, n_subdivisions: int) -> np.ndarray:
    """Iterated trapezoidal points on the unit cell, x running fastest."""
    ticks = np.linspace(0.0, 1.0, n_subdivisions + 1)
    grids = np.meshgrid(*([ticks] * dim), indexing='ij')
    return np.stack([g.reshape(-1, order='F') for g in grids], axis=1)


def write_gnuplot_levels(
    dof_handler: DoFHandler,
    levels: LevelVectors,
    directory: Union[str, Path],
    prefix: str = "mg",
    n_subdivisions: Optional[int] = None
) -> List[Path]:
    """
    Write one gnuplot patch file per level.

    Every cell is sampled on an iterated trapezoidal grid. Each row holds the
    point coordinates followed by the value of every component; rows of a
    patch are separated by blank lines, as are cells.

    Args:
        dof_handler: Handler whose level numbering ``levels`` uses
        levels: Level field to write
        directory: Output directory, created if missing
        prefix: File name prefix; files are named ``<prefix>-<level>.gpl``
        n_subdivisions: Samples per direction minus one; ``degree + 1`` by default

    Returns:
        Paths of the written files
    """
    fe = dof_handler.fe
    tria = dof_handler.triangulation
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    if n_subdivisions is None:
        n_subdivisions = fe.degree + 1

    unit_points = trapezoidal_points(fe.dim, n_subdivisions)
    shape = fe.shape_values(unit_points)
    row_length = n_subdivisions + 1

    paths = []
    for level in levels.levels():
        values = levels[level]
        path = directory / f"{prefix}-{level}.gpl"
        with open(path, 'w') as f:
            columns = [f"<x{d}>" for d in range(fe.dim)] + [f"<u{c}>" for c in range(fe.n_components)]
            f.write("# " + " ".join(columns) + "\n")

            def write_cell(cell: Cell, dof_indices: np.ndarray) -> None:
                points = tria.p1 + (np.asarray(cell.origin) + unit_points) * tria.cell_size(cell.level)
                local = values[dof_indices]
                fields = np.stack([
                    shape[:, fe.component_map == c] @ local[fe.component_map == c]
                    for c in range(fe.n_components)
                ], axis=1)
                for k, (point, field) in enumerate(zip(points, fields)):
                    f.write(" ".join(f"{x:g}" for x in np.concatenate([point, field])) + "\n")
                    if (k + 1) % row_length == 0:
                        f.write("\n")
                f.write("\n")

            loop_level(dof_handler, level, write_cell)
        paths.append(path)
        logger.debug(f"Wrote level {level} to {path}")

    logger.info(f"Wrote {len(paths)} gnuplot files to {directory}")
    return paths
