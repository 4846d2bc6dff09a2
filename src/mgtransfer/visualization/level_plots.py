"""Plots of multilevel fields."""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from ..core.level_object import LevelVectors
from ..dofs.handler import DoFHandler

logger = logging.getLogger(__name__)


def plot_level_fields(
    dof_handler: DoFHandler,
    levels: LevelVectors,
    component: int = 0,
    title: str = "Level fields",
    save_path: Optional[Union[str, Path]] = None,
    show: bool = False
) -> plt.Figure:
    """
    One panel per level: the cells of the level and the dof values of one component.

    Only two-dimensional meshes can be drawn.

    Args:
        dof_handler: Handler whose level numbering ``levels`` uses
        levels: Level field to plot
        component: Vector component to color by
        title: Figure title
        save_path: Save the figure here if given
        show: Display the figure

    Returns:
        The created figure
    """
    tria = dof_handler.triangulation
    if tria.dim != 2:
        raise ValueError(f"Level plots need a 2D mesh, got dimension {tria.dim}")
    if not 0 <= component < dof_handler.fe.n_components:
        raise ValueError(f"Component {component} not in [0, {dof_handler.fe.n_components})")

    n_panels = len(levels)
    fig, axes = plt.subplots(1, n_panels, figsize=(3.5 * n_panels, 3.5), squeeze=False)
    vmin = min(float(v.min()) if v.size else 0.0 for v in levels)
    vmax = max(float(v.max()) if v.size else 0.0 for v in levels)

    scatter = None
    for ax, (level, values) in zip(axes[0], levels.items()):
        h = tria.cell_size(level)
        for cell in tria.cells(level):
            corner = tria.p1 + np.asarray(cell.origin) * h
            ax.add_patch(Rectangle(corner, h[0], h[1], fill=False,
                                   linewidth=0.5, edgecolor='gray' if cell.has_children else 'black'))

        points = dof_handler.support_points(level)
        selected = dof_handler.dof_components(level) == component
        scatter = ax.scatter(points[selected, 0], points[selected, 1], c=values[selected],
                             cmap='viridis', vmin=vmin, vmax=vmax, s=12, zorder=3)
        ax.set_xlim(tria.p1[0], tria.p2[0])
        ax.set_ylim(tria.p1[1], tria.p2[1])
        ax.set_aspect('equal')
        ax.set_title(f"Level {level}")

    if scatter is not None:
        fig.colorbar(scatter, ax=axes[0].tolist(), shrink=0.8, label=f"u{component}")
    fig.suptitle(title)

    if save_path:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Level plot saved to {save_path}")

    if show:
        plt.show()

    return fig
