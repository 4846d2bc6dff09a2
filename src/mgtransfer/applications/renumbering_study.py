"""
Renumbering-invariance study on a locally refined mesh.

Each cycle refines the mesh around the origin, distributes a vector element
twice, renumbers the second enumeration and checks that boundary
constraints, transfer matrices and ``copy_to_hierarchy`` give the same level
fields cell by cell.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from ..boundary_conditions.boundary_list import ZeroFunction
from ..config.settings import StudyConfig
from ..core.finite_element import LagrangeElement
from ..core.triangulation import Triangulation
from ..dofs.handler import DoFHandler
from ..dofs.renumbering import renumber_all_levels
from ..utils.logging_utils import Reporter
from ..validation.consistency import InvarianceResult, run_invariance_check

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one refinement cycle."""
    cycle: int
    n_levels: int
    n_active_dofs: int
    level_dofs: List[int]
    passed: bool
    n_violations: int
    max_difference: float
    level_norms: Dict[int, float] = field(default_factory=dict)
    output_files: List[Path] = field(default_factory=list)


class RenumberingStudy:
    """
    Driver comparing a natural and a renumbered enumeration over refinement cycles.

    Cycle 0 builds the box and refines it globally; every cycle then refines
    locally, sets up both enumerations and runs the invariance check.
    """

    def __init__(self, config: Optional[StudyConfig] = None, reporter: Optional[Reporter] = None):
        """
        Initialize the study.

        Args:
            config: Study configuration; the default scenario if omitted
            reporter: Sink for the per-cycle report; a reporter without sinks if omitted
        """
        self.config = config if config is not None else StudyConfig()
        self.config.validate()
        self.reporter = reporter if reporter is not None else Reporter()

        mesh = self.config.mesh
        self.triangulation = Triangulation(
            dim=mesh.dim,
            limit_level_difference_at_vertices=mesh.limit_level_difference_at_vertices
        )
        self.fe = LagrangeElement(mesh.dim, self.config.element.degree,
                                  self.config.element.n_components)
        self.boundary_spec = {
            boundary_id: ZeroFunction(self.fe.n_components)
            for boundary_id in self.config.boundary.constrained_ids
        }

        self.dof_handler: Optional[DoFHandler] = None
        self.dof_handler_renumbered: Optional[DoFHandler] = None
        self.results: List[CycleResult] = []

        logger.info(f"RenumberingStudy initialized: {self.config}")

    def make_grid(self) -> None:
        mesh = self.config.mesh
        self.triangulation.hyper_cube(mesh.left, mesh.right, colorize=mesh.colorize)
        self.triangulation.refine_global(mesh.initial_refinements)

    def refine_local(self) -> int:
        """
        Flag active cells with a vertex closer to the origin than the radius.

        The whole mesh is refined when no cell is close enough.

        Returns:
            Number of flagged cells
        """
        tria = self.triangulation
        radius = self.config.refinement.radius
        n_flagged = 0
        for cell in tria.active_cells():
            if np.any(np.linalg.norm(tria.vertices(cell), axis=1) < radius):
                tria.set_refine_flag(cell)
                n_flagged += 1

        if n_flagged == 0:
            logger.debug("No cell near the origin, refining globally")
            for cell in tria.active_cells():
                tria.set_refine_flag(cell)
            n_flagged = tria.n_active_cells

        tria.execute_coarsening_and_refinement()
        return n_flagged

    def setup_system(self) -> None:
        """Distribute dofs twice and renumber the second enumeration."""
        self.dof_handler = DoFHandler(self.triangulation)
        self.dof_handler.distribute_dofs(self.fe)

        self.dof_handler_renumbered = DoFHandler(self.triangulation)
        self.dof_handler_renumbered.distribute_dofs(self.fe)
        renumbering = self.config.renumbering
        renumber_all_levels(self.dof_handler_renumbered, renumbering.strategy,
                            **renumbering.strategy_options())

        level_counts = "   ".join(
            f"L{level}: {self.dof_handler.n_dofs(level)}"
            for level in range(self.dof_handler.n_levels)
        )
        self.reporter.info(f"Number of degrees of freedom: {self.dof_handler.n_dofs()}   {level_counts}")

    def test(self) -> InvarianceResult:
        """Run the invariance check on both enumerations."""
        if self.dof_handler is None or self.dof_handler_renumbered is None:
            raise RuntimeError("setup_system() must be called before test()")

        return run_invariance_check(
            self.dof_handler,
            self.dof_handler_renumbered,
            self.boundary_spec,
            reporter=self.reporter,
            component_mask=self.config.boundary.component_mask,
        )

    def write_output(self, cycle: int, result: InvarianceResult) -> List[Path]:
        """
        Write the level fields of the reference enumeration and their cell-wise
        difference to the renumbered enumeration.

        Gnuplot files are named ``cycle<N>-<level>.gpl`` for the field and
        ``cycle<N>-diff-<level>.gpl`` for the difference, which is zero everywhere
        when the cycle passes.
        """
        output = self.config.output
        directory = Path(output.directory)
        paths = []
        if output.gnuplot:
            from ..visualization.gnuplot_output import write_gnuplot_levels
            paths.extend(write_gnuplot_levels(
                self.dof_handler, result.levels_a, directory, prefix=f"cycle{cycle}"
            ))
            paths.extend(write_gnuplot_levels(
                self.dof_handler, result.differences, directory, prefix=f"cycle{cycle}-diff"
            ))
        if output.plots and self.triangulation.dim == 2:
            import matplotlib.pyplot as plt
            from ..visualization.level_plots import plot_level_fields
            path = directory / f"cycle{cycle}-levels.png"
            fig = plot_level_fields(self.dof_handler, result.levels_a,
                                    title=f"Cycle {cycle}", save_path=path)
            plt.close(fig)
            paths.append(path)
        elif output.plots:
            logger.warning(f"Skipping level plots for a {self.triangulation.dim}D mesh")
        return paths

    def run_cycle(self, cycle: int) -> CycleResult:
        self.reporter.info(f"Cycle {cycle}")
        if cycle == 0:
            self.make_grid()
        self.refine_local()
        self.setup_system()
        result = self.test()

        output_files = []
        if self.config.output.gnuplot or self.config.output.plots:
            output_files = self.write_output(cycle, result)

        report = result.report
        cycle_result = CycleResult(
            cycle=cycle,
            n_levels=self.dof_handler.n_levels,
            n_active_dofs=self.dof_handler.n_dofs(),
            level_dofs=[self.dof_handler.n_dofs(l) for l in range(self.dof_handler.n_levels)],
            passed=report.passed,
            n_violations=len(report.violations),
            max_difference=report.max_difference(),
            level_norms={c.level: c.norm_a for c in report.levels},
            output_files=output_files,
        )

        if cycle_result.passed:
            logger.info(f"Cycle {cycle} passed on {cycle_result.n_levels} levels")
        else:
            logger.warning(f"Cycle {cycle} failed: {cycle_result.n_violations} violations, "
                           f"max difference {cycle_result.max_difference:.4g}")
        return cycle_result

    def run(self) -> List[CycleResult]:
        """Run all refinement cycles."""
        self.results = [self.run_cycle(cycle) for cycle in range(self.config.refinement.cycles)]
        n_passed = sum(r.passed for r in self.results)
        logger.info(f"Study finished: {n_passed}/{len(self.results)} cycles passed")
        return self.results

    @property
    def passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)
