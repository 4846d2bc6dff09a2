"""Command line entry point: ``mgtransfer-check``."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .applications.renumbering_study import RenumberingStudy
from .config.settings import StudyConfig
from .dofs.renumbering import STRATEGIES
from .exceptions import TransferError
from .utils.logging_utils import Reporter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mgtransfer-check',
        description='Check that multigrid transfer results do not depend on the dof numbering'
    )
    parser.add_argument('--config', type=Path,
                        help='YAML or JSON configuration file')
    parser.add_argument('--cycles', type=int,
                        help='Number of refinement cycles')
    parser.add_argument('--strategy', choices=sorted(STRATEGIES),
                        help='Renumbering applied to the second enumeration')
    parser.add_argument('--output-dir',
                        help='Directory for gnuplot output; enables it')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level')
    parser.add_argument('--log-file',
                        help='Write the report to this file as well')
    parser.add_argument('--plots', action='store_true',
                        help='Save a PNG of the level fields of every cycle')
    return parser


def load_config(args: argparse.Namespace) -> StudyConfig:
    """Configuration file (or defaults) overridden by command line options."""
    config = StudyConfig.from_file(args.config) if args.config else StudyConfig()

    if args.cycles is not None:
        config.refinement.cycles = args.cycles
    if args.strategy is not None:
        config.renumbering.strategy = args.strategy
    if args.output_dir is not None:
        config.output.directory = args.output_dir
        config.output.gnuplot = True
    if args.plots:
        config.output.plots = True
    if args.log_level is not None:
        config.logging.level = args.log_level

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the renumbering study.

    Returns:
        0 if every cycle passed, 1 if a cycle failed or the setup was invalid
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (TransferError, OSError) as e:
        print(f"mgtransfer-check: {e}", file=sys.stderr)
        return 1

    config.setup_logging()

    with Reporter(stream=sys.stdout, log_file=args.log_file) as reporter:
        try:
            results = RenumberingStudy(config, reporter).run()
        except TransferError as e:
            logger.error(f"Study aborted: {e}")
            return 1

        for result in results:
            status = "PASSED" if result.passed else "FAILED"
            reporter.info(f"Cycle {result.cycle}: {status} "
                          f"({result.n_levels} levels, {result.n_active_dofs} active dofs)")

    return 0 if all(r.passed for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
