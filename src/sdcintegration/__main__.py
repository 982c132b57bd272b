"""
Command-line interface.

Usage:
    $ python -m sdcintegration num_nodes=4 dt=0.25 tend=1.0
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from sdcintegration.config import RunConfiguration
from sdcintegration.exceptions import ConfigurationError, SweepFailure
from sdcintegration.logging_config import setup_logging
from sdcintegration.sdc.reporting import ResultSink
from sdcintegration.vanilla import run_vanilla_sdc

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sdcintegration",
        description="Advection-diffusion with vanilla IMEX SDC.",
    )
    parser.add_argument(
        "overrides", nargs="*", metavar="key=value",
        help="Configuration overrides, e.g. num_nodes=4 quadrature=gauss-radau dt=0.25",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Also write the log to this file.")
    parser.add_argument("--no-output", action="store_true", help="Do not append result records.")
    parser.add_argument("--history", default=None, metavar="FILE.h5",
                        help="Save the per-step history to this HDF5 file in the output directory.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    try:
        config = RunConfiguration.from_overrides(args.overrides)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    sink = None if args.no_output else ResultSink(config.output_dir)

    try:
        report = run_vanilla_sdc(config, sink=sink)
    except SweepFailure as e:
        logger.error(f"Run failed ({type(e).__name__}): {e}")
        return 1

    if sink is not None and args.history and report.result is not None:
        sink.write_history(args.history, report.result, config)

    print(f"error {report.error}")
    if report.non_convergent_steps:
        print(f"non-convergent steps {report.non_convergent_steps}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
