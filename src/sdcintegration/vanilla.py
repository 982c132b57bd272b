"""
Vanilla SDC Run
===============
Advection-diffusion with a single-level IMEX SDC controller.

Why is this file needed?
------------------------
It wires the pieces of one run together: spatial problem, quadrature,
vector factory, sweeper, level and controller. It seeds the exact solution
at t0, runs, measures the error at tend and hands the error record to the
result sink.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sdcintegration.config import RunConfiguration
from sdcintegration.problems.advection_diffusion import AdvectionDiffusionProblem
from sdcintegration.sdc.controller import Level, SDCController
from sdcintegration.sdc.reporting import ErrorReport, ResultSink, evaluate_error

logger = logging.getLogger(__name__)


def run_vanilla_sdc(config: RunConfiguration | None = None, sink: Optional[ResultSink] = None) -> ErrorReport:
    """
    Run advection-diffusion with vanilla SDC and report the final error.

    Args:
        config: Run configuration (defaults when omitted).
        sink: Where to append the error and iteration records, nothing is written when omitted.

    Raises:
        ConfigurationError: On invalid setup, before any step is taken.
        SweepFailure: If an implicit solve fails during the run.

    Returns:
        Error at tend together with the iteration counts of all steps.
    """
    config = config if config is not None else RunConfiguration()

    logger.info(f"nodes {config.num_nodes}, {config.quadrature.value}, elements {config.num_elements}, "
                f"dt {config.dt}, tend {config.tend}")

    problem = AdvectionDiffusionProblem(
        num_elements=config.num_elements,
        velocity=config.velocity,
        viscosity=config.viscosity,
        wavenumber=config.wavenumber,
    )
    level = Level.create(problem, num_nodes=config.num_nodes, quadrature_type=config.quadrature)
    controller = SDCController(level=level, config=config)

    initial_state = problem.exact_solution(config.t0)
    result = controller.run(initial_state, exact=problem.exact_solution)

    error = evaluate_error(problem.exact_solution, result.end_state, result.end_time)
    logger.info(f"error {error:.6e} after {result.number_of_steps} step(s), "
                f"{result.non_convergent_steps} non-convergent")

    if sink is not None:
        sink.append_error(config.num_elements, config.dt, error)
        sink.append_iterations(config.num_elements, config.dt, result.iterations_per_step)

    return ErrorReport(
        error=error,
        num_elements=config.num_elements,
        num_nodes=config.num_nodes,
        dt=config.dt,
        iterations_per_step=result.iterations_per_step,
        non_convergent_steps=result.non_convergent_steps,
        step_errors=result.step_errors,
        result=result,
    )


def run_convergence_study(
    config: RunConfiguration,
    dts: Iterable[float],
    sink: Optional[ResultSink] = None,
) -> list[ErrorReport]:
    """
    Repeat the run for several step widths.

    Args:
        config: Base configuration, its dt is replaced by each entry of `dts`.
        dts: Step widths to run.
        sink: Optional result sink, receives one error record per run.

    Returns:
        One report per step width, in the given order.
    """
    reports = []
    for dt in dts:
        reports.append(run_vanilla_sdc(config.replace(dt=dt), sink=sink))
    return reports
