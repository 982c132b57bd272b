"""
SDC Step Controller
===================
Drives a single-level SDC run over the configured duration.

Every step goes through the states

    SEEDED -> PREDICTING -> SWEEPING -> CONVERGED | MAX_ITER_REACHED

and hands its end state to the next step as initial condition. A step that
reaches the iteration cap is reported and the run continues with the state
reached. A SweepFailure aborts the run.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from sdcintegration.config import QuadratureType
from sdcintegration.exceptions import ConfigurationError, SweepFailure
from sdcintegration.sdc.encap import VectorFactory
from sdcintegration.sdc.quadrature import quadrature_factory
from sdcintegration.sdc.reporting import evaluate_error
from sdcintegration.sdc.sweeper import IMEXSweeper

if TYPE_CHECKING:
    import numpy.typing as npt

    from sdcintegration.config import RunConfiguration
    from sdcintegration.problems.base import SpatialProblem
    from sdcintegration.sdc.encap import StateVector

logger = logging.getLogger(__name__)

# Remainders below this fraction of dt are treated as round-off
STEP_EPSILON = 1e-10


class StepStatus(StrEnum):
    SEEDED = "seeded"
    PREDICTING = "predicting"
    SWEEPING = "sweeping"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max-iter-reached"


@dataclass
class Level:
    """Node count, quadrature family, vector factory and sweeper of the single SDC level."""
    num_nodes: int
    quadrature_type: QuadratureType
    factory: VectorFactory
    sweeper: IMEXSweeper

    @classmethod
    def create(cls, problem: SpatialProblem, num_nodes: int, quadrature_type: QuadratureType | str) -> Level:
        """
        Build quadrature, factory and IMEX sweeper for a problem.

        Raises:
            ConfigurationError: If the node count is invalid for the family.
        """
        quadrature = quadrature_factory(num_nodes, quadrature_type)
        factory = VectorFactory(problem.degrees_of_freedom_count())
        sweeper = IMEXSweeper(problem=problem, quadrature=quadrature, factory=factory)
        return cls(
            num_nodes=num_nodes,
            quadrature_type=quadrature.quadrature_type,
            factory=factory,
            sweeper=sweeper,
        )


@dataclass
class Step:
    index: int
    time: float
    dt: float
    iteration: int = 0
    status: StepStatus = StepStatus.SEEDED
    # Max node residual after each correction sweep
    residuals: list[float] = field(default_factory=list)
    # Per-node residuals of the latest sweep
    node_residuals: Optional[npt.NDArray[np.float64]] = None
    # ||exact(end_time) - end state||_inf, nan without a reference solution
    error: float = math.nan

    @property
    def end_time(self) -> float:
        return self.time + self.dt

    @property
    def final_residual(self) -> float:
        return self.residuals[-1] if self.residuals else math.nan


@dataclass
class RunResult:
    steps: list[Step]
    end_state: StateVector
    t0: float
    end_time: float

    @property
    def number_of_steps(self) -> int:
        return len(self.steps)

    @property
    def iterations_per_step(self) -> list[int]:
        return [step.iteration for step in self.steps]

    @property
    def non_convergent_steps(self) -> int:
        """Number of steps that ended at the iteration cap."""
        return sum(1 for step in self.steps if step.status is StepStatus.MAX_ITER_REACHED)

    @property
    def step_errors(self) -> list[float]:
        return [step.error for step in self.steps]

    @property
    def converged(self) -> bool:
        return self.non_convergent_steps == 0


def step_intervals(t0: float, tend: float, dt: float) -> list[tuple[float, float]]:
    """
    Split [t0, tend] into steps of width dt.

    The last step is shortened to the exact remainder when the duration is not a
    multiple of dt, e.g. t0=0, tend=0.5, dt=0.3 gives widths 0.3 and 0.2. Any
    positive duration gets at least one step, so a run always ends at tend.

    Raises:
        ConfigurationError: If dt is not positive or tend precedes t0.

    Returns:
        List of (start time, width) tuples.
    """
    if not dt > 0.0:
        raise ConfigurationError(f"dt must be positive, got {dt}.")
    if tend < t0:
        raise ConfigurationError(f"tend ({tend}) must not precede t0 ({t0}).")

    duration = tend - t0
    if duration == 0.0:
        return []

    n_steps = max(1, math.ceil(duration / dt - STEP_EPSILON))

    intervals: list[tuple[float, float]] = []
    for i in range(n_steps):
        time = t0 + i * dt
        width = dt if i < n_steps - 1 else tend - time
        intervals.append((time, width))
    return intervals


class SDCController:
    """
    Single-level SDC controller looping over the steps of a run.
    """

    def __init__(self, level: Level, config: RunConfiguration) -> None:
        """
        Initialize the controller.

        Args:
            level: The level whose sweeper is driven.
            config: Run configuration (duration, dt, iteration cap, tolerances).
        """
        self.level = level
        self.config = config

    @property
    def sweeper(self) -> IMEXSweeper:
        return self.level.sweeper

    def tolerance(self, reference_norm: float) -> float:
        """Residual threshold: max(abs_tol, rel_tol * reference_norm)."""
        return max(self.config.abs_residual_tol, self.config.rel_residual_tol * reference_norm)

    def run_step(self, step: Step, initial_state: StateVector) -> StateVector:
        """
        Iterate one step to convergence or to the iteration cap.

        Raises:
            SweepFailure: With the step index filled in.

        Returns:
            The end state of the step.
        """
        sweeper = self.sweeper
        sweeper.start_step(step.time, step.dt)
        sweeper.set_initial_condition(initial_state)

        tolerance = self.tolerance(initial_state.infinity_norm())

        try:
            step.status = StepStatus.PREDICTING
            sweeper.predict()

            step.status = StepStatus.SWEEPING
            while True:
                sweeper.sweep()
                step.iteration += 1

                residuals: npt.NDArray[np.float64] = sweeper.compute_residual()
                step.node_residuals = residuals
                step.residuals.append(float(np.max(residuals)))
                logger.debug(f"Step {step.index} - Iteration {step.iteration} - "
                             f"Residual: {step.residuals[-1]:.6e}")

                if np.all(residuals <= tolerance):
                    step.status = StepStatus.CONVERGED
                    break
                if step.iteration >= self.config.max_iterations:
                    step.status = StepStatus.MAX_ITER_REACHED
                    logger.warning(f"Step {step.index} at t={step.time:.6g} did not converge after "
                                   f"{step.iteration} iteration(s), residual {step.residuals[-1]:.3e} "
                                   f"> {tolerance:.3e}")
                    break
        except SweepFailure as e:
            e.step_index = step.index
            logger.error(f"Aborting run: {e}")
            raise

        return sweeper.advance().copy()

    def run(
        self,
        initial_state: StateVector,
        on_step_end: Optional[Callable[[Step], None]] = None,
        exact: Optional[Callable[[float], StateVector]] = None,
    ) -> RunResult:
        """
        Run all steps from t0 to tend.

        Args:
            initial_state: State at t0.
            on_step_end: Optional callback invoked with every finished step.
            exact: Reference solution, when given every step records its end-state error.

        Raises:
            SweepFailure: If an implicit solve fails, the run is aborted.

        Returns:
            Steps, end state and end time of the run.
        """
        config = self.config
        intervals = step_intervals(config.t0, config.tend, config.dt)

        logger.info(f"Starting SDC run: {self.level.num_nodes} {self.level.quadrature_type.value} nodes, "
                    f"dt={config.dt}, t=[{config.t0}, {config.tend}], {len(intervals)} step(s)")

        state = initial_state.copy()
        steps: list[Step] = []
        for index, (time, width) in enumerate(intervals):
            step = Step(index=index, time=time, dt=width)
            state = self.run_step(step, state)
            if exact is not None:
                step.error = evaluate_error(exact, state, step.end_time)
            steps.append(step)

            logger.info(f"Step {index} - Time: {step.end_time:.6g} - Width: {width:.6g} - "
                        f"Iterations: {step.iteration} - Status: {step.status.value} - "
                        f"Residual: {step.final_residual:.3e}")
            if on_step_end is not None:
                on_step_end(step)

        result = RunResult(
            steps=steps,
            end_state=state,
            t0=config.t0,
            end_time=steps[-1].end_time if steps else config.t0,
        )
        if result.non_convergent_steps:
            logger.warning(f"{result.non_convergent_steps} of {result.number_of_steps} step(s) "
                           f"reached the iteration cap.")
        return result
