"""
IMEX SDC Sweeper
================
Implicit-explicit spectral deferred correction on one level.

For a step [t, t + dt] with collocation nodes tau_1 < ... < tau_M the sweeper
tracks the start state u_0 and one state per node. A correction sweep moves
node to node (m -> m + 1) with sub-step width ds = dt * (tau_{m+1} - tau_m):

    u_{m+1} - ds * Fi(u_{m+1}) = u_m + ds * (Fe(u_m) - Fe_old(u_m))
                                 - ds * Fi_old(u_{m+1}) + dt * S[m+1] . F_old

where the "old" values belong to the previous iterate. Node m + 1 needs the
corrected node m, so the nodes of one sweep are strictly sequential.

Node indices in errors and logs are 1..M, index 0 is the step start.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from sdcintegration.exceptions import (
    ConfigurationError,
    DimensionMismatch,
    InvalidState,
    SolverError,
    SweepFailure,
)

if TYPE_CHECKING:
    import numpy.typing as npt

    from sdcintegration.problems.base import SpatialProblem
    from sdcintegration.sdc.encap import StateVector, VectorFactory
    from sdcintegration.sdc.quadrature import QuadratureRule

logger = logging.getLogger(__name__)

# Failures of the delegated implicit solve that become a SweepFailure
SOLVE_ERRORS = (SolverError, RuntimeError, ArithmeticError, ValueError, np.linalg.LinAlgError)


class IMEXSweeper:
    """
    IMEX SDC sweeper for a single level.
    """

    def __init__(
        self,
        problem: SpatialProblem,
        quadrature: QuadratureRule,
        factory: VectorFactory,
    ) -> None:
        """
        Initialize the sweeper.

        Args:
            problem: Spatial discretization providing the split right-hand side and the implicit solve.
            quadrature: Collocation rule of the level.
            factory: Produces zero vectors of the problem dimension.

        Raises:
            DimensionMismatch: If the factory dimension differs from the problem's degrees of freedom.
        """
        if factory.dimension != problem.degrees_of_freedom_count():
            raise DimensionMismatch(expected=problem.degrees_of_freedom_count(), actual=factory.dimension)

        self.problem = problem
        self.quadrature = quadrature
        self.factory = factory

        n = quadrature.num_nodes
        self.start_state: StateVector = factory.create()
        self.states: list[StateVector] = [factory.create() for _ in range(n)]
        self.f_expl: list[StateVector] = [factory.create() for _ in range(n)]
        self.f_impl: list[StateVector] = [factory.create() for _ in range(n)]
        self._f_expl_start: StateVector = factory.create()

        self.time: float = 0.0
        self.dt: float = 0.0
        self.sweep_count: int = 0

        self._step_started = False
        self._seeded = False
        self._sweeping_started = False
        self._end_state: StateVector | None = None

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(nodes={self.num_nodes}, "
                f"quadrature={self.quadrature.quadrature_type.value}, dofs={self.factory.dimension})")

    @property
    def num_nodes(self) -> int:
        return self.quadrature.num_nodes

    @property
    def end_state(self) -> StateVector:
        """
        State at the end of the last advanced step.

        Raises:
            InvalidState: If no step has been advanced yet.
        """
        if self._end_state is None:
            raise InvalidState("No end state available, advance() has not been called.")
        return self._end_state

    def start_step(self, time: float, dt: float) -> None:
        """
        Begin a new step [time, time + dt].

        Raises:
            ConfigurationError: If dt is not positive.
        """
        if not dt > 0.0:
            raise ConfigurationError(f"Step width must be positive, got {dt}.")
        self.time = time
        self.dt = dt
        self.sweep_count = 0
        self._step_started = True
        self._seeded = False
        self._sweeping_started = False

    def set_initial_condition(self, state: StateVector) -> None:
        """
        Seed the start state of the current step.

        Raises:
            InvalidState: If predict() or sweep() already ran for this step.
            DimensionMismatch: If the state has the wrong dimension.
        """
        if self._sweeping_started:
            raise InvalidState("Cannot set the initial condition after sweeping has begun for this step.")
        self.start_state.assign(state)
        self._seeded = True

    def _require_seeded(self) -> None:
        if not self._step_started:
            raise InvalidState("start_step() must be called before sweeping.")
        if not self._seeded:
            raise InvalidState("set_initial_condition() must be called before sweeping.")

    def _require_predicted(self) -> None:
        self._require_seeded()
        if not self._sweeping_started:
            raise InvalidState("predict() must be called before sweep(), compute_residual() or advance().")

    def _implicit_solve(self, rhs: StateVector, dt_substep: float, node_index: int) -> StateVector:
        """Solve u - ds * Fi(u) = rhs, a zero-width sub-step leaves rhs unchanged."""
        if dt_substep == 0.0:
            return rhs

        try:
            solution = self.problem.apply_implicit_operator_and_solve(rhs, dt_substep)
        except DimensionMismatch:
            raise
        except SOLVE_ERRORS as e:
            raise SweepFailure(node_index=node_index, reason=f"{type(e).__name__}: {e}") from e

        if solution.dimension != rhs.dimension:
            raise DimensionMismatch(expected=rhs.dimension, actual=solution.dimension)
        if not solution.is_finite():
            raise SweepFailure(node_index=node_index, reason="implicit solve returned non-finite values")
        return solution

    def _evaluate(self, m: int) -> None:
        """Evaluate both right-hand side parts at node m (0-based)."""
        self.f_expl[m] = self.problem.apply_explicit_operator(self.states[m])
        self.f_impl[m] = self.problem.apply_implicit_operator(self.states[m])

    def predict(self) -> None:
        """
        Fill all nodes from the start state with IMEX Euler sub-steps.

        Raises:
            InvalidState: If the step was not started and seeded.
            SweepFailure: If an implicit solve fails.
        """
        self._require_seeded()
        self._sweeping_started = True

        self._f_expl_start = self.problem.apply_explicit_operator(self.start_state)

        previous = self.start_state
        f_previous = self._f_expl_start
        for m in range(self.num_nodes):
            ds = self.dt * self.quadrature.delta_nodes[m]

            rhs = previous.copy().axpy(ds, f_previous)
            self.states[m].assign(self._implicit_solve(rhs, ds, node_index=m + 1))
            self._evaluate(m)

            previous = self.states[m]
            f_previous = self.f_expl[m]

        logger.debug(f"Predictor done at t={self.time:.6g}, dt={self.dt:.6g}")

    def sweep(self) -> None:
        """
        Perform one IMEX SDC correction sweep over all nodes.

        Raises:
            InvalidState: If predict() has not run for this step.
            SweepFailure: If an implicit solve fails.
        """
        self._require_predicted()

        dt = self.dt
        s_matrix = self.quadrature.s_matrix
        f_expl_old = self.f_expl
        f_impl_old = self.f_impl

        # Node-to-node integrals of the previous iterate
        f_old = np.array([fe.values + fi.values for fe, fi in zip(f_expl_old, f_impl_old)])
        s_integrals = dt * (s_matrix @ f_old)

        self.f_expl = [self.factory.create() for _ in range(self.num_nodes)]
        self.f_impl = [self.factory.create() for _ in range(self.num_nodes)]

        previous = self.start_state
        f_expl_previous_new = self._f_expl_start
        f_expl_previous_old = self._f_expl_start
        for m in range(self.num_nodes):
            ds = dt * self.quadrature.delta_nodes[m]

            rhs = previous.copy()
            rhs.axpy(ds, f_expl_previous_new)
            rhs.axpy(-ds, f_expl_previous_old)
            rhs.axpy(-ds, f_impl_old[m])
            rhs.values[:] += s_integrals[m]

            self.states[m].assign(self._implicit_solve(rhs, ds, node_index=m + 1))
            self._evaluate(m)

            previous = self.states[m]
            f_expl_previous_new = self.f_expl[m]
            f_expl_previous_old = f_expl_old[m]

        self.sweep_count += 1

    def compute_residual(self) -> npt.NDArray[np.float64]:
        """
        Collocation defect at every node.

        r_m = u_0 + dt * sum_j Q[m, j] (Fe_j + Fi_j) - u_m. The call has no side effects.

        Raises:
            InvalidState: If predict() has not run for this step.

        Returns:
            (M,) infinity norms of the node residuals.
        """
        self._require_predicted()

        f = np.array([fe.values + fi.values for fe, fi in zip(self.f_expl, self.f_impl)])
        u = np.array([state.values for state in self.states])
        residual = self.start_state.values[None, :] + self.quadrature.integrate(f, self.dt) - u

        return np.max(np.abs(residual), axis=1)

    def advance(self) -> StateVector:
        """
        Harvest the end state of the current step.

        The last node is used when it sits on the right endpoint, otherwise the
        collocation polynomial is integrated over the full step.

        Raises:
            InvalidState: If predict() has not run for this step.

        Returns:
            The end state (also available as `end_state`).
        """
        self._require_predicted()

        if self.quadrature.right_is_node:
            end = self.states[-1].copy()
        else:
            end = self.start_state.copy()
            for w, fe, fi in zip(self.quadrature.weights, self.f_expl, self.f_impl):
                end.axpy(self.dt * w, fe).axpy(self.dt * w, fi)

        self._end_state = end
        self._step_started = False
        return end
