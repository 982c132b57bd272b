from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from sdcintegration.exceptions import SolverError
from sdcintegration.problems.base import SpatialProblem
from sdcintegration.sdc.encap import StateVector

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class DahlquistIMEXProblem(SpatialProblem):
    """
    Split linear test equation ``u' = lambda_expl * u + lambda_impl * u``.

    Every component evolves independently, so the exact solution is
    ``u0 * exp((lambda_expl + lambda_impl) * t)``.
    """
    NAME = "IMEX Dahlquist"

    def __init__(
        self,
        lambda_expl: float = -0.5,
        lambda_impl: float = -1.0,
        initial_values: list[float] | npt.NDArray[np.float64] | None = None,
        fail_after: int | None = None,
    ) -> None:
        """
        Initialize the test problem.

        Args:
            lambda_expl: Coefficient of the explicit part.
            lambda_impl: Coefficient of the implicit part.
            initial_values: Values at t = 0 (defaults to a single component equal to 1).
            fail_after: Make every implicit solve after this many successful ones raise SolverError.
        """
        self.lambda_expl = float(lambda_expl)
        self.lambda_impl = float(lambda_impl)
        self.initial_values = np.array(
            [1.0] if initial_values is None else initial_values, dtype=np.float64
        ).reshape(-1)
        self.fail_after = fail_after
        self.solve_count = 0

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(lambda_expl={self.lambda_expl}, "
                f"lambda_impl={self.lambda_impl}, dofs={self.initial_values.size})")

    def degrees_of_freedom_count(self) -> int:
        return self.initial_values.size

    def apply_explicit_operator(self, state: StateVector) -> StateVector:
        return StateVector.from_array(self.lambda_expl * state.values)

    def apply_implicit_operator(self, state: StateVector) -> StateVector:
        return StateVector.from_array(self.lambda_impl * state.values)

    def apply_implicit_operator_and_solve(self, rhs: StateVector, dt_substep: float) -> StateVector:
        if self.fail_after is not None and self.solve_count >= self.fail_after:
            raise SolverError(f"Implicit solve disabled after {self.fail_after} solve(s).")

        denominator = 1.0 - dt_substep * self.lambda_impl
        if denominator == 0.0:
            raise SolverError(f"Singular implicit system for dt_substep={dt_substep}.")

        self.solve_count += 1
        return StateVector.from_array(rhs.values / denominator)

    def exact_solution(self, time: float) -> StateVector:
        rate = self.lambda_expl + self.lambda_impl
        return StateVector.from_array(self.initial_values * np.exp(rate * time))
