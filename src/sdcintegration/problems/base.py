from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sdcintegration.sdc.encap import StateVector


class SpatialProblem(ABC):
    """
    Abstract base class for the spatial discretization used by the IMEX sweeper.

    The right-hand side is split as ``u' = F_expl(u) + F_impl(u)``. The sweeper
    only ever talks to the problem through the methods below.
    """
    NAME: str = "Spatial Problem"

    @abstractmethod
    def degrees_of_freedom_count(self) -> int:
        """Number of spatial degrees of freedom."""
        pass

    @abstractmethod
    def apply_explicit_operator(self, state: StateVector) -> StateVector:
        """
        Evaluate the explicitly treated part of the right-hand side.

        Args:
            state: State to evaluate at.

        Returns:
            F_expl(state) as a new vector.
        """
        pass

    @abstractmethod
    def apply_implicit_operator(self, state: StateVector) -> StateVector:
        """
        Evaluate the implicitly treated part of the right-hand side.

        Args:
            state: State to evaluate at.

        Returns:
            F_impl(state) as a new vector.
        """
        pass

    @abstractmethod
    def apply_implicit_operator_and_solve(self, rhs: StateVector, dt_substep: float) -> StateVector:
        """
        Solve ``u - dt_substep * F_impl(u) = rhs`` for u.

        Args:
            rhs: Right-hand side vector.
            dt_substep: Width of the implicit sub-step (> 0).

        Raises:
            SolverError: If the solve does not produce a usable result.

        Returns:
            The solution u as a new vector.
        """
        pass

    @abstractmethod
    def exact_solution(self, time: float) -> StateVector:
        """
        Reference solution at a given time.

        Args:
            time: Time at which to evaluate.

        Returns:
            The reference state.
        """
        pass
