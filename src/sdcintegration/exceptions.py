"""
Exception hierarchy for the SDC engine.

ConfigurationError and DimensionMismatch are never recovered internally.
SweepFailure aborts the duration loop. Non-convergence of a step is not an
exception, it is reported through `StepStatus.MAX_ITER_REACHED`.
"""
from __future__ import annotations


class SDCError(Exception):
    """Base class for all errors raised by the SDC engine."""


class ConfigurationError(SDCError, ValueError):
    """Invalid run setup (node count, quadrature family, dt, duration, tolerances)."""


class DimensionMismatch(SDCError):
    """State vector operation on vectors of different dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Dimension mismatch: expected {expected}, got {actual}.")


class InvalidState(SDCError, RuntimeError):
    """A sweeper operation was called out of protocol order."""


class SolverError(SDCError):
    """Raised by a spatial problem when its implicit solve fails."""


class SweepFailure(SDCError):
    """
    The delegated implicit solve failed during a predictor or correction sweep.

    Attributes:
        node_index: Collocation node (1-based, 0 is the step start) being solved.
        step_index: Index of the time step, filled in by the step controller.
    """

    def __init__(self, node_index: int, reason: str, step_index: int | None = None) -> None:
        self.node_index = node_index
        self.step_index = step_index
        self.reason = reason
        super().__init__(reason)

    def __str__(self) -> str:
        step = "?" if self.step_index is None else str(self.step_index)
        return f"Sweep failed at step {step}, node {self.node_index}: {self.reason}"
