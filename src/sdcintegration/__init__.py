"""
Spectral Deferred Correction time integration.

The SDC layer (quadrature, sweeper, step controller, reporting) knows nothing
about meshes. Spatial problems plug in through the `SpatialProblem` interface.
"""
from sdcintegration.config import QuadratureType, RunConfiguration
from sdcintegration.exceptions import (
    ConfigurationError,
    DimensionMismatch,
    InvalidState,
    SDCError,
    SolverError,
    SweepFailure,
)

__all__ = [
    "QuadratureType",
    "RunConfiguration",
    "ConfigurationError",
    "DimensionMismatch",
    "InvalidState",
    "SDCError",
    "SolverError",
    "SweepFailure",
]
