from sdcintegration.problems.advection_diffusion import AdvectionDiffusionProblem
from sdcintegration.problems.base import SpatialProblem
from sdcintegration.problems.dahlquist import DahlquistIMEXProblem

__all__ = ["AdvectionDiffusionProblem", "SpatialProblem", "DahlquistIMEXProblem"]
