import matplotlib

matplotlib.use("Agg")

import pytest

from sdcintegration.config import QuadratureType, RunConfiguration
from sdcintegration.problems import AdvectionDiffusionProblem, DahlquistIMEXProblem
from sdcintegration.sdc import Level


@pytest.fixture
def dahlquist() -> DahlquistIMEXProblem:
    return DahlquistIMEXProblem(lambda_expl=-0.5, lambda_impl=-1.0, initial_values=[1.0, 2.0])


@pytest.fixture
def advection_diffusion() -> AdvectionDiffusionProblem:
    return AdvectionDiffusionProblem(num_elements=10, velocity=0.1, viscosity=0.01)


@pytest.fixture
def lobatto_level(dahlquist) -> Level:
    return Level.create(dahlquist, num_nodes=3, quadrature_type=QuadratureType.GAUSS_LOBATTO)


@pytest.fixture
def short_run() -> RunConfiguration:
    return RunConfiguration(dt=0.1, tend=0.3)
