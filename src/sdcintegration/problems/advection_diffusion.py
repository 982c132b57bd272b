"""
Advection-Diffusion Problem
===========================
Periodic one-dimensional linear advection-diffusion

    u_t + a u_x = nu u_xx,    x in [0, L),

discretized with linear line elements. The semi-discrete system reads
``M u' = -a C u - nu K u``. Advection is treated explicitly, diffusion
implicitly.

On a uniform periodic mesh M, K and C are circulant, so a discrete Fourier
mode is an eigenvector of all three. `exact_solution` uses this to evaluate
the semi-discrete system in closed form, leaving only the time integration
error when comparing against it.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import scipy as sp
import scipy.sparse.linalg

from sdcintegration.analysis.mesh import IntervalMesh
from sdcintegration.analysis.model import Model
from sdcintegration.exceptions import SolverError
from sdcintegration.problems.base import SpatialProblem
from sdcintegration.sdc.encap import StateVector

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class AdvectionDiffusionProblem(SpatialProblem):
    NAME = "Advection-Diffusion"

    def __init__(
        self,
        num_elements: int = 10,
        velocity: float = 0.1,
        viscosity: float = 0.01,
        wavenumber: int = 1,
        length: float = 1.0,
    ) -> None:
        """
        Initialize the problem and assemble the finite element matrices.

        Args:
            num_elements: Number of line elements (equals the number of unknowns).
            velocity: Advection velocity a.
            viscosity: Diffusion coefficient nu (>= 0).
            wavenumber: Number of sine periods of the initial condition over the domain.
            length: Domain length L.
        """
        if viscosity < 0.0:
            raise ValueError(f"Viscosity must be non-negative, got {viscosity}.")

        self.velocity = float(velocity)
        self.viscosity = float(viscosity)
        self.wavenumber = int(wavenumber)

        self.mesh = IntervalMesh.periodic_interval(num_elements=num_elements, length=length)
        self.model = Model(mesh=self.mesh)

        self._mass_lu = sp.sparse.linalg.splu(self.model.m_global.tocsc())
        self._solve_cache: dict[float, sp.sparse.linalg.SuperLU] = {}

        logger.info(f"{self.NAME}: {num_elements} elements, a={self.velocity}, nu={self.viscosity}")

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(num_elements={self.model.number_of_elements}, "
                f"velocity={self.velocity}, viscosity={self.viscosity}, wavenumber={self.wavenumber})")

    @property
    def angular_wavenumber(self) -> float:
        return 2.0 * np.pi * self.wavenumber / self.mesh.length

    @property
    def eigenvalue(self) -> complex:
        """
        Eigenvalue of M^{-1}(-a C - nu K) for the initial Fourier mode.

        With theta = kappa * h the matrix symbols are
        M: h (2 + cos theta) / 3, K: 2 (1 - cos theta) / h, C: i sin theta.
        """
        h = self.mesh.element_size
        theta = self.angular_wavenumber * h
        mass = h * (2.0 + np.cos(theta)) / 3.0
        stiffness = 2.0 * (1.0 - np.cos(theta)) / h
        return complex(-self.viscosity * stiffness / mass, -self.velocity * np.sin(theta) / mass)

    def degrees_of_freedom_count(self) -> int:
        return self.model.number_of_equations

    def _mass_solve(self, rhs: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return self._mass_lu.solve(rhs)

    def apply_explicit_operator(self, state: StateVector) -> StateVector:
        return StateVector.from_array(self._mass_solve(-self.velocity * (self.model.c_global @ state.values)))

    def apply_implicit_operator(self, state: StateVector) -> StateVector:
        return StateVector.from_array(self._mass_solve(-self.viscosity * (self.model.k_global @ state.values)))

    def _implicit_factor(self, dt_substep: float) -> sp.sparse.linalg.SuperLU:
        lu = self._solve_cache.get(dt_substep)
        if lu is None:
            system = self.model.m_global + (dt_substep * self.viscosity) * self.model.k_global
            lu = sp.sparse.linalg.splu(system.tocsc())
            self._solve_cache[dt_substep] = lu
            logger.debug(f"Factorized implicit system for dt_substep={dt_substep:.6e}")
        return lu

    def apply_implicit_operator_and_solve(self, rhs: StateVector, dt_substep: float) -> StateVector:
        # (M + ds nu K) u = M rhs
        lu = self._implicit_factor(dt_substep)
        solution = lu.solve(self.model.m_global @ rhs.values)
        if not np.all(np.isfinite(solution)):
            raise SolverError(f"Implicit solve returned non-finite values for dt_substep={dt_substep}.")
        return StateVector.from_array(solution)

    def initial_condition(self) -> StateVector:
        return StateVector.from_array(np.sin(self.angular_wavenumber * self.mesh.coordinates))

    def exact_solution(self, time: float) -> StateVector:
        """
        Closed-form solution of the semi-discrete system at `time`.

        Args:
            time: Time at which to evaluate (initial condition at t = 0).

        Returns:
            exp(Re(lambda) t) * sin(kappa x + Im(lambda) t) at the mesh nodes.
        """
        lam = self.eigenvalue
        phase = self.angular_wavenumber * self.mesh.coordinates + lam.imag * time
        return StateVector.from_array(np.exp(lam.real * time) * np.sin(phase))

    def continuous_solution(self, time: float) -> StateVector:
        """Solution of the continuous PDE, sampled at the mesh nodes."""
        kappa = self.angular_wavenumber
        x = self.mesh.coordinates
        return StateVector.from_array(
            np.exp(-self.viscosity * kappa ** 2 * time) * np.sin(kappa * (x - self.velocity * time))
        )
