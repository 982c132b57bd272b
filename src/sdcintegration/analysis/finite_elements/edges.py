from __future__ import annotations

from abc import ABC, abstractmethod

from typing import TYPE_CHECKING

import numpy as np
import numba as nb

import sdcintegration.analysis.gauss as gauss

if TYPE_CHECKING:
    import numpy.typing as npt
    from sdcintegration.analysis.node import Node


@nb.njit(cache=True, fastmath=True)
def _line2_local_matrices(x0: float, x1: float, gauss_points, weights):
    """
    Integrate the mass, stiffness and advection matrices of a two-node line element.

    Args:
        x0, x1: Coordinates of the element end nodes.
        gauss_points: Integration points on [-1, 1].
        weights: Integration weights.

    Returns:
        m_e: (2, 2) mass matrix, integral of N_a N_b.
        k_e: (2, 2) stiffness matrix, integral of dN_a/dx dN_b/dx.
        c_e: (2, 2) advection matrix, integral of N_a dN_b/dx.
    """
    det_j = 0.5 * (x1 - x0)

    m_e = np.zeros((2, 2), dtype=np.float64)
    k_e = np.zeros((2, 2), dtype=np.float64)
    c_e = np.zeros((2, 2), dtype=np.float64)

    # dN/dx is constant on a linear element
    dn = np.empty(2, dtype=np.float64)
    dn[0] = -0.5 / det_j
    dn[1] = 0.5 / det_j

    n = np.empty(2, dtype=np.float64)
    for g in range(gauss_points.size):
        xi = gauss_points[g]
        w = weights[g] * det_j
        n[0] = 0.5 * (1.0 - xi)
        n[1] = 0.5 * (1.0 + xi)
        for a in range(2):
            for b in range(2):
                m_e[a, b] += n[a] * n[b] * w
                k_e[a, b] += dn[a] * dn[b] * w
                c_e[a, b] += n[a] * dn[b] * w

    return m_e, k_e, c_e


class LineElement(ABC):
    """Abstract base class for line elements in finite element analysis."""

    def __init__(
        self,
        index: int,
        nodes: list[Node],
        number_of_integration_points: int,
        x: npt.NDArray[np.float64] | None = None,
    ) -> None:
        """
        Initialize the line element with an index and nodes.

        Args:
            index: Element index.
            nodes: List of nodes that form the element.
            number_of_integration_points: Number of integration points for numerical integration.
            x: Element node coordinates, when they differ from the node coordinates
                (the closing element of a periodic mesh).
        """
        self.id = index
        self.nodes = nodes
        self.number_of_integration_points = number_of_integration_points
        self.global_dofs: npt.NDArray[np.int64] = np.array([node.uid for node in nodes], dtype=np.int64)
        self.x: npt.NDArray[np.float64] = (
            np.array([node.x for node in nodes], dtype=np.float64) if x is None
            else np.asarray(x, dtype=np.float64)
        )

    def __repr__(self) -> str:
        """String representation of the line element."""
        return f"{self.__class__.__name__}(id={self.id}, nodes={self.nodes})"

    @property
    def number_of_nodes(self) -> int:
        """Return the number of nodes in the line element."""
        return len(self.nodes)

    @property
    def length(self) -> float:
        return float(self.x[-1] - self.x[0])

    @property
    def jacobian_determinant(self) -> float:
        """
        Calculate the Jacobian determinant of the line element.

        Returns:
            The Jacobian value dx/dxi.
        """
        return float(self.jacobian_matrix)

    @property
    @abstractmethod
    def jacobian_matrix(self) -> float:
        """
        Calculate the Jacobian of the line element.

        Returns:
            The Jacobian value.
        """
        pass

    def get_integration_scheme(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Get the integration scheme for the line element.

        Returns:
            A tuple containing the integration points and weights.
        """
        return gauss.gauss_points_weights_edge(n_points=self.number_of_integration_points)

    @abstractmethod
    def get_mass_matrix(self) -> npt.NDArray[np.float64]:
        """Element mass matrix."""
        pass

    @abstractmethod
    def get_stiffness_matrix(self) -> npt.NDArray[np.float64]:
        """Element stiffness (diffusion) matrix."""
        pass

    @abstractmethod
    def get_advection_matrix(self) -> npt.NDArray[np.float64]:
        """Element advection (first derivative) matrix."""
        pass


class Line2(LineElement):
    """Linear line element with two nodes."""

    def __init__(self, index: int, nodes: list[Node], x: npt.NDArray[np.float64] | None = None) -> None:
        """
        Initialize the linear line element.

        Args:
            index: Element index.
            nodes: List of nodes that form the element.
            x: Optional element node coordinates.
        """
        super().__init__(index=index, nodes=nodes, number_of_integration_points=2, x=x)

        gauss_points, weights = self.get_integration_scheme()
        self._m_e, self._k_e, self._c_e = _line2_local_matrices(
            self.x[0], self.x[1], np.asarray(gauss_points, dtype=np.float64), np.asarray(weights, dtype=np.float64)
        )

    @property
    def jacobian_matrix(self) -> float:
        """Jacobian for a linear line element."""
        b = np.array([-1/2, 1/2], dtype=np.float64)  # Derivative of shape functions w.r.t. local coordinate
        return float(b @ self.x)

    def get_mass_matrix(self) -> npt.NDArray[np.float64]:
        return self._m_e

    def get_stiffness_matrix(self) -> npt.NDArray[np.float64]:
        return self._k_e

    def get_advection_matrix(self) -> npt.NDArray[np.float64]:
        return self._c_e
