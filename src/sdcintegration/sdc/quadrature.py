"""
Collocation nodes and spectral integration matrices on the unit interval.

Nodes come from Legendre polynomial roots on [-1, 1] mapped to [0, 1]. The
integration matrix is built by integrating the Lagrange basis through the
Vandermonde system of the nodes.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.polynomial import legendre

from sdcintegration.config import QuadratureType
from sdcintegration.exceptions import ConfigurationError

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuadratureRule:
    """
    Collocation rule for one (node count, family) pair.

    Attributes:
        quadrature_type: Node family.
        num_nodes: Number of collocation nodes M.
        nodes: (M,) node positions in [0, 1], strictly increasing.
        weights: (M,) integration weights over [0, 1].
        q_matrix: (M, M) with Q[i, j] = integral of the j-th Lagrange basis from 0 to nodes[i].
        s_matrix: (M, M) node-to-node integrals, row 0 integrates from 0 to nodes[0].
        delta_nodes: (M,) sub-step widths, delta_nodes[0] = nodes[0].
    """
    quadrature_type: QuadratureType
    num_nodes: int
    nodes: npt.NDArray[np.float64]
    weights: npt.NDArray[np.float64]
    q_matrix: npt.NDArray[np.float64]
    s_matrix: npt.NDArray[np.float64]
    delta_nodes: npt.NDArray[np.float64]

    @property
    def left_is_node(self) -> bool:
        return self.quadrature_type.left_is_node

    @property
    def right_is_node(self) -> bool:
        return self.quadrature_type.right_is_node

    def integrate(self, values: npt.NDArray[np.float64], dt: float) -> npt.NDArray[np.float64]:
        """
        Integrate node values from the step start to every node.

        Args:
            values: (M, ...) values at the collocation nodes.
            dt: Step width.

        Returns:
            (M, ...) array, row i holds the integral up to nodes[i].
        """
        return dt * np.tensordot(self.q_matrix, values, axes=(1, 0))


def _unit_interval_nodes(num_nodes: int, quadrature_type: QuadratureType) -> npt.NDArray[np.float64]:
    """Node positions on [-1, 1] for the requested family."""
    if quadrature_type is QuadratureType.GAUSS_LEGENDRE:
        x, _ = legendre.leggauss(num_nodes)
    elif quadrature_type is QuadratureType.GAUSS_LOBATTO:
        # Interior nodes are the roots of P'_{M-1}
        p_m1 = np.zeros(num_nodes)
        p_m1[-1] = 1.0
        interior = legendre.legroots(legendre.legder(p_m1)) if num_nodes > 2 else np.empty(0)
        x = np.concatenate(([-1.0], np.real(interior), [1.0]))
    else:
        # Right Radau: roots of P_M - P_{M-1}, includes x = 1
        c = np.zeros(num_nodes + 1)
        c[-1] = 1.0
        c[-2] = -1.0
        x = np.real(legendre.legroots(c))
        x[np.argmax(x)] = 1.0
    return np.sort(np.asarray(x, dtype=np.float64))


def _integration_matrix(
    nodes: npt.NDArray[np.float64],
    limits: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """Entry [i, j] = integral from 0 to limits[i] of the Lagrange basis polynomial of node j."""
    m = nodes.size

    # Monomial coefficients of each Lagrange polynomial: columns of inv(V)
    vander = np.vander(nodes, N=m, increasing=True)
    coef = np.linalg.solve(vander, np.eye(m))

    # Integrals of the monomials from 0 to each node
    exps = np.arange(1, m + 1)
    integrals = limits[:, None] ** exps / exps

    return integrals @ coef


def _read_only(array: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    array.setflags(write=False)
    return array


@functools.lru_cache(maxsize=None)
def _build_rule(num_nodes: int, quadrature_type: QuadratureType) -> QuadratureRule:
    nodes = 0.5 * (_unit_interval_nodes(num_nodes, quadrature_type) + 1.0)
    # Snap endpoints that belong to the family
    if quadrature_type.left_is_node:
        nodes[0] = 0.0
    if quadrature_type.right_is_node:
        nodes[-1] = 1.0

    q_matrix = _integration_matrix(nodes, nodes)
    weights = _integration_matrix(nodes, np.array([1.0]))[0]

    s_matrix = q_matrix.copy()
    s_matrix[1:] -= q_matrix[:-1]

    delta_nodes = np.diff(nodes, prepend=0.0)

    logger.debug(f"Built {quadrature_type.value} rule with {num_nodes} node(s): {nodes}")

    return QuadratureRule(
        quadrature_type=quadrature_type,
        num_nodes=num_nodes,
        nodes=_read_only(nodes),
        weights=_read_only(weights),
        q_matrix=_read_only(q_matrix),
        s_matrix=_read_only(s_matrix),
        delta_nodes=_read_only(delta_nodes),
    )


def quadrature_factory(num_nodes: int, quadrature_type: QuadratureType | str) -> QuadratureRule:
    """
    Create (or fetch from cache) the collocation rule for a node count and family.

    Args:
        num_nodes: Number of collocation nodes.
        quadrature_type: Node family, as enum or its string value.

    Raises:
        ConfigurationError: If the family is unknown or `num_nodes` is below its minimum.

    Returns:
        The immutable quadrature rule.
    """
    quadrature_type = QuadratureType.parse(quadrature_type)
    if num_nodes < quadrature_type.minimum_nodes:
        raise ConfigurationError(
            f"{quadrature_type.value} quadrature requires at least {quadrature_type.minimum_nodes} "
            f"node(s), got {num_nodes}."
        )
    return _build_rule(int(num_nodes), quadrature_type)
