import numpy as np
import pytest

from sdcintegration.config import QuadratureType
from sdcintegration.exceptions import ConfigurationError
from sdcintegration.sdc.quadrature import quadrature_factory

ALL_RULES = (
    [(QuadratureType.GAUSS_LOBATTO, n) for n in range(2, 8)]
    + [(QuadratureType.GAUSS_RADAU, n) for n in range(1, 8)]
    + [(QuadratureType.GAUSS_LEGENDRE, n) for n in range(1, 8)]
)


@pytest.mark.parametrize("quadrature_type, num_nodes", ALL_RULES)
def test_nodes_strictly_increasing_in_unit_interval(quadrature_type, num_nodes):
    rule = quadrature_factory(num_nodes, quadrature_type)

    assert rule.nodes.shape == (num_nodes,)
    assert np.all(np.diff(rule.nodes) > 0.0)
    assert rule.nodes[0] >= 0.0
    assert rule.nodes[-1] <= 1.0


@pytest.mark.parametrize("quadrature_type, num_nodes", ALL_RULES)
def test_endpoint_inclusion_matches_family(quadrature_type, num_nodes):
    rule = quadrature_factory(num_nodes, quadrature_type)

    if quadrature_type is QuadratureType.GAUSS_LOBATTO:
        assert rule.nodes[0] == 0.0 and rule.nodes[-1] == 1.0
    elif quadrature_type is QuadratureType.GAUSS_RADAU:
        assert rule.nodes[0] > 0.0 and rule.nodes[-1] == 1.0
    else:
        assert rule.nodes[0] > 0.0 and rule.nodes[-1] < 1.0
    assert rule.left_is_node == (rule.nodes[0] == 0.0)
    assert rule.right_is_node == (rule.nodes[-1] == 1.0)


@pytest.mark.parametrize("quadrature_type, num_nodes", ALL_RULES)
def test_q_matrix_integrates_collocation_polynomials_exactly(quadrature_type, num_nodes):
    rule = quadrature_factory(num_nodes, quadrature_type)
    degree = num_nodes - 1

    values = rule.nodes ** degree
    expected = rule.nodes ** (degree + 1) / (degree + 1)

    np.testing.assert_allclose(rule.q_matrix @ values, expected, atol=1e-11)
    assert rule.weights.sum() == pytest.approx(1.0, abs=1e-12)
    np.testing.assert_allclose(rule.s_matrix.sum(axis=1), rule.delta_nodes, atol=1e-12)


def test_known_rules():
    lobatto = quadrature_factory(3, QuadratureType.GAUSS_LOBATTO)
    np.testing.assert_allclose(lobatto.nodes, [0.0, 0.5, 1.0], atol=1e-14)
    np.testing.assert_allclose(lobatto.weights, [1 / 6, 2 / 3, 1 / 6], atol=1e-13)

    radau = quadrature_factory(2, QuadratureType.GAUSS_RADAU)
    np.testing.assert_allclose(radau.nodes, [1 / 3, 1.0], atol=1e-14)
    np.testing.assert_allclose(radau.weights, [0.75, 0.25], atol=1e-13)

    legendre = quadrature_factory(1, QuadratureType.GAUSS_LEGENDRE)
    np.testing.assert_allclose(legendre.nodes, [0.5])
    np.testing.assert_allclose(legendre.weights, [1.0])


def test_legendre_weights_match_gauss_weights():
    rule = quadrature_factory(4, QuadratureType.GAUSS_LEGENDRE)
    _, w = np.polynomial.legendre.leggauss(4)
    np.testing.assert_allclose(rule.weights, w / 2, atol=1e-12)


@pytest.mark.parametrize("quadrature_type", list(QuadratureType))
def test_zero_nodes_is_a_configuration_error(quadrature_type):
    with pytest.raises(ConfigurationError):
        quadrature_factory(0, quadrature_type)


def test_single_lobatto_node_is_rejected():
    with pytest.raises(ConfigurationError, match="at least 2"):
        quadrature_factory(1, QuadratureType.GAUSS_LOBATTO)


def test_unknown_family_is_rejected():
    with pytest.raises(ConfigurationError):
        quadrature_factory(3, "gauss-chebyshev")


def test_rules_are_cached_and_read_only():
    rule = quadrature_factory(3, "GaussLobatto")
    assert rule is quadrature_factory(3, QuadratureType.GAUSS_LOBATTO)

    with pytest.raises(ValueError):
        rule.nodes[1] = 0.3


def test_integrate_scales_with_dt():
    rule = quadrature_factory(3, QuadratureType.GAUSS_RADAU)
    ones = np.ones((3, 2))

    integral = rule.integrate(ones, dt=0.5)

    np.testing.assert_allclose(integral[:, 0], 0.5 * rule.nodes, atol=1e-13)
    np.testing.assert_allclose(integral[:, 1], 0.5 * rule.nodes, atol=1e-13)
