from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


def gauss_points_weights_edge(n_points: int) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Generate Gauss points and weights for a 1D Gaussian integration on [-1, 1].

    Args:
        n_points: Number of integration points.

    Raises:
        ValueError: If `n_points` is smaller than 1.

    Returns:
        A tuple containing the Gauss points and weights.
    """
    if n_points == 1:
        return np.array([0.0]), np.array([2.0])
    elif n_points == 2:
        return np.array([-1/np.sqrt(3), 1/np.sqrt(3)]), np.array([1.0, 1.0])
    elif n_points == 3:
        return np.array([-np.sqrt(3/5), 0.0, np.sqrt(3/5)]), np.array([5/9, 8/9, 5/9])
    elif n_points > 3:
        return np.polynomial.legendre.leggauss(n_points)
    else:
        raise ValueError(f"Unsupported number of Gauss points: {n_points}. "
                         f"'n_points' must be at least 1.")
