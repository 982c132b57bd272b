from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from sdcintegration.exceptions import ConfigurationError, DimensionMismatch

if TYPE_CHECKING:
    import numpy.typing as npt


class StateVector:
    """
    Fixed-dimension numeric container for the state at one collocation node.
    """

    __slots__ = ("_values",)

    def __init__(self, dimension: int) -> None:
        """
        Initialize a zero vector.

        Args:
            dimension: Number of spatial degrees of freedom.
        """
        self._values: npt.NDArray[np.float64] = np.zeros((dimension,), dtype=np.float64)

    @classmethod
    def from_array(cls, array: npt.ArrayLike) -> StateVector:
        """Create a vector holding a copy of a 1-D array."""
        data = np.array(array, dtype=np.float64).reshape(-1)
        vector = cls(data.size)
        vector._values[:] = data
        return vector

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimension={self.dimension}, norm={self.infinity_norm():.3e})"

    def __len__(self) -> int:
        return self._values.size

    @property
    def dimension(self) -> int:
        """Number of degrees of freedom."""
        return self._values.size

    @property
    def values(self) -> npt.NDArray[np.float64]:
        """Underlying array (a view, writes go through)."""
        return self._values

    def _check(self, other: StateVector) -> None:
        if other.dimension != self.dimension:
            raise DimensionMismatch(expected=self.dimension, actual=other.dimension)

    def zero(self) -> StateVector:
        self._values.fill(0.0)
        return self

    def assign(self, other: StateVector) -> StateVector:
        """Overwrite the values with those of `other`."""
        self._check(other)
        self._values[:] = other._values
        return self

    def axpy(self, alpha: float, other: StateVector) -> StateVector:
        """
        In-place scaled accumulation ``self += alpha * other``.

        Raises:
            DimensionMismatch: If the dimensions differ.
        """
        self._check(other)
        self._values += alpha * other._values
        return self

    def copy(self) -> StateVector:
        return StateVector.from_array(self._values)

    def infinity_norm(self) -> float:
        """Maximum absolute component."""
        if self._values.size == 0:
            return 0.0
        return float(np.max(np.abs(self._values)))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._values)))


class VectorFactory:
    """Produces zero-initialized state vectors of the problem dimension."""

    def __init__(self, dimension: int) -> None:
        if dimension < 1:
            raise ConfigurationError(f"Vector dimension must be positive, got {dimension}.")
        self.dimension = dimension

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimension={self.dimension})"

    def create(self) -> StateVector:
        return StateVector(self.dimension)

    def wrap(self, array: npt.ArrayLike) -> StateVector:
        """
        Create a vector from an array of this factory's dimension.

        Raises:
            DimensionMismatch: If the array size differs.
        """
        vector = StateVector.from_array(array)
        if vector.dimension != self.dimension:
            raise DimensionMismatch(expected=self.dimension, actual=vector.dimension)
        return vector
