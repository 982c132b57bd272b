from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt


class Node:
    """
    Represents a mesh node carrying one degree of freedom.
    """
    def __init__(
        self,
        index: int,
        coords: list[float] | npt.NDArray[np.float64],
    ) -> None:
        """
        Initialize the node with coordinates.

        Args:
            index: Zero-based node index, also its global degree of freedom.
            coords: Coordinates of the node in the global system [X].
        """
        self.coords = np.array(coords, dtype=np.float64).reshape(-1)
        self.uid = index

    def __repr__(self) -> str:
        """String representation of the node."""
        return f"{self.__class__.__name__}(id={self.uid}, coords={self.coords})"

    @property
    def x(self) -> float:
        """X-coordinate of the node."""
        return float(self.coords[0])
