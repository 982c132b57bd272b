from __future__ import annotations

import logging

import numpy as np

from sdcintegration.analysis.node import Node
from sdcintegration.analysis.finite_elements.edges import LineElement, Line2

logger = logging.getLogger(__name__)


class IntervalMesh:
    def __init__(
        self,
        nodes: list[Node],
        elements: list[LineElement],
        length: float,
        periodic: bool,
    ) -> None:
        """
        Initialize the IntervalMesh class.

        Args:
            nodes: Mesh nodes in any order, stored sorted by index.
            elements: Line elements covering the interval.
            length: Length of the interval [0, length).
            periodic: Whether the last element wraps around to the first node.
        """
        self.nodes = sorted(nodes, key=lambda node: node.uid)
        self.elements = elements
        self.length = length
        self.periodic = periodic

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(nodes={len(self.nodes)}, elements={len(self.elements)}, "
                f"length={self.length}, periodic={self.periodic})")

    @classmethod
    def periodic_interval(cls, num_elements: int, length: float = 1.0) -> IntervalMesh:
        """
        Build a uniform periodic mesh of two-node elements on [0, length).

        The node at x = length is identified with the node at x = 0, so the mesh
        has as many nodes as elements.

        Raises:
            ValueError: If fewer than 3 elements are requested or the length is not positive.
        """
        if num_elements < 3:
            raise ValueError(f"A periodic mesh needs at least 3 elements, got {num_elements}.")
        if length <= 0.0:
            raise ValueError(f"Mesh length must be positive, got {length}.")

        h = length / num_elements
        nodes = [Node(index=i, coords=[i * h]) for i in range(num_elements)]

        elements: list[LineElement] = []
        for i in range(num_elements - 1):
            elements.append(Line2(index=i, nodes=[nodes[i], nodes[i + 1]]))

        # Closing element: last node to the image of node 0 at x = length
        last = num_elements - 1
        elements.append(Line2(
            index=last,
            nodes=[nodes[last], nodes[0]],
            x=np.array([last * h, length], dtype=np.float64),
        ))

        logger.debug(f"Created periodic mesh with {num_elements} elements, h={h:.4e}")
        return cls(nodes=nodes, elements=elements, length=length, periodic=True)

    @property
    def coordinates(self) -> np.ndarray:
        """Node x-coordinates in degree-of-freedom order."""
        return np.array([node.x for node in self.nodes], dtype=np.float64)

    @property
    def element_size(self) -> float:
        return self.length / len(self.elements)
