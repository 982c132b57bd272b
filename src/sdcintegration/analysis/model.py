from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

import numpy as np
import scipy as sp
import scipy.sparse

if TYPE_CHECKING:
    import numpy.typing as npt

    from sdcintegration.analysis.finite_elements.edges import LineElement
    from sdcintegration.analysis.mesh import IntervalMesh

logger = logging.getLogger(__name__)


class Model:
    """
    Class represents the assembled finite element model.

    It owns the global sparse mass [M], stiffness [K] and advection [C] matrices of a mesh.
    """
    def __init__(
        self,
        mesh: IntervalMesh,
    ) -> None:
        """Initialize the Model object and assemble its global matrices."""
        self.mesh = mesh

        self.n_dof_per_node: int = 1

        # Precompute sparsity pattern and scatter vectors, shared by M, K and C
        self._A_struct, self._A_scatter = self._precompute_pattern_and_scatter(elements=self.mesh.elements)

        self.m_global: sp.sparse.csr_matrix = self._assemble_global_matrix_fast(
            A=self._A_struct.copy(),
            elements=self.mesh.elements,
            scatter_list=self._A_scatter,
            get_local_matrix=lambda element: element.get_mass_matrix()
        )
        self.k_global: sp.sparse.csr_matrix = self._assemble_global_matrix_fast(
            A=self._A_struct.copy(),
            elements=self.mesh.elements,
            scatter_list=self._A_scatter,
            get_local_matrix=lambda element: element.get_stiffness_matrix()
        )
        self.c_global: sp.sparse.csr_matrix = self._assemble_global_matrix_fast(
            A=self._A_struct.copy(),
            elements=self.mesh.elements,
            scatter_list=self._A_scatter,
            get_local_matrix=lambda element: element.get_advection_matrix()
        )

        logger.debug(f"Assembled global matrices: {self.number_of_equations} equations, "
                     f"{self.m_global.nnz} non-zeros per matrix")

    @property
    def number_of_nodes(self) -> int:
        """Return the number of nodes in the model."""
        return len(self.mesh.nodes)

    @property
    def number_of_elements(self) -> int:
        """Return the number of elements in the model."""
        return len(self.mesh.elements)

    @property
    def number_of_equations(self) -> int:
        """Return the total number of equations in the model."""
        return self.number_of_nodes * self.n_dof_per_node

    def _precompute_pattern_and_scatter(
        self,
        elements: list[LineElement],
    ) -> tuple[sp.sparse.csr_matrix, npt.NDArray[np.int64]]:
        """
        Build the shared sparsity pattern and the element scatter table.

        Returns:
            A_template: CSR matrix with the final indptr/indices and zero data.
            scatter: (n_elements, n_local**2) array, row e lists the positions in
                     A_template.data that receive Ke.ravel(order="C") of element e.
        """
        if not elements:
            raise ValueError("No elements found in the model mesh.")

        connectivity = np.array([element.global_dofs for element in elements], dtype=np.int64)
        n_local = connectivity.shape[1]

        # Row-major (a, b) pairs of every element matrix
        rows = np.repeat(connectivity, n_local, axis=1)
        cols = np.tile(connectivity, (1, n_local))

        neq = self.number_of_equations
        A_template = sp.sparse.coo_matrix(
            (np.ones(rows.size, dtype=np.float64), (rows.ravel(), cols.ravel())),
            shape=(neq, neq),
        ).tocsr()
        A_template.sum_duplicates()
        A_template.data[:] = 0.0

        # Stored entries sorted by (row, col) give monotone keys row * neq + col
        stored_rows = np.repeat(np.arange(neq, dtype=np.int64), np.diff(A_template.indptr))
        stored_keys = stored_rows * neq + A_template.indices
        scatter = np.searchsorted(stored_keys, rows * neq + cols)

        return A_template, scatter

    @staticmethod
    def _assemble_global_matrix_fast(
        A: sp.sparse.csr_matrix,
        elements: list[LineElement],
        scatter_list: npt.NDArray[np.int64],
        get_local_matrix: Callable[[LineElement], npt.NDArray[np.float64]]
    ) -> sp.sparse.csr_matrix:
        """
        Assemble a global matrix in CSR form using a provided function to get the element matrix.

        Args:
            A: The global matrix to assemble (in CSR format).
            elements: List of finite elements to assemble from.
            scatter_list: Precomputed scatter list for the elements.
            get_local_matrix: Function to get the local element matrix.

        Returns:
            The assembled global matrix in CSR format.
        """
        A.data[:] = 0.0
        for i, element in enumerate(elements):
            Ke = np.asarray(get_local_matrix(element), dtype=np.float64)
            A.data[scatter_list[i]] += Ke.ravel(order="C")
        return A
