__all__ = ['WeightedGraph']

from dataclasses import dataclass

import numpy as np
import scipy.sparse
import torch

from ratiocut_pytorch.utils.checks import expects


@dataclass(frozen=True, eq=False)
class WeightedGraph:
    """
    Weighted undirected graph in compressed sparse row format.

    The adjacency is expected to be symmetric with non-negative weights. Neither
    property is checked by the partition or analysis code, a graph breaking them gives
    silently wrong results; call ``validate()`` when the input is not trusted.

    Args:
        row_offsets (torch.Tensor): int64, shape (n + 1,), non-decreasing, starts at 0
        col_indices (torch.Tensor): int64, shape (m,), values in [0, n)
        weights (torch.Tensor): floating, shape (m,), non-negative
    """

    row_offsets: torch.Tensor
    col_indices: torch.Tensor
    weights: torch.Tensor

    @property
    def n_vertices(self) -> int:
        return self.row_offsets.shape[0] - 1

    @property
    def n_edges(self) -> int:
        return self.col_indices.shape[0]

    @property
    def device(self) -> torch.device:
        return self.weights.device

    @property
    def dtype(self) -> torch.dtype:
        return self.weights.dtype

    @classmethod
    def from_scipy(cls, matrix, dtype: torch.dtype = torch.float64, device: str = "cpu") -> "WeightedGraph":
        """Wrap a square ``scipy.sparse`` matrix, duplicate entries are summed."""
        matrix = scipy.sparse.csr_matrix(matrix, copy=True)
        expects(matrix.shape[0] == matrix.shape[1], f"adjacency must be square, got shape {matrix.shape}")
        matrix.sum_duplicates()
        return cls(
            row_offsets=torch.from_numpy(matrix.indptr.astype(np.int64)).to(device),
            col_indices=torch.from_numpy(matrix.indices.astype(np.int64)).to(device),
            weights=torch.from_numpy(matrix.data).to(device=device, dtype=dtype),
        )

    def to(self, device=None, dtype: torch.dtype = None) -> "WeightedGraph":
        return WeightedGraph(
            row_offsets=self.row_offsets.to(device=device, dtype=torch.int64),
            col_indices=self.col_indices.to(device=device, dtype=torch.int64),
            weights=self.weights.to(device=device, dtype=dtype),
        )

    def to_sparse_csr(self) -> torch.Tensor:
        n = self.n_vertices
        return torch.sparse_csr_tensor(
            self.row_offsets, self.col_indices, self.weights, size=(n, n)
        )

    def to_sparse_coo(self) -> torch.Tensor:
        n = self.n_vertices
        counts = self.row_offsets[1:] - self.row_offsets[:-1]
        rows = torch.repeat_interleave(torch.arange(n, device=self.device), counts)
        indices = torch.stack([rows, self.col_indices])
        return torch.sparse_coo_tensor(indices, self.weights, size=(n, n)).coalesce()

    def validate(self) -> "WeightedGraph":
        """Check the CSR structure and weight sign, raise ``ValueError`` on the first problem.

        Symmetry is checked as well, it costs a transpose of the adjacency.
        """
        n = self.n_vertices
        expects(self.row_offsets.ndim == 1 and n >= 0, "row_offsets must be a 1D tensor of length n + 1")
        expects(self.col_indices.shape == self.weights.shape,
                f"col_indices and weights length differ: {self.n_edges} vs {self.weights.shape[0]}")
        expects(torch.is_floating_point(self.weights), "weights must be a floating point tensor")
        expects(int(self.row_offsets[0]) == 0, "row_offsets must start at 0")
        expects(int(self.row_offsets[-1]) == self.n_edges, "row_offsets must end at the number of edges")
        expects(bool((self.row_offsets[1:] >= self.row_offsets[:-1]).all()), "row_offsets must be non-decreasing")
        if self.n_edges > 0:
            expects(int(self.col_indices.min()) >= 0 and int(self.col_indices.max()) < n,
                    f"col_indices must lie in [0, {n})")
            expects(bool((self.weights >= 0).all()), "edge weights must be non-negative")
            adjacency = self.to_sparse_coo()
            asymmetry = (adjacency - adjacency.t()).coalesce().values().abs()
            expects(asymmetry.numel() == 0 or float(asymmetry.max()) <= 1e-6 * float(self.weights.abs().max()),
                    "adjacency must be symmetric")
        return self
