__all__ = ['LaplacianOperator']

import torch

from ratiocut_pytorch.graph import WeightedGraph
from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.utils.checks import expects


class LaplacianOperator:
    """
    Graph Laplacian ``L = D - W`` exposed only through its action on vectors.

    ``W`` stays in CSR form and ``D`` is kept as the degree vector, ``L`` is never
    densified. The operator is read only, so an eigensolver can apply it any number
    of times.

    Args:
        handle (Handle): execution context, the graph is moved to its device and dtype
        graph (WeightedGraph): symmetric, non-negative adjacency
    """

    def __init__(self, handle: Handle, graph: WeightedGraph):
        dtype = handle.resolve_dtype(graph.dtype)
        graph = graph.to(device=handle.device, dtype=dtype)
        self.n = graph.n_vertices
        self.dtype = dtype
        self.device = handle.device
        self._adjacency = graph.to_sparse_csr()
        ones = torch.ones(self.n, 1, device=self.device, dtype=dtype)
        self.degrees = (self._adjacency @ ones).squeeze(1)

    @property
    def shape(self):
        return (self.n, self.n)

    @torch.no_grad()
    def apply(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x (torch.Tensor): shape (n,) or (n, j)
        Returns:
            torch.Tensor: L @ x, same shape as x
        """
        expects(x.shape[0] == self.n, f"operand has {x.shape[0]} rows, Laplacian has {self.n}")
        squeeze = x.ndim == 1
        if squeeze:
            x = x.unsqueeze(1)
        x = x.to(device=self.device, dtype=self.dtype)
        y = self.degrees[:, None] * x - self._adjacency @ x
        return y.squeeze(1) if squeeze else y

    __matmul__ = apply

    @torch.no_grad()
    def quadratic_form(self, x: torch.Tensor) -> torch.Tensor:
        """``x^T L x`` for every column of x, shape (j,), or a scalar when x is 1D."""
        x = x.to(device=self.device, dtype=self.dtype)
        return (x * self.apply(x)).sum(0)

    def to_sparse(self) -> torch.Tensor:
        """Sparse COO copy of L, for solvers that need an explicit matrix."""
        adjacency = self._adjacency.to_sparse_coo()
        diagonal = torch.arange(self.n, device=self.device)
        degree_matrix = torch.sparse_coo_tensor(
            torch.stack([diagonal, diagonal]), self.degrees, size=self.shape
        )
        return (degree_matrix - adjacency).coalesce()

    def to_dense(self) -> torch.Tensor:
        return torch.diag(self.degrees) - self._adjacency.to_dense()
