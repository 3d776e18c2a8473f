from typing import Protocol, Tuple, runtime_checkable

import torch

from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.laplacian import LaplacianOperator


@runtime_checkable
class EigenSolver(Protocol):
    """
    Computes the smallest eigenpairs of a Laplacian operator.

    ``config.n_eig`` is the number of eigenpairs, ``config.max_iter`` the iteration cap.
    Eigenvalues are written in ascending order into ``eig_vals`` (n_eig,), the matching
    orthonormal eigenvectors into the columns of ``eig_vecs`` (n, n_eig). The return value
    is the number of iterations used, equal to ``config.max_iter`` when the solver did not
    converge. Non-convergence is never raised.
    """

    config: object

    def solve_smallest_eigenvectors(
            self,
            handle: Handle,
            operator: LaplacianOperator,
            eig_vals: torch.Tensor,
            eig_vecs: torch.Tensor,
    ) -> int:
        ...


@runtime_checkable
class ClusterSolver(Protocol):
    """
    Assigns the rows of an embedding to ``config.n_clusters`` clusters.

    Writes labels in [0, n_clusters) into ``clusters`` (n,) and returns
    ``(residual, iterations)``, reported whether or not the solver converged.
    """

    config: object

    def solve(
            self,
            handle: Handle,
            n: int,
            dim: int,
            embedding: torch.Tensor,
            clusters: torch.Tensor,
    ) -> Tuple[float, int]:
        ...
