__all__ = ['LobpcgConfig', 'LobpcgSolver']

import logging

import torch

from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.laplacian import LaplacianOperator
from ratiocut_pytorch.utils.checks import check_buffer, expects
from ratiocut_pytorch.utils.config import SolverConfig
from ratiocut_pytorch.utils.math import correct_rotation


class LobpcgConfig(SolverConfig):
    """
    Configuration of the LOBPCG eigensolver, can be overridden by kwargs
    """
    n_eig = 2
    max_iter = 1000
    tol = None  # None uses torch's default, sqrt of the dtype epsilon
    seed = None  # seed of the initial block, None uses the handle seed


class LobpcgSolver:
    """
    Smallest eigenpairs with torch.lobpcg, a block method that handles repeated
    eigenvalues without restarts. LOBPCG needs at least 3 * n_eig vertices, smaller
    graphs are solved exactly with a dense eigendecomposition (reported as 1 iteration).

    Args:
        n_eig (int): number of eigenpairs
        **kwargs: overrides of LobpcgConfig
    """

    def __init__(self, n_eig: int = 2, **kwargs):
        self.config = LobpcgConfig(n_eig=n_eig, **kwargs)

    @torch.no_grad()
    def solve_smallest_eigenvectors(
            self,
            handle: Handle,
            operator: LaplacianOperator,
            eig_vals: torch.Tensor,
            eig_vecs: torch.Tensor,
    ) -> int:
        config = self.config
        n = operator.n
        k = config.n_eig
        expects(0 < k <= n, f"n_eig must be in [1, {n}], got {k}")
        check_buffer(eig_vals, "eigVals", (k,))
        check_buffer(eig_vecs, "eigVecs", (n, k))

        if n < 3 * k:
            logging.debug("graph too small for lobpcg (n=%d, n_eig=%d), using dense eigh", n, k)
            theta, Y = torch.linalg.eigh(operator.to_dense())
            eig_vals.copy_(theta[:k])
            eig_vecs.copy_(correct_rotation(Y[:, :k]))
            return 1

        seed = handle.seed if config.seed is None else config.seed
        generator = torch.Generator().manual_seed(seed)
        X = torch.randn(n, k, generator=generator, dtype=operator.dtype).to(operator.device)

        steps = [0]

        def tracker(worker):
            steps[0] = worker.ivars['istep']

        theta, Y = torch.lobpcg(
            operator.to_sparse(),
            X=X,
            niter=config.max_iter,
            tol=config.tol,
            largest=False,
            tracker=tracker,
        )
        order = torch.argsort(theta)
        eig_vals.copy_(theta[order])
        eig_vecs.copy_(correct_rotation(Y[:, order]))
        return min(int(steps[0]), config.max_iter)
