__all__ = ['LanczosConfig', 'LanczosSolver']

import logging

import torch

from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.laplacian import LaplacianOperator
from ratiocut_pytorch.utils.checks import check_buffer, expects
from ratiocut_pytorch.utils.config import SolverConfig
from ratiocut_pytorch.utils.math import correct_rotation, orthogonalize


class LanczosConfig(SolverConfig):
    """
    Configuration of the restarted Lanczos eigensolver, can be overridden by kwargs
    """
    n_eig = 2  # number of eigenpairs
    max_iter = 4000  # cap on operator applications over all restarts
    restart_iter = 100  # size of the Krylov basis before a restart
    tol = 1e-6  # residual tolerance, relative to the largest Ritz value
    seed = None  # seed of the starting vector, None uses the handle seed


class LanczosSolver:
    """
    Smallest eigenpairs of a symmetric operator by thick-restart Lanczos.

    Every new Lanczos vector is orthogonalized against the whole basis. When the
    basis reaches ``restart_iter`` vectors the wanted Ritz vectors (plus half of the
    remaining room) are kept and the expansion continues from their residual. A Krylov
    breakdown, e.g. the invariant subspace of one connected component, is continued
    with a random direction, so repeated eigenvalues are found as well.

    Args:
        n_eig (int): number of eigenpairs
        **kwargs: overrides of LanczosConfig

    Examples:
        >>> solver = LanczosSolver(n_eig=4, tol=1e-8)
        >>> iters = solver.solve_smallest_eigenvectors(handle, laplacian, eig_vals, eig_vecs)
    """

    def __init__(self, n_eig: int = 2, **kwargs):
        self.config = LanczosConfig(n_eig=n_eig, **kwargs)

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
        expects(config.max_iter >= k, f"max_iter ({config.max_iter}) must be at least n_eig ({k})")
        check_buffer(eig_vals, "eigVals", (k,))
        check_buffer(eig_vecs, "eigVecs", (n, k))

        basis_size = min(max(config.restart_iter, k + 1), n)
        seed = handle.seed if config.seed is None else config.seed
        generator = torch.Generator().manual_seed(seed)

        def random_direction():
            x = torch.randn(n, generator=generator, dtype=operator.dtype)
            return x.to(operator.device)

        q = random_direction()
        Q = (q / torch.linalg.vector_norm(q))[:, None]
        AQ = Q.new_empty(n, 0)
        iterations = 0
        n_restart = 0

        while True:
            # expand the basis, AQ holds L @ Q for the first AQ.shape[1] columns
            while AQ.shape[1] < Q.shape[1] and iterations < config.max_iter:
                w = operator.apply(Q[:, AQ.shape[1]])
                iterations += 1
                AQ = torch.cat([AQ, w[:, None]], dim=1)
                if Q.shape[1] < basis_size:
                    q = _next_direction(w, Q, random_direction)
                    Q = torch.cat([Q, q[:, None]], dim=1)
            Q = Q[:, :AQ.shape[1]]

            # Rayleigh-Ritz on the current basis
            H = Q.T @ AQ
            H = (H + H.T) / 2
            theta, S = torch.linalg.eigh(H)
            Y = Q @ S
            AY = AQ @ S
            width = Q.shape[1]
            residuals = AY[:, :k] - Y[:, :k] * theta[:k]
            residual_norms = torch.linalg.vector_norm(residuals, dim=0)
            scale = max(1.0, theta.abs().max().item())
            converged = bool((residual_norms <= config.tol * scale).all())

            if converged or iterations >= config.max_iter or width == n:
                break

            n_keep = min(width - 1, k + (basis_size - k) // 2)
            n_restart += 1
            logging.debug(
                "lanczos restart %d after %d iterations, max residual %.3e",
                n_restart, iterations, residual_norms.max().item(),
            )
            Q_keep = Y[:, :n_keep]
            r = residuals[:, residual_norms.argmax()]
            r = _next_direction(r, Q_keep, random_direction)
            Q = torch.cat([Q_keep, r[:, None]], dim=1)
            AQ = AY[:, :n_keep]

        if not converged and width < n:
            logging.info("lanczos stopped at max_iter=%d without reaching tol=%g", config.max_iter, config.tol)

        eig_vals.copy_(theta[:k])
        eig_vecs.copy_(correct_rotation(Y[:, :k]))
        return iterations


def _next_direction(w, basis, random_direction):
    # unit vector along w orthogonal to basis, random when w lies in span(basis)
    norm_w = torch.linalg.vector_norm(w).item()
    r = orthogonalize(w, basis)
    norm_r = torch.linalg.vector_norm(r).item()
    breakdown = 1e3 * torch.finfo(w.dtype).eps * max(norm_w, 1.0)
    while norm_r <= breakdown:
        r = orthogonalize(random_direction(), basis)
        norm_r = torch.linalg.vector_norm(r).item()
        breakdown = 1e3 * torch.finfo(w.dtype).eps
    return r / norm_r
