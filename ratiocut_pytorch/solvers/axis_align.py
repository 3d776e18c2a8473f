__all__ = ['AxisAlignConfig', 'AxisAlignSolver', 'axis_align']

from typing import Tuple

import numpy as np
import torch
import torch.nn.functional as F

from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.utils.checks import check_buffer, expects
from ratiocut_pytorch.utils.config import SolverConfig
from ratiocut_pytorch.utils.sample import farthest_point_sampling


class AxisAlignConfig(SolverConfig):
    """
    Configuration of the axis alignment cluster solver, can be overridden by kwargs
    """
    n_clusters = 2
    max_iter = 1000
    n_sample = 10240  # rows used to fit the rotation, all rows when the graph is smaller
    seed = None


class AxisAlignSolver:
    """
    Multiclass Spectral Clustering, SX Yu, J Shi, 2003

    Finds the rotation that brings the row-normalized embedding closest to one-hot
    cluster indicators; a vertex belongs to the axis it is rotated onto. The residual is
    the discretization objective ``2 * (n_sample - trace)``. Needs ``dim >= n_clusters``.

    Args:
        n_clusters (int): number of clusters
        **kwargs: overrides of AxisAlignConfig
    """

    def __init__(self, n_clusters: int = 2, **kwargs):
        self.config = AxisAlignConfig(n_clusters=n_clusters, **kwargs)

    @torch.no_grad()
    def solve(
            self,
            handle: Handle,
            n: int,
            dim: int,
            embedding: torch.Tensor,
            clusters: torch.Tensor,
    ) -> Tuple[float, int]:
        config = self.config
        k = config.n_clusters
        expects(0 < k <= n, f"n_clusters must be in [1, {n}], got {k}")
        expects(dim >= k, f"axis alignment needs at least n_clusters={k} embedding columns, got {dim}")
        check_buffer(embedding, "embedding", (n, dim))
        check_buffer(clusters, "clusters", (n,))

        seed = handle.seed if config.seed is None else config.seed
        eigvec = embedding.to(handle.device)
        R, residual, iterations = axis_align(
            eigvec, k, max_iter=config.max_iter, n_sample=config.n_sample,
            rng=np.random.default_rng(seed),
        )
        clusters.copy_((F.normalize(eigvec, dim=1) @ R).argmax(dim=1))
        return residual, iterations


@torch.no_grad()
def axis_align(eigvec: torch.Tensor, n_clusters: int, max_iter=1000, n_sample=10240, rng=None):
    """
    Args:
        eigvec (torch.Tensor): continuous embedding, shape (n, dim), dim >= n_clusters
        n_clusters (int): number of axes to align to
        max_iter (int, optional): Maximum number of iterations.
        n_sample (int, optional): Number of rows used to fit the rotation.
    Returns:
        torch.Tensor: Rotation matrix, shape (dim, n_clusters).
        float: discretization objective
        int: number of iterations
    """
    # subsample the rows, to speed up the computation
    sample_idx = farthest_point_sampling(eigvec, n_sample, generator=rng)
    eigvec = eigvec[torch.from_numpy(sample_idx).to(eigvec.device)]
    n = eigvec.shape[0]

    original_dtype = eigvec.dtype
    eigvec = F.normalize(eigvec.to(torch.float32) if original_dtype in (torch.float16, torch.bfloat16) else eigvec, dim=1)

    # Initialize R with well separated rows
    _sample_idx = farthest_point_sampling(eigvec, n_clusters, max_draw_ratio=n, generator=rng)
    R = eigvec[torch.from_numpy(_sample_idx).to(eigvec.device)].T

    last_objective_value = 0.0
    objective_value = 0.0
    iterations = 0
    for iterations in range(1, max_iter + 1):
        # Discretize the projected embedding
        _discrete = _onehot_discretize(eigvec @ R).to(eigvec.dtype)

        U, S, Vh = torch.linalg.svd(_discrete.T @ eigvec, full_matrices=False)
        objective_value = 2 * (n - torch.sum(S).item())

        if abs(objective_value - last_objective_value) < torch.finfo(torch.float32).eps:
            break
        last_objective_value = objective_value
        R = Vh.T @ U.T

    return R.to(original_dtype), objective_value, iterations


def _onehot_discretize(eigvec):
    _, max_idx = torch.max(eigvec, dim=1)
    return F.one_hot(max_idx, num_classes=eigvec.shape[1])  # (n, k) one-hot
