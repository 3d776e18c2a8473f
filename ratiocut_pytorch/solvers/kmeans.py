__all__ = ['KMeansConfig', 'KMeansSolver']

import logging
from typing import Tuple

import numpy as np
import torch

from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.utils.checks import check_buffer, expects
from ratiocut_pytorch.utils.config import SolverConfig
from ratiocut_pytorch.utils.sample import farthest_point_sampling


class KMeansConfig(SolverConfig):
    """
    Configuration of the k-means cluster solver, can be overridden by kwargs
    """
    n_clusters = 2
    max_iter = 300
    tol = 1e-4  # stop when the relative change of the distortion is below tol
    n_init = 10  # number of restarts, the run with the lowest distortion is kept
    seed = None  # None uses the handle seed, restart i is seeded with seed + i
    init = "k-means++"  # or "fps", farthest point sampling


class KMeansSolver:
    """
    Lloyd's k-means on the rows of the embedding.

    Lloyd's iterations are restarted ``n_init`` times from different seeds and the
    labels of the run with the lowest distortion are kept. The residual is that run's
    distortion, the sum of squared distances of every point to its centroid, and the
    iteration count is that run's count. A centroid that loses all its points is moved
    to the point farthest from its own centroid.

    Args:
        n_clusters (int): number of clusters
        **kwargs: overrides of KMeansConfig
    """

    def __init__(self, n_clusters: int = 2, **kwargs):
        self.config = KMeansConfig(n_clusters=n_clusters, **kwargs)

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
        expects(config.max_iter >= 1, f"max_iter must be positive, got {config.max_iter}")
        expects(config.n_init >= 1, f"n_init must be positive, got {config.n_init}")
        expects(config.init in ("k-means++", "fps"), f"Invalid init: {config.init}")
        check_buffer(embedding, "embedding", (n, dim))
        check_buffer(clusters, "clusters", (n,))

        seed = handle.seed if config.seed is None else config.seed
        X = embedding.to(handle.device)
        if not torch.is_floating_point(X):
            X = X.double()

        best = None
        for i in range(config.n_init):
            run = self._lloyd(X, k, seed + i)
            if best is None or run[1] < best[1]:
                best = run
        labels, residual, iterations = best
        logging.debug("k-means kept distortion %.6g out of %d runs", residual, config.n_init)

        clusters.copy_(labels)
        return residual, iterations

    def _lloyd(self, X, k, seed):
        config = self.config
        if config.init == "fps":
            # seeds are drawn from every row, not from a random subset
            indices = farthest_point_sampling(X, k, max_draw_ratio=X.shape[0],
                                              generator=np.random.default_rng(seed))
            centroids = X[torch.from_numpy(indices).to(X.device)].clone()
        else:
            centroids = _kmeans_plusplus(X, k, torch.Generator().manual_seed(seed))

        prev_residual = None
        for iterations in range(1, config.max_iter + 1):
            dist, labels = _assign(X, centroids)
            residual = dist.sum().item()
            if prev_residual is not None and abs(prev_residual - residual) <= config.tol * prev_residual:
                break
            prev_residual = residual
            centroids = _update_centroids(X, labels, dist, k)
        else:
            logging.info("k-means stopped at max_iter=%d, distortion %.6g", config.max_iter, residual)
        return labels, residual, iterations


def _assign(X, centroids):
    dist = torch.cdist(X, centroids) ** 2
    dist, labels = dist.min(dim=1)
    return dist, labels


def _update_centroids(X, labels, dist, k):
    counts = torch.bincount(labels, minlength=k)
    sums = torch.zeros(k, X.shape[1], device=X.device, dtype=X.dtype).index_add_(0, labels, X)
    centroids = sums / counts.clamp_min(1).to(X.dtype)[:, None]
    empty = torch.nonzero(counts == 0).flatten().tolist()
    if empty:
        logging.debug("re-seeding %d empty k-means clusters", len(empty))
        dist = dist.clone()
        for c in empty:
            far = dist.argmax()
            centroids[c] = X[far]
            dist[far] = 0
    return centroids


def _kmeans_plusplus(X, k, generator):
    n = X.shape[0]
    first = torch.randint(n, (1,), generator=generator).item()
    chosen = [first]
    closest = (torch.cdist(X, X[first:first + 1]) ** 2).squeeze(1)
    for _ in range(1, k):
        weights = closest.double().cpu()
        if weights.sum() <= 0:
            # fewer distinct points than clusters, draw uniformly among the unused ones
            weights = torch.ones(n, dtype=torch.float64)
            weights[chosen] = 0
        index = torch.multinomial(weights, 1, generator=generator).item()
        chosen.append(index)
        d = (torch.cdist(X, X[index:index + 1]) ** 2).squeeze(1)
        closest = torch.minimum(closest, d)
    return X[chosen].clone()
