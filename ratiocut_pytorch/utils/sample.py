__all__ = ["farthest_point_sampling"]

import fpsample
import numpy as np
import torch

from .device import auto_device
from .math import pca_lowrank


@torch.no_grad()
def farthest_point_sampling(
    X: torch.Tensor,
    n_sample: int,
    max_draw_ratio: float = 4.0,
    device: str = None,
    generator: np.random.Generator = None,
):
    """Indices of ``n_sample`` well spread rows of ``X``.

    When ``X`` is much larger than ``n_sample``, a random subset of
    ``n_sample * max_draw_ratio`` rows is drawn first to bound the cost.

    Returns:
        np.ndarray: int64 row indices, shape (min(n_sample, len(X)),)
    """
    num_data = X.shape[0]

    num_draw = int(n_sample * max_draw_ratio)
    if num_draw > num_data:
        return _farthest_point_sampling(X, n_sample, device=device)

    generator = generator if generator is not None else np.random.default_rng()
    draw_indices = generator.permutation(num_data)[:num_draw]
    sampled_indices = _farthest_point_sampling(
        X[torch.from_numpy(draw_indices)],
        n_sample=n_sample,
        device=device,
    )
    return draw_indices[sampled_indices]


@torch.no_grad()
def _farthest_point_sampling(
    X: torch.Tensor,
    n_sample: int,
    h: int = 7,
    device: str = None,
):
    num_data = X.shape[0]
    if n_sample >= num_data:
        return np.arange(num_data)

    if isinstance(X, np.ndarray):
        X = torch.from_numpy(X)

    device = auto_device(X.device, device)
    X = X.to(device)

    # kdline buckets only support up to 8 dimensions
    if X.shape[1] > 8:
        X = pca_lowrank(X, q=8)

    assert X.ndim == 2, "X should be a 2D tensor"
    assert X.shape[0] > 0, "X should have at least 1 data point"
    assert X.shape[1] > 0, "X should have at least 1 dimension"
    assert not torch.any(torch.isnan(X)), "X contains NaN"
    assert not torch.any(torch.isinf(X)), "X contains Inf"

    h = max(1, min(h, int(np.log2(num_data))))
    samples_idx = fpsample.bucket_fps_kdline_sampling(
        X.to(torch.float32).cpu().numpy(), n_sample, h
    )
    return samples_idx.astype(np.int64)
