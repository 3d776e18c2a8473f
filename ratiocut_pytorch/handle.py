__all__ = ['Handle']

import logging

import torch

from ratiocut_pytorch.utils.device import auto_device, synchronize


class Handle:
    """
    Execution context for a partition session: device, floating dtype, random seed and,
    on CUDA, a dedicated stream that every kernel of the session is queued on.

    Acquire it once, pass it explicitly to every operation, and release it with the
    ``with`` statement. Leaving the block synchronizes the stream, also when an
    exception is propagating. A handle holds mutable state and is not thread safe,
    concurrent partitions need one handle each.

    Args:
        device (str): device, default 'auto' (auto detect GPU)
        dtype (torch.dtype): floating dtype of the numeric buffers, default None (keep the graph's dtype)
        seed (int): seed of the random generators handed to the solvers

    Examples:
        >>> from ratiocut_pytorch import Handle, partition
        >>> with Handle(device='cuda', seed=0) as handle:
        ...     stats = partition(handle, graph, eigen_solver, cluster_solver, clusters, eig_vals, eig_vecs)
    """

    def __init__(self, device: str = None, dtype: torch.dtype = None, seed: int = 0):
        self.device = torch.device(auto_device("", device))
        self.dtype = dtype
        self.seed = seed
        self.stream = None
        self._stream_ctx = None

    def __enter__(self) -> "Handle":
        if self.device.type == "cuda":
            self.stream = torch.cuda.Stream(device=self.device)
            self._stream_ctx = torch.cuda.stream(self.stream)
            self._stream_ctx.__enter__()
        logging.debug("acquired handle on %s", self.device)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        try:
            self.synchronize()
        finally:
            if self._stream_ctx is not None:
                self._stream_ctx.__exit__(exc_type, exc_value, traceback)
            self._stream_ctx = None
            self.stream = None
            logging.debug("released handle on %s", self.device)
        return False

    def synchronize(self):
        """Wait until every operation queued by this handle is finished."""
        if self.stream is not None:
            self.stream.synchronize()
        else:
            synchronize(self.device)

    def generator(self, offset: int = 0) -> torch.Generator:
        """CPU generator seeded from the handle, results do not depend on the device."""
        return torch.Generator().manual_seed(self.seed + offset)

    def randn(self, *size, dtype=None, offset: int = 0) -> torch.Tensor:
        dtype = dtype or self.dtype or torch.float32
        x = torch.randn(*size, generator=self.generator(offset), dtype=dtype)
        return x.to(self.device)

    def resolve_dtype(self, dtype: torch.dtype) -> torch.dtype:
        return self.dtype if self.dtype is not None else dtype

    def __repr__(self):
        return f"Handle(device={self.device}, dtype={self.dtype}, seed={self.seed})"
