__all__ = ['SpectralPartitioner', 'spectral_partition']

from typing import Tuple, Union

import torch

from ratiocut_pytorch.graph import WeightedGraph
from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.partition import PartitionCost, PartitionStats, analyze_partition, partition
from ratiocut_pytorch.solvers.axis_align import AxisAlignSolver
from ratiocut_pytorch.solvers.base import ClusterSolver, EigenSolver
from ratiocut_pytorch.solvers.kmeans import KMeansSolver
from ratiocut_pytorch.solvers.lanczos import LanczosSolver
from ratiocut_pytorch.solvers.lobpcg import LobpcgSolver

EIGEN_SOLVERS = {
    "lanczos": LanczosSolver,
    "lobpcg": LobpcgSolver,
}

CLUSTER_SOLVERS = {
    "kmeans": KMeansSolver,
    "axis_align": AxisAlignSolver,
}


def _make_solver(solver, registry, size, kwargs):
    if isinstance(solver, str):
        if solver not in registry:
            raise ValueError(f"Invalid solver: {solver}, choose from {list(registry)}")
        return registry[solver](size, **kwargs)
    if kwargs:
        raise ValueError("solver kwargs are only accepted together with a solver name")
    return solver


class SpectralPartitioner:
    """
    Class interface for ratio cut spectral partitioning, keeps the buffers of the last fit.

    Args:
        n_clusters (int): number of partitions
        n_eig (int): number of eigenvectors in the embedding, default n_clusters
        eigen_solver (str or EigenSolver): 'lanczos', 'lobpcg' or a solver instance
        cluster_solver (str or ClusterSolver): 'kmeans', 'axis_align' or a solver instance
        device (str): device, default 'auto' (auto detect GPU)
        dtype (torch.dtype): floating dtype of the computation, default None (graph dtype)
        seed (int): seed of the solvers' random generators
        whiten_method (str): 'row_normalize' or 'standardize'
        eigen_kwargs (dict): overrides of the eigensolver config, e.g. {'tol': 1e-8}
        cluster_kwargs (dict): overrides of the cluster solver config, e.g. {'max_iter': 100}

    Examples:
        >>> from ratiocut_pytorch import SpectralPartitioner, WeightedGraph
        >>> graph = WeightedGraph.from_scipy(adjacency)
        >>> partitioner = SpectralPartitioner(n_clusters=4)
        >>> clusters = partitioner.fit_predict(graph)
        >>> partitioner.stats.eigensolver_iterations, partitioner.eigval.shape  # int, (4,)
        >>> partitioner.analyze().cost
    """

    def __init__(
            self,
            n_clusters: int = 2,
            n_eig: int = None,
            eigen_solver: Union[str, EigenSolver] = "lanczos",
            cluster_solver: Union[str, ClusterSolver] = "kmeans",
            device: str = None,
            dtype: torch.dtype = None,
            seed: int = 0,
            whiten_method: str = "row_normalize",
            eigen_kwargs: dict = None,
            cluster_kwargs: dict = None,
    ):
        self.n_clusters = n_clusters
        self.n_eig = n_clusters if n_eig is None else n_eig
        self.eigen_solver = _make_solver(eigen_solver, EIGEN_SOLVERS, self.n_eig, eigen_kwargs or {})
        self.cluster_solver = _make_solver(cluster_solver, CLUSTER_SOLVERS, self.n_clusters, cluster_kwargs or {})
        self.device = device
        self.dtype = dtype
        self.seed = seed
        self.whiten_method = whiten_method

        self._graph = None
        self._clusters = None
        self._eigval = None
        self._eigvec = None
        self._stats = None

    @property
    def eigval(self) -> torch.Tensor:
        return self._eigval

    @property
    def eigvec(self) -> torch.Tensor:
        return self._eigvec

    @property
    def labels(self) -> torch.Tensor:
        return self._clusters

    @property
    def stats(self) -> PartitionStats:
        return self._stats

    def fit(self, graph: WeightedGraph) -> "SpectralPartitioner":
        """
        Partition the graph, store labels, eigenpairs and solver statistics.

        Args:
            graph (WeightedGraph): symmetric non-negative adjacency in CSR format
        Returns:
            partitioner (SpectralPartitioner): self
        """
        with Handle(device=self.device, dtype=self.dtype, seed=self.seed) as handle:
            n = graph.n_vertices
            dtype = handle.resolve_dtype(graph.dtype)
            clusters = torch.zeros(n, dtype=torch.int64, device=handle.device)
            eig_vals = torch.zeros(self.eigen_solver.config.n_eig, dtype=dtype, device=handle.device)
            eig_vecs = torch.zeros(n, self.eigen_solver.config.n_eig, dtype=dtype, device=handle.device)
            stats = partition(
                handle, graph, self.eigen_solver, self.cluster_solver,
                clusters, eig_vals, eig_vecs, whiten_method=self.whiten_method,
            )
        self._graph = graph
        self._clusters = clusters
        self._eigval = eig_vals
        self._eigvec = eig_vecs
        self._stats = stats
        return self

    def fit_predict(self, graph: WeightedGraph) -> torch.Tensor:
        """
        Returns:
            clusters (torch.Tensor): partition assignments, shape (n,)
        """
        return self.fit(graph).labels

    def analyze(self, graph: WeightedGraph = None, clusters: torch.Tensor = None) -> PartitionCost:
        """Edge cut and ratio cut cost, of the last fit unless graph and clusters are given."""
        graph = self._graph if graph is None else graph
        clusters = self._clusters if clusters is None else clusters
        if graph is None or clusters is None:
            raise ValueError("SpectralPartitioner has not been fitted yet. Call fit() first.")
        with Handle(device=self.device, dtype=self.dtype, seed=self.seed) as handle:
            return analyze_partition(handle, graph, self.n_clusters, clusters)

    def __call__(self, graph: WeightedGraph) -> torch.Tensor:
        return self.fit_predict(graph)


def spectral_partition(
        graph: WeightedGraph,
        n_clusters: int = 2,
        n_eig: int = None,
        device: str = None,
        **kwargs,
) -> Tuple[torch.Tensor, PartitionStats]:
    """Ratio cut spectral partition, function interface.

    Args:
        graph (WeightedGraph): symmetric non-negative adjacency in CSR format
        n_clusters (int): number of partitions
        n_eig (int): number of eigenvectors, default n_clusters
        device (str): device, default 'auto' (auto detect GPU)
        **kwargs: forwarded to SpectralPartitioner
    Returns:
        (torch.Tensor): partition assignments, shape (n,)
        (PartitionStats): solver statistics
    Examples:
        >>> from ratiocut_pytorch import spectral_partition
        >>> clusters, stats = spectral_partition(graph, n_clusters=3)
    """
    partitioner = SpectralPartitioner(n_clusters=n_clusters, n_eig=n_eig, device=device, **kwargs)
    partitioner.fit(graph)
    return partitioner.labels, partitioner.stats
