__all__ = ['PartitionStats', 'PartitionCost', 'partition', 'analyze_partition', 'construct_indicator']

import logging
from typing import NamedTuple, Optional, Tuple

import torch

from ratiocut_pytorch.graph import WeightedGraph
from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.laplacian import LaplacianOperator
from ratiocut_pytorch.solvers.base import ClusterSolver, EigenSolver
from ratiocut_pytorch.utils.checks import check_buffer, expects
from ratiocut_pytorch.whiten import whiten


class PartitionStats(NamedTuple):
    eigensolver_iterations: int
    cluster_residual: float
    cluster_iterations: int


class PartitionCost(NamedTuple):
    edge_cut: float  # total weight of the edges between clusters
    cost: float  # sum over clusters of boundary weight / cluster size
    cluster_sizes: Optional[torch.Tensor] = None  # (n_clusters,)
    cluster_edge_cuts: Optional[torch.Tensor] = None  # (n_clusters,) boundary weight of each cluster


def partition(
        handle: Handle,
        graph: WeightedGraph,
        eigen_solver: EigenSolver,
        cluster_solver: ClusterSolver,
        clusters: torch.Tensor,
        eig_vals: torch.Tensor,
        eig_vecs: torch.Tensor,
        whiten_method: str = "row_normalize",
) -> PartitionStats:
    """Spectral graph partition.

    Computes a partition of a weighted undirected graph that attempts to minimize
        Cost = sum_i (edges cut by ith partition) / (vertices in ith partition)
    from the smallest eigenvectors of the graph Laplacian.

    All outputs are written into caller owned buffers, the graph is not modified.

    Args:
        handle (Handle): execution context
        graph (WeightedGraph): symmetric non-negative adjacency in CSR format
        eigen_solver (EigenSolver): computes ``eigen_solver.config.n_eig`` eigenpairs
        cluster_solver (ClusterSolver): splits the embedding into ``cluster_solver.config.n_clusters`` parts
        clusters (torch.Tensor): output, shape (n,), integer partition assignments
        eig_vals (torch.Tensor): output, shape (n_eig,), eigenvalues in ascending order
        eig_vecs (torch.Tensor): output, shape (n, n_eig), whitened eigenvectors, one row per vertex
        whiten_method (str): see ``whiten``
    Returns:
        PartitionStats: eigensolver iterations, cluster solver residual, cluster solver iterations
    Examples:
        >>> with Handle(device='auto') as handle:
        ...     stats = partition(handle, graph, LanczosSolver(n_eig=4), KMeansSolver(n_clusters=4),
        ...                       clusters, eig_vals, eig_vecs)
        >>> stats.eigensolver_iterations, stats.cluster_residual, stats.cluster_iterations
    """
    expects(clusters is not None, "Null clusters buffer.")
    expects(eig_vals is not None, "Null eigVals buffer.")
    expects(eig_vecs is not None, "Null eigVecs buffer.")

    n = graph.n_vertices
    n_eig = eigen_solver.config.n_eig
    n_clusters = cluster_solver.config.n_clusters
    expects(0 < n_eig <= n, f"number of eigenvectors ({n_eig}) must be in [1, {n}]")
    expects(0 < n_clusters <= n, f"number of clusters ({n_clusters}) must be in [1, {n}]")
    check_buffer(clusters, "clusters", (n,))
    expects(not torch.is_floating_point(clusters) and not torch.is_complex(clusters),
            f"clusters buffer must hold integer labels, got {clusters.dtype}")
    check_buffer(eig_vals, "eigVals", (n_eig,))
    check_buffer(eig_vecs, "eigVecs", (n, n_eig))

    laplacian = LaplacianOperator(handle, graph)

    iters_eig = eigen_solver.solve_smallest_eigenvectors(handle, laplacian, eig_vals, eig_vecs)
    logging.debug("eigensolver finished after %d iterations, eigenvalues %s", iters_eig, eig_vals.tolist())

    whiten(eig_vecs, method=whiten_method)

    residual, iters_cluster = cluster_solver.solve(handle, n, n_eig, eig_vecs, clusters)

    handle.synchronize()
    return PartitionStats(int(iters_eig), float(residual), int(iters_cluster))


@torch.no_grad()
def construct_indicator(
        laplacian: LaplacianOperator,
        index: int,
        clusters: torch.Tensor,
) -> Tuple[float, float]:
    """Size and boundary weight of one cluster.

    The boundary weight is ``x^T L x`` for the indicator vector x of the cluster,
    the total weight of the edges with exactly one end in the cluster.

    Returns:
        (float, float): cluster size, boundary weight. Size 0 for an empty cluster.
    """
    indicator = (clusters.to(laplacian.device) == index).to(laplacian.dtype)
    size = indicator.sum().item()
    if size == 0:
        return 0.0, 0.0
    return size, laplacian.quadratic_form(indicator).item()


@torch.no_grad()
def analyze_partition(
        handle: Handle,
        graph: WeightedGraph,
        n_clusters: int,
        clusters: torch.Tensor,
) -> PartitionCost:
    """Edge cut and ratio cut cost of a partition.

        Cost = sum_i (edges cut by ith partition) / (vertices in ith partition)

    Empty clusters are reported with a warning and left out of both sums.

    Args:
        handle (Handle): execution context
        graph (WeightedGraph): the partitioned graph, weighted and undirected
        n_clusters (int): number of partitions
        clusters (torch.Tensor): shape (n,), partition assignments in [0, n_clusters)
    Returns:
        PartitionCost: total edge cut, total cost, and the per cluster sizes and boundary weights
    """
    expects(clusters is not None, "Null clusters buffer.")
    n = graph.n_vertices
    expects(n_clusters > 0, f"n_clusters must be positive, got {n_clusters}")
    check_buffer(clusters, "clusters", (n,))
    expects(not torch.is_floating_point(clusters) and not torch.is_complex(clusters),
            f"clusters buffer must hold integer labels, got {clusters.dtype}")
    if n > 0:
        expects(int(clusters.min()) >= 0 and int(clusters.max()) < n_clusters,
                f"cluster labels must lie in [0, {n_clusters})")

    laplacian = LaplacianOperator(handle, graph)
    labels = clusters.to(device=laplacian.device, dtype=torch.int64)

    cost = 0.0
    edge_cut = 0.0
    sizes = torch.zeros(n_clusters, dtype=torch.float64)
    boundary = torch.zeros(n_clusters, dtype=torch.float64)
    for i in range(n_clusters):
        size, part_edges_cut = construct_indicator(laplacian, i, labels)
        if size == 0:
            logging.warning("empty partition %d of %d, skipped in the cost", i, n_clusters)
            continue
        sizes[i] = size
        boundary[i] = part_edges_cut
        cost += part_edges_cut / size
        # every cut edge is on the boundary of two clusters
        edge_cut += part_edges_cut / 2

    handle.synchronize()
    return PartitionCost(edge_cut, cost, sizes, boundary)
