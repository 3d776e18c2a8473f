import logging

import pytest
import torch

from ratiocut_pytorch import (
    KMeansSolver,
    LanczosSolver,
    LaplacianOperator,
    LobpcgSolver,
    AxisAlignSolver,
    PartitionStats,
    analyze_partition,
    construct_indicator,
    partition,
)


def _buffers(n, n_eig):
    clusters = torch.zeros(n, dtype=torch.int64)
    eig_vals = torch.zeros(n_eig, dtype=torch.float64)
    eig_vecs = torch.zeros(n, n_eig, dtype=torch.float64)
    return clusters, eig_vals, eig_vecs


class TestPartition:
    """Test the spectral partition pipeline."""

    def test_disconnected_components(self, handle, two_cliques_graph):
        """Test that two components without edges between them are recovered with zero cost."""
        clusters, eig_vals, eig_vecs = _buffers(20, 2)
        eigen_solver = LanczosSolver(n_eig=2)
        stats = partition(handle, two_cliques_graph, eigen_solver, KMeansSolver(n_clusters=2),
                          clusters, eig_vals, eig_vecs)

        assert stats.eigensolver_iterations < eigen_solver.config.max_iter
        assert clusters[:10].unique().numel() == 1
        assert clusters[10:].unique().numel() == 1
        assert clusters[0] != clusters[10]

        edge_cut, cost, _, _ = analyze_partition(handle, two_cliques_graph, 2, clusters)
        assert edge_cut == pytest.approx(0.0, abs=1e-10)
        assert cost == pytest.approx(0.0, abs=1e-10)

    def test_stats_record(self, handle, bridged_cliques_graph):
        """Test the named statistics and the written buffers."""
        clusters, eig_vals, eig_vecs = _buffers(16, 2)
        stats = partition(handle, bridged_cliques_graph, LanczosSolver(n_eig=2), KMeansSolver(n_clusters=2),
                          clusters, eig_vals, eig_vecs)

        assert isinstance(stats, PartitionStats)
        iters_eig, residual, iters_cluster = stats
        assert iters_eig == stats.eigensolver_iterations
        assert residual == stats.cluster_residual >= 0
        assert iters_cluster == stats.cluster_iterations >= 1

        assert (eig_vals[1:] >= eig_vals[:-1]).all()
        assert abs(eig_vals[0].item()) < 1e-8
        norms = torch.linalg.vector_norm(eig_vecs, dim=1)
        assert torch.allclose(norms, torch.ones(16, dtype=torch.float64), atol=1e-10)
        assert clusters[:8].unique().numel() == 1 and clusters[8:].unique().numel() == 1

        cost = analyze_partition(handle, bridged_cliques_graph, 2, clusters)
        assert cost.edge_cut == pytest.approx(0.1)
        assert cost.cost == pytest.approx(0.1 / 8 * 2)

    @pytest.mark.parametrize("eigen_solver,cluster_solver", [
        (LanczosSolver(n_eig=3), KMeansSolver(n_clusters=3)),
        (LobpcgSolver(n_eig=3, max_iter=500), KMeansSolver(n_clusters=3)),
        (LanczosSolver(n_eig=3), AxisAlignSolver(n_clusters=3)),
    ])
    def test_pluggable_solvers(self, handle, three_communities_graph, eigen_solver, cluster_solver):
        """Test that every solver combination finds the three communities."""
        clusters, eig_vals, eig_vecs = _buffers(36, 3)
        partition(handle, three_communities_graph, eigen_solver, cluster_solver, clusters, eig_vals, eig_vecs)
        for block in range(3):
            assert clusters[12 * block:12 * (block + 1)].unique().numel() == 1
        assert clusters.unique().numel() == 3

    def test_graph_not_modified(self, handle, random_graph):
        """Test that the input graph is left untouched."""
        before = [t.clone() for t in (random_graph.row_offsets, random_graph.col_indices, random_graph.weights)]
        clusters, eig_vals, eig_vecs = _buffers(150, 4)
        partition(handle, random_graph, LanczosSolver(n_eig=4), KMeansSolver(n_clusters=3),
                  clusters, eig_vals, eig_vecs)
        after = (random_graph.row_offsets, random_graph.col_indices, random_graph.weights)
        assert all(torch.equal(a, b) for a, b in zip(before, after))
        assert clusters.min() >= 0 and clusters.max() < 3

    def test_null_buffers(self, handle, path_graph):
        """Test that missing output buffers are rejected before any work is done."""
        clusters, eig_vals, eig_vecs = _buffers(4, 2)
        solvers = (LanczosSolver(n_eig=2), KMeansSolver(n_clusters=2))
        with pytest.raises(ValueError, match="Null clusters buffer"):
            partition(handle, path_graph, *solvers, None, eig_vals, eig_vecs)
        with pytest.raises(ValueError, match="Null eigVals buffer"):
            partition(handle, path_graph, *solvers, clusters, None, eig_vecs)
        with pytest.raises(ValueError, match="Null eigVecs buffer"):
            partition(handle, path_graph, *solvers, clusters, eig_vals, None)

    def test_invalid_dimensions(self, handle, path_graph):
        """Test that counts above the number of vertices and wrong buffer shapes are rejected."""
        clusters, eig_vals, eig_vecs = _buffers(4, 5)
        with pytest.raises(ValueError):
            partition(handle, path_graph, LanczosSolver(n_eig=5), KMeansSolver(n_clusters=2),
                      clusters, eig_vals, eig_vecs)
        clusters, eig_vals, eig_vecs = _buffers(4, 2)
        with pytest.raises(ValueError):
            partition(handle, path_graph, LanczosSolver(n_eig=2), KMeansSolver(n_clusters=5),
                      clusters, eig_vals, eig_vecs)
        with pytest.raises(ValueError):
            partition(handle, path_graph, LanczosSolver(n_eig=2), KMeansSolver(n_clusters=2),
                      clusters, eig_vals, torch.zeros(2, 4, dtype=torch.float64))
        with pytest.raises(ValueError, match="integer labels"):
            partition(handle, path_graph, LanczosSolver(n_eig=2), KMeansSolver(n_clusters=2),
                      torch.zeros(4, dtype=torch.float32), eig_vals, eig_vecs)


class TestAnalyzePartition:
    """Test the edge cut and ratio cut cost of a partition."""

    def test_path_graph(self, handle, path_graph):
        """Test the path 0-1-2-3 split in the middle."""
        clusters = torch.tensor([0, 0, 1, 1])
        result = analyze_partition(handle, path_graph, 2, clusters)
        assert result.edge_cut == pytest.approx(1.0)
        assert result.cost == pytest.approx(1.0)
        assert result.cluster_sizes.tolist() == [2.0, 2.0]
        assert result.cluster_edge_cuts.tolist() == [1.0, 1.0]

    def test_label_permutation_invariance(self, handle, random_graph):
        """Test that renaming the clusters does not change the result."""
        generator = torch.Generator().manual_seed(0)
        clusters = torch.randint(0, 5, (150,), generator=generator)
        permutation = torch.tensor([3, 0, 4, 1, 2])
        original = analyze_partition(handle, random_graph, 5, clusters)
        relabeled = analyze_partition(handle, random_graph, 5, permutation[clusters])
        assert relabeled.edge_cut == pytest.approx(original.edge_cut, rel=1e-12)
        assert relabeled.cost == pytest.approx(original.cost, rel=1e-12)

    def test_sizes_cover_all_vertices(self, handle, random_graph):
        """Test that every vertex is counted in exactly one cluster."""
        generator = torch.Generator().manual_seed(1)
        clusters = torch.randint(0, 7, (150,), generator=generator)
        result = analyze_partition(handle, random_graph, 7, clusters)
        assert result.cluster_sizes.sum().item() == 150

    def test_edge_cut_matches_direct_count(self, handle, random_graph):
        """Test the edge cut against the weight of edges whose ends carry different labels."""
        generator = torch.Generator().manual_seed(2)
        clusters = torch.randint(0, 4, (150,), generator=generator)
        adjacency = random_graph.to_sparse_coo()
        rows, cols = adjacency.indices()
        crossing = clusters[rows] != clusters[cols]
        expected = adjacency.values()[crossing].sum().item() / 2

        result = analyze_partition(handle, random_graph, 4, clusters)
        assert result.edge_cut == pytest.approx(expected, rel=1e-12)

    def test_empty_clusters_skipped(self, handle, random_graph, caplog):
        """Test that unused cluster indices only produce a warning."""
        generator = torch.Generator().manual_seed(3)
        clusters = torch.randint(0, 3, (150,), generator=generator)
        exact = analyze_partition(handle, random_graph, 3, clusters)
        with caplog.at_level(logging.WARNING):
            padded = analyze_partition(handle, random_graph, 6, clusters)
        assert padded.edge_cut == pytest.approx(exact.edge_cut)
        assert padded.cost == pytest.approx(exact.cost)
        assert padded.cluster_sizes[3:].tolist() == [0.0, 0.0, 0.0]
        assert sum("empty partition" in record.message for record in caplog.records) == 3

    def test_single_cluster(self, handle, random_graph):
        """Test that one cluster holding every vertex cuts nothing."""
        result = analyze_partition(handle, random_graph, 1, torch.zeros(150, dtype=torch.int64))
        assert result.edge_cut == pytest.approx(0.0, abs=1e-10)
        assert result.cost == pytest.approx(0.0, abs=1e-10)

    def test_invalid_labels(self, handle, path_graph):
        """Test the precondition checks."""
        with pytest.raises(ValueError, match="Null clusters buffer"):
            analyze_partition(handle, path_graph, 2, None)
        with pytest.raises(ValueError):
            analyze_partition(handle, path_graph, 2, torch.tensor([0, 1, 2, 0]))
        with pytest.raises(ValueError):
            analyze_partition(handle, path_graph, 2, torch.tensor([0, 1, 1]))
        with pytest.raises(ValueError, match="integer labels"):
            analyze_partition(handle, path_graph, 2, torch.tensor([0.0, 0.7, 1.0, 0.0]))

    def test_construct_indicator(self, handle, path_graph):
        """Test the size and boundary weight of single clusters."""
        laplacian = LaplacianOperator(handle, path_graph)
        clusters = torch.tensor([0, 1, 1, 0])
        assert construct_indicator(laplacian, 0, clusters) == (2.0, 2.0)
        assert construct_indicator(laplacian, 1, clusters) == (2.0, 2.0)
        assert construct_indicator(laplacian, 2, clusters) == (0.0, 0.0)
