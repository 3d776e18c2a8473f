import numpy as np
import pytest
import scipy.sparse
import torch

from ratiocut_pytorch import Handle, WeightedGraph


def _graph_from_edges(n, edges, weights=None):
    rows, cols = zip(*edges)
    weights = np.ones(len(edges)) if weights is None else np.asarray(weights, dtype=np.float64)
    upper = scipy.sparse.coo_matrix((weights, (rows, cols)), shape=(n, n))
    return WeightedGraph.from_scipy(upper + upper.T)


def _clique_edges(vertices):
    return [(i, j) for i in vertices for j in vertices if i < j]


@pytest.fixture
def random_seed():
    """Set a fixed random seed for reproducibility."""
    seed = 42
    torch.manual_seed(seed)
    np.random.seed(seed)
    return seed


@pytest.fixture
def device():
    """Return the device to use for testing."""
    return 'cpu'  # Use CPU for testing to ensure consistency


@pytest.fixture
def handle(device):
    """A CPU handle with a fixed seed."""
    with Handle(device=device, seed=0) as handle:
        yield handle


@pytest.fixture
def path_graph():
    """Unweighted path 0-1-2-3."""
    return _graph_from_edges(4, [(0, 1), (1, 2), (2, 3)])


@pytest.fixture
def two_cliques_graph():
    """Two disconnected 10-vertex cliques, vertices 0-9 and 10-19."""
    edges = _clique_edges(range(10)) + _clique_edges(range(10, 20))
    return _graph_from_edges(20, edges)


@pytest.fixture
def bridged_cliques_graph():
    """Two 8-vertex cliques joined by a single edge of weight 0.1."""
    edges = _clique_edges(range(8)) + _clique_edges(range(8, 16)) + [(0, 8)]
    weights = [1.0] * (len(edges) - 1) + [0.1]
    return _graph_from_edges(16, edges, weights)


@pytest.fixture
def three_communities_graph():
    """Three 12-vertex communities, dense inside, sparse and weak between them."""
    rng = np.random.default_rng(7)
    edges, weights = [], []
    for block in range(3):
        vertices = range(12 * block, 12 * (block + 1))
        for i, j in _clique_edges(vertices):
            if rng.random() < 0.8:
                edges.append((i, j))
                weights.append(1.0 + rng.random())
    # a ring between the blocks keeps the graph connected
    for a, b in [(0, 12), (12, 24), (24, 0)]:
        edges.append((a, b))
        weights.append(0.05)
    return _graph_from_edges(36, edges, weights)


def _random_connected_graph(n, p, seed):
    rng = np.random.default_rng(seed)
    edges = [(i, (i + 1) % n) for i in range(n)]
    weights = list(rng.uniform(0.5, 1.5, size=n))
    for i, j in zip(*np.triu_indices(n, k=2)):
        if (i, j) != (0, n - 1) and rng.random() < p:
            edges.append((int(i), int(j)))
            weights.append(rng.uniform(0.1, 1.0))
    return _graph_from_edges(n, edges, weights)


@pytest.fixture
def random_graph():
    """Connected weighted graph, larger than the default Lanczos basis used in tests."""
    return _random_connected_graph(150, 0.03, seed=0)


@pytest.fixture
def small_random_graph():
    """Connected weighted graph with 60 vertices."""
    return _random_connected_graph(60, 0.08, seed=1)
