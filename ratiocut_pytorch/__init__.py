from ratiocut_pytorch.graph import WeightedGraph
from ratiocut_pytorch.handle import Handle
from ratiocut_pytorch.laplacian import LaplacianOperator
from ratiocut_pytorch.whiten import whiten
from ratiocut_pytorch.solvers.base import EigenSolver, ClusterSolver
from ratiocut_pytorch.solvers.lanczos import LanczosSolver, LanczosConfig
from ratiocut_pytorch.solvers.lobpcg import LobpcgSolver, LobpcgConfig
from ratiocut_pytorch.solvers.kmeans import KMeansSolver, KMeansConfig
from ratiocut_pytorch.solvers.axis_align import AxisAlignSolver, AxisAlignConfig, axis_align
from ratiocut_pytorch.partition import (
    PartitionStats,
    PartitionCost,
    partition,
    analyze_partition,
    construct_indicator,
)
from .partitioner import SpectralPartitioner, spectral_partition
