"""
Self-organizing map.

Public API:
    Network        - Immutable grid of reference vectors + distance queries
    Position       - (row, column) grid coordinate
    train_network  - Online competitive learning with cancellation
    MiniSomWithCallback - MiniSom with per-batch progress and cancellation
    DataNormalizer - Min/max input scaling
"""

from .network import MiniSomWithCallback, Position, Network, compute_grid_side, train_network
from .normalizer import DataNormalizer

__all__ = [
    'Position',
    'Network',
    'compute_grid_side',
    'train_network',
    'MiniSomWithCallback',
    'DataNormalizer',
]
