"""Spectrum graph: scored mass nodes and their divide-and-conquer decomposition.

Core structures:
1. NodeMap: mass-sorted nodes with tolerance-windowed binary-search lookup
2. Decomposer: recursive subrange enumeration of candidate sequences
"""

from .node_map import (
    IonType,
    IonScore,
    NodeMap,
)

from .decomposition import (
    DecompositionResult,
    Decomposer,
    decompose,
)

__all__ = [
    # Nodes
    'IonType',
    'IonScore',
    'NodeMap',
    # Decomposition
    'DecompositionResult',
    'Decomposer',
    'decompose',
]
