"""Theoretical fragment ladders for candidate scoring.

Supports CID (b/y) and ETD (c/z-dot) ion series and partial candidates
positioned inside a peptide by prefix / suffix residue mass offsets.
"""

from .ladder import (
    generate_ladder,
    ION_B,
    ION_Y,
    ION_C,
    ION_Z,
    ION_OFFSETS,
)

__all__ = [
    'generate_ladder',
    'ION_B',
    'ION_Y',
    'ION_C',
    'ION_Z',
    'ION_OFFSETS',
]
