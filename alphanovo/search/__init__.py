"""Search kernels for mass lookup and fragment matching.

Core algorithms:
1. Binary search on mass-sorted arrays (O(log n)) with absolute tolerance
2. Tolerance window queries (every entry within tolerance)
3. Theoretical ladder matching against an observed spectrum
"""

from .fragment_matching import (
    lower_bound,
    find_mass_window,
    binary_search_mass,
    match_ladder,
)

__all__ = [
    'lower_bound',
    'find_mass_window',
    'binary_search_mass',
    'match_ladder',
]
