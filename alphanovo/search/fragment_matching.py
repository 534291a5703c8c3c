"""Tolerance-windowed binary search and fragment ladder matching.

Core kernels shared by the node map, the residue table and the permutation
scorer:
1. Binary search on mass-sorted arrays (O(log n)) with absolute tolerance
2. Window queries returning every entry within tolerance
3. Ladder matching of theoretical fragments against an observed spectrum

All tolerances here are absolute (Da / Th). Relative (ppm) precursor
tolerances are converted by the caller before reaching these kernels.
"""

import numpy as np
import numba
from typing import Tuple


# =============================================================================
# Binary Search (Core Algorithm)
# =============================================================================

@numba.jit(nopython=True, cache=True)
def lower_bound(sorted_values: np.ndarray, value: float) -> int:
    """Return the first index whose value is >= ``value``."""
    left, right = 0, len(sorted_values)
    while left < right:
        mid = (left + right) // 2
        if sorted_values[mid] < value:
            left = mid + 1
        else:
            right = mid
    return left


@numba.jit(nopython=True, cache=True)
def find_mass_window(
    sorted_masses: np.ndarray,
    target_mass: float,
    tolerance: float,
) -> Tuple[int, int]:
    """Find the half-open index range of masses within tolerance.

    Parameters
    ----------
    sorted_masses : np.ndarray (float64)
        Masses sorted ascending. CRITICAL: no validation for speed.
    target_mass : float
        Mass to look up
    tolerance : float
        Absolute tolerance in Da

    Returns
    -------
    start, stop : int
        ``sorted_masses[start:stop]`` holds every mass with
        ``abs(mass - target_mass) <= tolerance``. Empty when start == stop.

    Examples
    --------
    >>> masses = np.array([57.02, 71.04, 71.06, 87.03])
    >>> find_mass_window(masses, 71.05, 0.02)
    (1, 3)
    """
    start = lower_bound(sorted_masses, target_mass - tolerance)
    stop = start
    n = len(sorted_masses)
    while stop < n and sorted_masses[stop] <= target_mass + tolerance:
        stop += 1
    return start, stop


@numba.jit(nopython=True, cache=True)
def binary_search_mass(
    sorted_masses: np.ndarray,
    target_mass: float,
    tolerance: float,
) -> int:
    """Find closest match within an absolute tolerance.

    Parameters
    ----------
    sorted_masses : np.ndarray (float64)
        Masses sorted ascending
    target_mass : float
        Theoretical mass (or m/z) to search for
    tolerance : float
        Absolute tolerance in Da

    Returns
    -------
    index : int
        Index of the closest entry within tolerance, -1 if none

    Notes
    -----
    - Ties keep the lower index
    - Empty arrays return -1
    """
    start, stop = find_mass_window(sorted_masses, target_mass, tolerance)
    if start == stop:
        return -1

    closest_idx = start
    min_error = abs(sorted_masses[start] - target_mass)
    for idx in range(start + 1, stop):
        error = abs(sorted_masses[idx] - target_mass)
        if error < min_error:
            min_error = error
            closest_idx = idx
    return closest_idx


# =============================================================================
# Ladder Matching
# =============================================================================

@numba.jit(nopython=True, cache=True)
def match_ladder(
    theoretical_mz: np.ndarray,
    spectrum_mz: np.ndarray,
    spectrum_intensity: np.ndarray,
    tolerance: float,
) -> Tuple[int, float, float]:
    """Match a theoretical fragment ladder against an observed spectrum.

    Each theoretical ion is matched to the closest observed peak within
    tolerance. A matched ion contributes ``sqrt(relative intensity)``
    weighted by its mass accuracy (1.0 at zero error, 0.5 at the tolerance
    edge). Every observed peak is counted at most once so that overlapping
    b/y ions cannot double-count the same evidence.

    Parameters
    ----------
    theoretical_mz : np.ndarray (float64)
        Predicted fragment m/z values (any order)
    spectrum_mz : np.ndarray (float64)
        Observed m/z values (MUST be sorted!)
    spectrum_intensity : np.ndarray (float64)
        Observed intensities (parallel to spectrum_mz)
    tolerance : float
        Fragment tolerance in Da

    Returns
    -------
    n_matched : int
        Number of theoretical ions with a matching peak
    score : float
        Accuracy-weighted sum of sqrt(relative intensity)
    explained_intensity : float
        Fraction of total observed intensity explained by matched peaks

    Examples
    --------
    >>> theo = np.array([72.04, 171.11])
    >>> obs_mz = np.array([72.05, 100.0, 171.11])
    >>> obs_int = np.array([10.0, 5.0, 10.0])
    >>> n, score, frac = match_ladder(theo, obs_mz, obs_int, 0.05)
    >>> # n == 2, frac == 0.8
    """
    n_peaks = len(spectrum_mz)
    if n_peaks == 0 or len(theoretical_mz) == 0:
        return 0, 0.0, 0.0

    max_intensity = 0.0
    total_intensity = 0.0
    for i in range(n_peaks):
        total_intensity += spectrum_intensity[i]
        if spectrum_intensity[i] > max_intensity:
            max_intensity = spectrum_intensity[i]
    if max_intensity <= 0.0:
        return 0, 0.0, 0.0

    used = np.zeros(n_peaks, dtype=np.bool_)
    n_matched = 0
    score = 0.0
    explained = 0.0

    for i in range(len(theoretical_mz)):
        target = theoretical_mz[i]
        idx = binary_search_mass(spectrum_mz, target, tolerance)
        if idx == -1:
            continue

        n_matched += 1
        if used[idx]:
            continue
        used[idx] = True

        error = abs(spectrum_mz[idx] - target)
        accuracy = 1.0 - 0.5 * error / tolerance
        score += np.sqrt(spectrum_intensity[idx] / max_intensity) * accuracy
        explained += spectrum_intensity[idx]

    return n_matched, score, explained / total_intensity
