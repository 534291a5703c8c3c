"""Theoretical fragment ladders with Numba JIT compilation.

Generates the N- and C-terminal fragment ion ladder of a candidate sequence.
Candidates can be partial: a subrange of the spectrum graph is scored with
the residue mass that precedes it (``prefix_offset``) and the residue mass
that follows it (``suffix_offset``), so its ions land where the full
peptide's ions would.

Key optimizations:
1. Candidates passed as residue mass arrays (no string operations in Numba)
2. Pre-allocated output arrays
3. Single forward cumulative sum for both ion series
"""

import numpy as np
import numba

from ..constants import (
    B_ION_OFFSET,
    C_ION_OFFSET,
    PROTON_MASS,
    Y_ION_OFFSET,
    Z_ION_OFFSET,
)


# Ion series identifiers
ION_B = 0
ION_Y = 1
ION_C = 2
ION_Z = 3

# Singly charged offset of each series, indexed by identifier
ION_OFFSETS = np.array([B_ION_OFFSET, Y_ION_OFFSET, C_ION_OFFSET, Z_ION_OFFSET], dtype=np.float64)

# N-terminal series have their mass measured from the start of the peptide
ION_IS_N_TERMINAL = np.array([True, False, True, False])


@numba.jit(nopython=True, cache=True)
def generate_ladder(
    residue_masses: np.ndarray,
    prefix_offset: float,
    suffix_offset: float,
    ion_types: np.ndarray,
    max_charge: int,
) -> np.ndarray:
    """Generate theoretical fragment m/z values for a (partial) candidate.

    Parameters
    ----------
    residue_masses : np.ndarray (float64)
        Residue masses of the candidate, N- to C-terminal
    prefix_offset : float
        Residue mass preceding the candidate (0.0 for a full peptide)
    suffix_offset : float
        Residue mass following the candidate (0.0 for a full peptide)
    ion_types : np.ndarray (int64)
        Ion series to generate (ION_B, ION_Y, ION_C, ION_Z)
    max_charge : int
        Highest fragment charge; charges 1..max_charge are generated

    Returns
    -------
    fragment_mz : np.ndarray (float64)
        m/z of every fragment whose cleavage lies inside or at the edges of
        the candidate, excluding the empty and full-peptide fragments

    Examples
    --------
    >>> masses = np.array([71.037114, 99.068414, 113.084064])
    >>> mz = generate_ladder(masses, 0.0, 0.0, np.array([ION_B, ION_Y]), 1)
    >>> # b1, y2, b2, y1 -> 72.04, 231.17, 171.11, 132.10
    """
    n = len(residue_masses)
    total = prefix_offset + suffix_offset
    for i in range(n):
        total += residue_masses[i]

    # Cleavage sites: after the prefix offset and after every residue of
    # the candidate; skip sites at the very start or end of the peptide.
    n_sites = n + 1
    fragment_mz = np.empty(n_sites * len(ion_types) * max_charge, dtype=np.float64)
    idx = 0
    cumulative = prefix_offset
    for site in range(n_sites):
        if site > 0:
            cumulative += residue_masses[site - 1]
        if cumulative <= 0.0 or cumulative >= total - 1e-9:
            continue
        for t in range(len(ion_types)):
            ion = ion_types[t]
            if ION_IS_N_TERMINAL[ion]:
                neutral = cumulative
            else:
                neutral = total - cumulative
            singly = neutral + ION_OFFSETS[ion]
            for charge in range(1, max_charge + 1):
                fragment_mz[idx] = (singly + (charge - 1) * PROTON_MASS) / charge
                idx += 1

    return fragment_mz[:idx]
