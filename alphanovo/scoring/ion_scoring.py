"""Ion scoring: turn a peak list into scored spectrum graph nodes.

Every peak is read as a fragment ion of each series the fragmentation method
produces and converted to a prefix-mass hypothesis. N-terminal ions (b, c)
give the prefix directly; C-terminal ions (y, z-dot) give it as the
complement against the residue sum M = peptide mass - H2O.

Evidence weights are heuristic, not probabilities. Their only promise is a
consistent order: more corroborating intensity never lowers a node's score.

Scoring components
------------------
- Base: sqrt(intensity / max intensity) of the peak itself
- Isotope: an M+1 peak with lower intensity at +1.00335/z
- Witness: neutral-loss (H2O, NH3), a-ion (b - CO) or z+1 peaks
- Complement: the node is explained from both termini
- Unexplained gap: nodes without a neighbour one residue mass away are
  down-weighted

The ion series read from the peaks come from the ``IonScoringStrategy`` of
the configured fragmentation method (see ``strategies``).

Examples
--------
>>> params = DeNovoParams(fragment_tolerance=0.05)
>>> node_map = score_spectrum(spectrum, peptide_weight=301.2, params=params)
>>> node_map.masses  # 0.0, b/y derived prefixes, ..., M
"""

from __future__ import annotations

import logging

import numpy as np
import numba

from ..config import DeNovoParams
from ..constants import H2O_MASS, ISOTOPE_MASS_DIFFERENCE, PROTON_MASS
from ..graph.node_map import IonScore, IonType, NodeMap
from ..search.fragment_matching import binary_search_mass
from ..spectrum import Spectrum
from .strategies import get_strategy

logger = logging.getLogger(__name__)

# Relative weights of the supporting evidence
ISOTOPE_WEIGHT = 0.5
WITNESS_WEIGHT = 0.25
COMPLEMENT_FACTOR = 1.5
MULTIPLY_CHARGED_FACTOR = 0.8


# =============================================================================
# Peak Scoring (Numba-Compiled)
# =============================================================================

@numba.jit(nopython=True, cache=True)
def _score_peaks(
    mz: np.ndarray,
    intensity: np.ndarray,
    residue_sum: float,
    series_offsets: np.ndarray,
    series_n_terminal: np.ndarray,
    witness_shifts: np.ndarray,
    charges: np.ndarray,
    tolerance: float,
):
    """Read every peak as every ion series and charge.

    Returns
    -------
    prefix : np.ndarray (float64)
        Prefix-mass hypothesis per (peak, series, charge)
    score : np.ndarray (float64)
        Evidence weight of each hypothesis
    evidence : np.ndarray (int64)
        Supporting peak count of each hypothesis
    flags : np.ndarray (int64)
        IonType flags of each hypothesis
    """
    n_peaks = len(mz)
    n_series = len(series_offsets)
    n_out = n_peaks * n_series * len(charges)

    prefix = np.empty(n_out, dtype=np.float64)
    score = np.empty(n_out, dtype=np.float64)
    evidence = np.empty(n_out, dtype=np.int64)
    flags = np.empty(n_out, dtype=np.int64)

    max_intensity = 0.0
    for i in range(n_peaks):
        if intensity[i] > max_intensity:
            max_intensity = intensity[i]
    if max_intensity <= 0.0:
        return prefix[:0], score[:0], evidence[:0], flags[:0]

    idx = 0
    for s in range(n_series):
        for c in range(len(charges)):
            z = charges[c]
            for i in range(n_peaks):
                neutral = mz[i] * z - (z - 1) * PROTON_MASS - series_offsets[s]
                if series_n_terminal[s]:
                    node = neutral
                    flag = 1  # N_TERMINAL
                else:
                    node = residue_sum - neutral
                    flag = 2  # C_TERMINAL
                if node <= tolerance or node >= residue_sum - tolerance:
                    continue

                base = np.sqrt(intensity[i] / max_intensity)
                weight = base
                count = 1

                iso = binary_search_mass(mz, mz[i] + ISOTOPE_MASS_DIFFERENCE / z, tolerance)
                if iso != -1 and intensity[iso] < intensity[i]:
                    weight += ISOTOPE_WEIGHT * np.sqrt(intensity[iso] / max_intensity)
                    count += 1
                    flag |= 4  # ISOTOPE

                for k in range(witness_shifts.shape[1]):
                    shift = witness_shifts[s, k]
                    if np.isnan(shift):
                        continue
                    w = binary_search_mass(mz, mz[i] + shift / z, tolerance)
                    if w != -1:
                        weight += WITNESS_WEIGHT * np.sqrt(intensity[w] / max_intensity)
                        count += 1
                        flag |= 8  # WITNESS

                if z > 1:
                    weight *= MULTIPLY_CHARGED_FACTOR

                prefix[idx] = node
                score[idx] = weight
                evidence[idx] = count
                flags[idx] = flag
                idx += 1

    return prefix[:idx], score[:idx], evidence[:idx], flags[:idx]


@numba.jit(nopython=True, cache=True)
def _has_residue_neighbour(
    node_masses: np.ndarray,
    residue_masses: np.ndarray,
    tolerance: float,
) -> np.ndarray:
    """True for nodes with another node one residue mass below or above."""
    n = len(node_masses)
    result = np.zeros(n, dtype=np.bool_)
    for i in range(n):
        for r in range(len(residue_masses)):
            if (binary_search_mass(node_masses, node_masses[i] + residue_masses[r], tolerance) != -1
                    or binary_search_mass(node_masses, node_masses[i] - residue_masses[r], tolerance) != -1):
                result[i] = True
                break
    return result


# =============================================================================
# Node Map Construction
# =============================================================================

def score_spectrum(
    spectrum: Spectrum,
    peptide_weight: float,
    params: DeNovoParams,
) -> NodeMap:
    """Score every peak and build the node map of one spectrum.

    Parameters
    ----------
    spectrum : Spectrum
        Validated, preprocessed spectrum (not modified)
    peptide_weight : float
        Neutral peptide mass (residues + H2O)
    params : DeNovoParams
        Search parameters; ``fragmentation`` selects the strategy

    Returns
    -------
    NodeMap
        Boundary nodes 0 and M plus the ``max_nodes`` best-scoring nodes.
        Empty when the spectrum is empty or the peptide mass is too small.
    """
    residue_sum = peptide_weight - H2O_MASS
    if spectrum.is_empty or residue_sum < params.residues.min_mass - params.fragment_tolerance:
        return NodeMap(np.empty(0, dtype=np.float64), [])

    strategy = get_strategy(params.fragmentation)
    tolerance = params.fragment_tolerance
    charges = np.array(list(params.fragment_charges(spectrum.precursor_charge)), dtype=np.int64)

    prefix, score, evidence, flags = _score_peaks(
        spectrum.mz,
        spectrum.intensity,
        residue_sum,
        np.array(strategy.series_offsets, dtype=np.float64),
        np.array(strategy.series_n_terminal, dtype=np.bool_),
        strategy.witness_matrix(),
        charges,
        tolerance,
    )

    boundary = int(IonType.BOUNDARY)
    masses = np.concatenate([[0.0, residue_sum], prefix])
    scores = np.concatenate([[0.0, 0.0], score])
    counts = np.concatenate([[0, 0], evidence])
    types = np.concatenate([[boundary, boundary], flags])

    node_map = NodeMap.from_hypotheses(masses, scores, counts, types, tolerance)

    # Complement bonus and unexplained-gap penalty
    supported = _has_residue_neighbour(node_map.masses, params.residues.masses, tolerance)
    both_termini = IonType.N_TERMINAL | IonType.C_TERMINAL
    rescored = []
    for i, ion_score in enumerate(node_map.scores):
        value = ion_score.score
        types_i = ion_score.ion_types
        if types_i & IonType.BOUNDARY:
            rescored.append(ion_score)
            continue
        if (types_i & both_termini) == both_termini:
            value *= COMPLEMENT_FACTOR
            types_i |= IonType.COMPLEMENT
        if not supported[i]:
            value *= params.unexplained_gap_penalty
        rescored.append(IonScore(value, ion_score.evidence, types_i))

    node_map = NodeMap(node_map.masses, rescored).top(params.max_nodes)
    logger.debug(
        f"Scored {len(spectrum)} peaks into {len(node_map)} nodes "
        f"({strategy.name}, M={residue_sum:.4f})"
    )
    return node_map
