"""Spectrum graph nodes keyed by cumulative residue mass.

Every node is a hypothesised prefix mass: the summed residue masses of the
first k residues of the peptide. The two boundary nodes are 0 (empty prefix)
and M = peptide mass - H2O (full peptide).

Floating-point masses are never used as hash keys. The map is a pair of
parallel arrays sorted by mass, and lookups are tolerance-windowed binary
searches.

Examples
--------
>>> node_map = NodeMap.from_hypotheses(
...     masses=np.array([0.0, 71.04, 71.05, 170.11, 283.19]),
...     scores=np.array([0.0, 0.5, 0.7, 0.9, 0.0]),
...     evidence=np.array([0, 1, 1, 1, 0]),
...     ion_types=np.array([16, 1, 2, 1, 16]),
...     tolerance=0.05,
... )
>>> len(node_map)
4
>>> node_map.find(71.045, 0.05)
1
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import List, Sequence

import numpy as np
import numba

from ..search.fragment_matching import binary_search_mass, find_mass_window


class IonType(IntFlag):
    """Evidence flags attached to a node."""
    NONE = 0
    N_TERMINAL = 1    # explained by a b- or c-ion
    C_TERMINAL = 2    # explained by a y- or z-ion
    ISOTOPE = 4       # M+1 isotope peak present
    WITNESS = 8       # neutral-loss or a-ion peak present
    BOUNDARY = 16     # empty prefix or full peptide
    COMPLEMENT = 32   # explained from both termini


@dataclass
class IonScore:
    """Evidence for one node.

    Attributes
    ----------
    score : float
        Heuristic weight; higher means no less plausible
    evidence : int
        Number of peaks supporting the node
    ion_types : IonType
        Flags describing the supporting evidence
    """
    score: float
    evidence: int
    ion_types: IonType = IonType.NONE


@numba.jit(nopython=True, cache=True)
def _bucket_ids(sorted_masses: np.ndarray, tolerance: float) -> np.ndarray:
    """Assign consecutive masses within ``tolerance`` of a bucket's first
    member to the same bucket."""
    n = len(sorted_masses)
    ids = np.empty(n, dtype=np.int64)
    bucket = -1
    anchor = 0.0
    for i in range(n):
        if bucket < 0 or sorted_masses[i] - anchor > tolerance:
            bucket += 1
            anchor = sorted_masses[i]
        ids[i] = bucket
    return ids


class NodeMap:
    """Read-only, mass-sorted collection of nodes and their ion scores.

    Parameters
    ----------
    masses : np.ndarray (float64)
        Strictly ascending node masses
    scores : sequence of IonScore
        One score per node

    Raises
    ------
    ValueError
        If lengths differ or masses are not strictly ascending
    """

    def __init__(self, masses: np.ndarray, scores: Sequence[IonScore]):
        masses = np.array(masses, dtype=np.float64)
        if masses.ndim != 1 or len(masses) != len(scores):
            raise ValueError("masses and scores must have the same length")
        if len(masses) > 1 and np.any(np.diff(masses) <= 0.0):
            raise ValueError("node masses must be strictly ascending")
        masses.flags.writeable = False
        self._masses = masses
        self._scores = tuple(scores)

    @classmethod
    def from_hypotheses(
        cls,
        masses: np.ndarray,
        scores: np.ndarray,
        evidence: np.ndarray,
        ion_types: np.ndarray,
        tolerance: float,
    ) -> "NodeMap":
        """Merge raw prefix-mass hypotheses into tolerance buckets.

        Hypotheses in one bucket are combined: scores and evidence add up,
        flags are OR-ed and the mass is the score-weighted mean. A bucket
        holding a BOUNDARY hypothesis keeps that hypothesis's exact mass.

        Parameters
        ----------
        masses, scores, evidence, ion_types : np.ndarray
            Parallel arrays, one entry per hypothesis (any order)
        tolerance : float
            Bucket width in Da (the fragment tolerance)
        """
        if len(masses) == 0:
            return cls(np.empty(0, dtype=np.float64), [])

        order = np.argsort(masses, kind="mergesort")
        masses = np.asarray(masses, dtype=np.float64)[order]
        scores = np.asarray(scores, dtype=np.float64)[order]
        evidence = np.asarray(evidence, dtype=np.int64)[order]
        ion_types = np.asarray(ion_types, dtype=np.int64)[order]

        ids = _bucket_ids(masses, tolerance)
        starts = np.flatnonzero(np.r_[True, ids[1:] != ids[:-1]])

        weights = scores + 1e-9
        merged_score = np.add.reduceat(scores, starts)
        merged_evidence = np.add.reduceat(evidence, starts)
        merged_types = np.bitwise_or.reduceat(ion_types, starts)
        merged_mass = np.add.reduceat(masses * weights, starts) / np.add.reduceat(weights, starts)

        is_boundary = (ion_types & int(IonType.BOUNDARY)) != 0
        for i in np.flatnonzero(is_boundary):
            merged_mass[ids[i]] = masses[i]

        node_scores = [
            IonScore(float(s), int(e), IonType(int(t)))
            for s, e, t in zip(merged_score, merged_evidence, merged_types)
        ]
        return cls(merged_mass, node_scores)

    def __len__(self) -> int:
        return len(self._masses)

    def __getitem__(self, index: int) -> IonScore:
        return self._scores[index]

    def __repr__(self) -> str:
        return f"NodeMap({len(self)} nodes)"

    @property
    def masses(self) -> np.ndarray:
        return self._masses

    @property
    def scores(self) -> tuple:
        return self._scores

    def mass(self, index: int) -> float:
        return float(self._masses[index])

    def find(self, mass: float, tolerance: float) -> int:
        """Index of the node closest to ``mass`` within tolerance, -1 if none."""
        return int(binary_search_mass(self._masses, mass, tolerance))

    def window(self, mass: float, tolerance: float) -> range:
        """Indices of all nodes within tolerance of ``mass``."""
        start, stop = find_mass_window(self._masses, mass, tolerance)
        return range(start, stop)

    def between(self, left: int, right: int) -> range:
        """Indices strictly between two node indices."""
        return range(left + 1, right)

    def top(self, n: int) -> "NodeMap":
        """Keep the ``n`` best-scoring nodes; boundary nodes always stay.

        Ties are resolved towards lower mass.
        """
        if len(self) <= n:
            return self
        boundary = [i for i, s in enumerate(self._scores) if s.ion_types & IonType.BOUNDARY]
        others = [i for i, s in enumerate(self._scores) if not s.ion_types & IonType.BOUNDARY]
        others.sort(key=lambda i: (-self._scores[i].score, i))
        keep: List[int] = sorted(boundary + others[:max(0, n - len(boundary))])
        return NodeMap(self._masses[keep], [self._scores[i] for i in keep])
