"""Divide-and-conquer decomposition of the spectrum graph.

Between two boundary nodes ``left`` and ``right`` of the node map, candidate
sequences are built recursively:

1. Base case: the gap ``mass[right] - mass[left]`` matches one or more
   residue masses within fragment tolerance. Every matching residue is its
   own alternative branch (isobaric residues are all kept).
2. Split: for every node strictly between the boundaries, both halves are
   decomposed and every pair of sub-sequences is concatenated.
3. Bridge: when neither applies and the gap is at most ``max_gap_mass``,
   the gap is filled with residue compositions of up to
   ``max_residues_per_gap`` residues in every order. Large permutation sets
   are reduced by ladder scoring with the subrange's prefix/suffix offsets.

Subrange results are memoised by ``(left, right)`` index pair.

Growth control
--------------
Each subrange materialises at most ``max_candidates`` sequences. Branches
beyond that are dropped, not retried, and the result is flagged
``truncated``. The same flag is set when the recursion depth guard trips.
A time limit or a caller-supplied ``threading.Event`` aborts the search of
one spectrum; the partial result is returned with ``aborted`` set.

Examples
--------
>>> result = decompose(node_map, 0, len(node_map) - 1, peptide_weight, spectrum, params)
>>> result.sequences
{('A', 'V', 'L')}
>>> result.truncated
False
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..config import DeNovoParams
from ..constants import H2O_MASS
from ..residues import unique_permutations
from ..scoring.permutation_scoring import reduce_permutations
from ..spectrum import Spectrum
from .node_map import NodeMap

logger = logging.getLogger(__name__)

Sequence = Tuple[str, ...]


@dataclass
class DecompositionResult:
    """Candidate sequences of one decomposition and its completeness flags.

    Attributes
    ----------
    sequences : set of tuple of str
        Candidate residue token sequences
    truncated : bool
        Some branches were dropped by ``max_candidates`` or the depth guard
    aborted : bool
        The search stopped early (time limit or cancellation)
    n_subranges : int
        Number of distinct subranges evaluated
    """
    sequences: Set[Sequence] = field(default_factory=set)
    truncated: bool = False
    aborted: bool = False
    n_subranges: int = 0


class Decomposer:
    """Recursive subrange decomposition over one node map.

    One instance serves one spectrum: it owns its memo table and flags and
    is discarded afterwards. Nothing is shared between instances.
    """

    def __init__(
        self,
        node_map: NodeMap,
        peptide_weight: float,
        spectrum: Spectrum,
        params: DeNovoParams,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.node_map = node_map
        self.spectrum = spectrum
        self.params = params
        self.residue_sum = peptide_weight - H2O_MASS
        self.tolerance = params.fragment_tolerance
        self.cancel_event = cancel_event
        self.deadline = (
            time.monotonic() + params.time_limit if params.time_limit is not None else None
        )
        self.truncated = False
        self.aborted = False
        self._masses = node_map.masses
        self._min_residue = params.residues.min_mass
        self._memo: Dict[Tuple[int, int], List[Sequence]] = {}

    def run(self, left: int, right: int) -> DecompositionResult:
        if not 0 <= left < right < len(self.node_map):
            raise ValueError(
                f"Invalid boundary nodes ({left}, {right}) for {len(self.node_map)} nodes"
            )
        sequences = self._subrange(left, right, depth=0)
        return DecompositionResult(
            sequences=set(sequences),
            truncated=self.truncated,
            aborted=self.aborted,
            n_subranges=len(self._memo),
        )

    def _should_stop(self) -> bool:
        if self.aborted:
            return True
        if self.cancel_event is not None and self.cancel_event.is_set():
            self.aborted = True
        elif self.deadline is not None and time.monotonic() > self.deadline:
            self.aborted = True
        return self.aborted

    def _subrange(self, left: int, right: int, depth: int) -> List[Sequence]:
        key = (left, right)
        if key in self._memo:
            return self._memo[key]
        if depth > self.params.max_recursion_depth:
            self.truncated = True
            return []
        if self._should_stop():
            return []

        masses = self._masses
        tolerance = self.tolerance
        max_candidates = self.params.max_candidates
        gap = masses[right] - masses[left]
        results: Dict[Sequence, None] = {}

        def add(sequence: Sequence) -> bool:
            if sequence in results:
                return True
            if len(results) >= max_candidates:
                self.truncated = True
                return False
            results[sequence] = None
            return True

        for token in self.params.residues.match(gap, tolerance):
            add((token,))

        full = False
        for split in self.node_map.between(left, right):
            if full or self._should_stop():
                break
            if masses[split] - masses[left] < self._min_residue - tolerance:
                continue
            if masses[right] - masses[split] < self._min_residue - tolerance:
                break
            left_sequences = self._subrange(left, split, depth + 1)
            if not left_sequences:
                continue
            right_sequences = self._subrange(split, right, depth + 1)
            for head in left_sequences:
                for tail in right_sequences:
                    if not add(head + tail):
                        full = True
                        break
                if full:
                    break

        if not results and gap <= self.params.max_gap_mass and not self.aborted:
            for sequence in self._bridge(left, right, gap):
                if not add(sequence):
                    break

        sequences = list(results)
        self._memo[key] = sequences
        return sequences

    def _bridge(self, left: int, right: int, gap: float) -> List[Sequence]:
        """Fill a gap without intermediate nodes by residue compositions."""
        params = self.params
        permutations: List[Sequence] = []
        for composition in params.residues.compositions(gap, self.tolerance, params.max_residues_per_gap):
            if len(composition) > 1:
                permutations.extend(unique_permutations(composition))

        if len(permutations) <= params.max_subscore_candidates:
            return permutations

        prefix_offset = float(self._masses[left])
        suffix_offset = self.residue_sum - float(self._masses[right])
        records = reduce_permutations(
            permutations,
            self.spectrum,
            prefix_offset,
            suffix_offset,
            params,
            max_records=params.max_subscore_candidates,
        )
        return [record.residues for record in records]


def decompose(
    node_map: NodeMap,
    left: int,
    right: int,
    peptide_weight: float,
    spectrum: Spectrum,
    params: DeNovoParams,
    cancel_event: Optional[threading.Event] = None,
) -> DecompositionResult:
    """Enumerate candidate sequences between two nodes.

    Parameters
    ----------
    node_map : NodeMap
        Scored nodes of the spectrum (read-only)
    left, right : int
        Boundary node indices, ``left < right``
    peptide_weight : float
        Neutral peptide mass (residues + H2O)
    spectrum : Spectrum
        Spectrum used to reduce large permutation sets
    params : DeNovoParams
        Search parameters
    cancel_event : threading.Event, optional
        Set it from another thread to abort this search

    Returns
    -------
    DecompositionResult
        Possibly empty candidate set with its completeness flags
    """
    if len(node_map) < 2:
        return DecompositionResult()

    decomposer = Decomposer(node_map, peptide_weight, spectrum, params, cancel_event)
    result = decomposer.run(left, right)
    logger.debug(
        f"Decomposed nodes {left}-{right}: {len(result.sequences)} sequences "
        f"from {result.n_subranges} subranges"
        + (" (truncated)" if result.truncated else "")
        + (" (aborted)" if result.aborted else "")
    )
    return result
