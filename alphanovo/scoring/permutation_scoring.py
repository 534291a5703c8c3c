"""Permutation reduction: rank candidate sequences by ladder matching.

The decomposition can produce exponentially many candidate sequences. This
module re-scores each one against the observed spectrum by building its
theoretical fragment ladder and matching it peak by peak, then keeps the
best N.

Candidates may be partial sequences from a subrange of the spectrum graph.
``prefix_offset`` is the residue mass before the candidate and
``suffix_offset`` the residue mass after it, so partial candidates are
scored with the ions the full peptide would produce.

Ranking
-------
1. Match score, descending
2. Matched ion count, descending
3. Sequence string, ascending (deterministic tie-break)

Examples
--------
>>> records = reduce_permutations(
...     [("A", "V", "L"), ("V", "A", "L")],
...     spectrum,
...     prefix_offset=0.0,
...     suffix_offset=0.0,
...     params=params,
... )
>>> records[0].sequence
'AVL'
"""

from __future__ import annotations

from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from ..config import DeNovoParams
from ..fragments.ladder import generate_ladder
from ..search.fragment_matching import match_ladder
from ..spectrum import Spectrum
from .strategies import ETD_STRATEGY, IonScoringStrategy, get_strategy


class PermutationRecord(NamedTuple):
    """A candidate sequence with its ladder matching quality.

    Attributes
    ----------
    residues : tuple of str
        Residue tokens, N- to C-terminal
    score : float
        Accuracy-weighted sqrt-intensity sum of matched peaks
    n_matched : int
        Number of theoretical ions with a matching peak
    explained_intensity : float
        Fraction of observed intensity explained (0-1)
    residue_mass : float
        Summed residue mass of the candidate
    """
    residues: Tuple[str, ...]
    score: float
    n_matched: int
    explained_intensity: float
    residue_mass: float

    @property
    def sequence(self) -> str:
        return "".join(self.residues)


def ranking_key(record: PermutationRecord):
    """Sort key: best score first, then most matched ions, then sequence."""
    return (-record.score, -record.n_matched, record.sequence)


def score_candidate(
    residues: Sequence[str],
    spectrum: Spectrum,
    prefix_offset: float,
    suffix_offset: float,
    params: DeNovoParams,
    strategy: Optional[IonScoringStrategy] = None,
) -> PermutationRecord:
    """Score one candidate against one spectrum.

    Parameters
    ----------
    residues : sequence of str
        Candidate residue tokens
    spectrum : Spectrum
        Observed spectrum (m/z sorted)
    prefix_offset, suffix_offset : float
        Residue mass before / after the candidate
    params : DeNovoParams
        Supplies residue masses, fragment tolerance and charges
    strategy : IonScoringStrategy, optional
        Ion series of the ladder (default: from ``params.fragmentation``)
    """
    if strategy is None:
        strategy = get_strategy(params.fragmentation)
    residue_masses = params.residues.residue_masses(residues)
    max_charge = max(params.fragment_charges(spectrum.precursor_charge))

    theoretical = generate_ladder(
        residue_masses,
        float(prefix_offset),
        float(suffix_offset),
        np.array(strategy.ladder_ions, dtype=np.int64),
        max_charge,
    )
    n_matched, score, explained = match_ladder(
        theoretical, spectrum.mz, spectrum.intensity, params.fragment_tolerance
    )
    return PermutationRecord(
        residues=tuple(residues),
        score=float(score),
        n_matched=int(n_matched),
        explained_intensity=float(explained),
        residue_mass=float(residue_masses.sum()),
    )


def reduce_permutations(
    candidates: Iterable[Sequence[str]],
    spectrum: Spectrum,
    prefix_offset: float,
    suffix_offset: float,
    params: DeNovoParams,
    complementary_spectrum: Optional[Spectrum] = None,
    max_records: Optional[int] = None,
) -> List[PermutationRecord]:
    """Score, rank and truncate candidate sequences.

    Parameters
    ----------
    candidates : iterable of sequence of str
        Candidate residue token sequences (duplicates are scored once)
    spectrum : Spectrum
        Primary spectrum, scored with the configured fragmentation method
    prefix_offset, suffix_offset : float
        Residue mass before / after the candidates (0.0 for full peptides)
    params : DeNovoParams
        Search parameters
    complementary_spectrum : Spectrum, optional
        ETD spectrum of the same precursor; its c/z ladder score is added
    max_records : int, optional
        Number of records to keep (default: ``params.max_hits``)

    Returns
    -------
    list of PermutationRecord
        Ranked by ``ranking_key``, at most ``max_records`` long
    """
    if max_records is None:
        max_records = params.max_hits

    strategy = get_strategy(params.fragmentation)
    records = []
    for residues in sorted(set(tuple(c) for c in candidates)):
        record = score_candidate(residues, spectrum, prefix_offset, suffix_offset, params, strategy)
        if complementary_spectrum is not None and not complementary_spectrum.is_empty:
            extra = score_candidate(
                residues, complementary_spectrum, prefix_offset, suffix_offset, params, ETD_STRATEGY
            )
            record = record._replace(
                score=record.score + extra.score,
                n_matched=record.n_matched + extra.n_matched,
            )
        records.append(record)

    records.sort(key=ranking_key)
    return records[:max_records]
