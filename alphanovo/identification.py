"""Peptide identification results.

A ``PeptideIdentification`` pairs one input spectrum with its ranked
candidate sequences. An empty hit list is a normal outcome ("no sequence
found"), as are the ``truncated`` and ``aborted`` flags that report an
incomplete search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .constants import H2O_MASS
from .scoring.permutation_scoring import PermutationRecord
from .spectrum import Spectrum


class PeptideHit(NamedTuple):
    """One ranked candidate sequence.

    Attributes
    ----------
    sequence : str
        Residue tokens joined, e.g. ``"PEM[Oxidation]K"``
    residues : tuple of str
        Residue tokens, N- to C-terminal
    score : float
        Ladder matching score
    rank : int
        1 for the best hit
    n_matched : int
        Number of matched theoretical ions
    mass_error : float
        Candidate neutral mass minus the target peptide mass (Da)
    """
    sequence: str
    residues: Tuple[str, ...]
    score: float
    rank: int
    n_matched: int
    mass_error: float


@dataclass
class PeptideIdentification:
    """Ranked de novo hits of one spectrum.

    Attributes
    ----------
    spectrum_index : int
        Position of the spectrum in its batch
    native_id : str
        Spectrum identifier
    peptide_mass : float
        Neutral peptide mass the search targeted
    hits : list of PeptideHit
        Ranked hits, possibly empty
    truncated : bool
        The candidate set was capped (not exhaustive)
    aborted : bool
        The search was stopped by its time limit or cancellation
    n_candidates : int
        Candidates produced by the decomposition before ranking
    error : str, optional
        Set when the spectrum was skipped because of malformed input
    """
    spectrum_index: int = 0
    native_id: str = ""
    peptide_mass: float = 0.0
    hits: List[PeptideHit] = field(default_factory=list)
    truncated: bool = False
    aborted: bool = False
    n_candidates: int = 0
    error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.hits)

    @property
    def best_hit(self) -> Optional[PeptideHit]:
        return self.hits[0] if self.hits else None

    @property
    def sequences(self) -> List[str]:
        return [hit.sequence for hit in self.hits]


def assemble(
    spectrum: Spectrum,
    records: Sequence[PermutationRecord],
    peptide_mass: float,
    spectrum_index: int = 0,
    truncated: bool = False,
    aborted: bool = False,
    n_candidates: int = 0,
) -> PeptideIdentification:
    """Wrap ranked permutation records into a peptide identification.

    Records must already be ranked; ranks are assigned from 1 in order.
    """
    hits = [
        PeptideHit(
            sequence=record.sequence,
            residues=record.residues,
            score=record.score,
            rank=rank,
            n_matched=record.n_matched,
            mass_error=record.residue_mass + H2O_MASS - peptide_mass,
        )
        for rank, record in enumerate(records, start=1)
    ]
    return PeptideIdentification(
        spectrum_index=spectrum_index,
        native_id=spectrum.native_id,
        peptide_mass=peptide_mass,
        hits=hits,
        truncated=truncated,
        aborted=aborted,
        n_candidates=n_candidates,
    )
