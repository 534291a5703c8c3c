"""De novo sequencing engine: the per-spectrum pipeline and batch runner.

Each spectrum runs through four stages with no backtracking:

    Scored -> Decomposed -> Reduced -> Assembled

An empty intermediate result (no peaks, no nodes, no candidates) flows on
to an identification with zero hits; it never aborts a batch.

Spectra are independent: every call builds and discards its own node map,
memo table and records, and the parameters are read-only. A batch can
therefore run on a thread pool with no synchronisation beyond collecting
results.

Examples
--------
>>> sequencer = DeNovoSequencer(DeNovoParams(fragment_tolerance=0.05))
>>> identification = sequencer.identify(spectrum)
>>> identification.best_hit.sequence
'AVL'
>>> results = sequencer.identify_batch(spectra, n_workers=4)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from .config import DeNovoParams
from .constants import H2O_MASS, TRYPTIC_C_TERMINAL
from .exceptions import InvalidSpectrumError
from .graph.decomposition import decompose
from .identification import PeptideIdentification, assemble
from .scoring.ion_scoring import score_spectrum
from .scoring.permutation_scoring import reduce_permutations
from .spectrum import Spectrum, estimate_peptide_mass, window_mower

logger = logging.getLogger(__name__)


class DeNovoSequencer:
    """Run de novo identification on spectra with one parameter set.

    Parameters
    ----------
    params : DeNovoParams, optional
        Search parameters (default: ``DeNovoParams()``). Validated at
        construction, so an invalid configuration fails before any spectrum.
    """

    def __init__(self, params: Optional[DeNovoParams] = None):
        self.params = params if params is not None else DeNovoParams()

    def identify(
        self,
        spectrum: Spectrum,
        spectrum_index: int = 0,
        complementary_spectrum: Optional[Spectrum] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PeptideIdentification:
        """Identify candidate sequences for one spectrum.

        Parameters
        ----------
        spectrum : Spectrum
            Fragmentation spectrum (not modified)
        spectrum_index : int
            Position in the batch, reported in errors and results
        complementary_spectrum : Spectrum, optional
            ETD spectrum of the same precursor, used when ranking
        cancel_event : threading.Event, optional
            Set it to abort this spectrum's search

        Returns
        -------
        PeptideIdentification
            Ranked hits, possibly empty

        Raises
        ------
        InvalidSpectrumError
            If the spectrum is malformed
        """
        params = self.params
        spectrum.validate(spectrum_index)
        if complementary_spectrum is not None:
            complementary_spectrum.validate(spectrum_index)

        measured_mass = spectrum.peptide_mass()
        peptide_mass = measured_mass
        if spectrum.is_empty or peptide_mass <= H2O_MASS:
            logger.debug(f"Spectrum {spectrum_index}: nothing to sequence")
            return assemble(spectrum, [], peptide_mass, spectrum_index)

        # Scored
        filtered = window_mower(spectrum, params.window_size, params.peaks_per_window)
        if params.estimate_precursor:
            peptide_mass = estimate_peptide_mass(
                filtered,
                peptide_mass,
                params.precursor_tolerance_da(peptide_mass),
                params.fragment_tolerance,
            )
        node_map = score_spectrum(filtered, peptide_mass, params)

        # Decomposed
        result = decompose(
            node_map, 0, len(node_map) - 1, peptide_mass, filtered, params, cancel_event
        )
        candidates = [
            residues for residues in result.sequences
            if self._accept(residues, peptide_mass, measured_mass)
        ]

        # Reduced
        records = reduce_permutations(
            candidates, spectrum, 0.0, 0.0, params, complementary_spectrum
        )

        if result.truncated:
            logger.warning(
                f"Spectrum {spectrum_index}: candidate set truncated at "
                f"{params.max_candidates} sequences per subrange"
            )
        if result.aborted:
            logger.warning(f"Spectrum {spectrum_index}: search aborted, results are partial")

        # Assembled
        identification = assemble(
            spectrum,
            records,
            peptide_mass,
            spectrum_index,
            truncated=result.truncated,
            aborted=result.aborted,
            n_candidates=len(candidates),
        )
        logger.debug(
            f"Spectrum {spectrum_index}: {len(node_map)} nodes, "
            f"{len(result.sequences)} sequences, {len(candidates)} within tolerance, "
            f"{len(identification)} hits"
        )
        return identification

    def _accept(
        self,
        residues: Tuple[str, ...],
        peptide_mass: float,
        measured_mass: float,
    ) -> bool:
        params = self.params
        candidate_mass = params.residues.sequence_mass(residues) + H2O_MASS
        # An estimated mass may sit up to one tolerance from the measured one;
        # hits must stay within tolerance of both.
        for target in (peptide_mass, measured_mass):
            if abs(candidate_mass - target) > params.precursor_tolerance_da(measured_mass):
                return False
        if params.tryptic_only and residues[-1][0] not in TRYPTIC_C_TERMINAL:
            return False
        return True

    def identify_batch(
        self,
        spectra: Sequence[Spectrum],
        n_workers: int = 1,
        errors: str = "raise",
        complementary_spectra: Optional[Sequence[Optional[Spectrum]]] = None,
    ) -> List[PeptideIdentification]:
        """Identify every spectrum of a batch.

        Parameters
        ----------
        spectra : sequence of Spectrum
            Spectra to sequence
        n_workers : int
            Worker threads (1 runs sequentially)
        errors : {"raise", "skip"}
            On malformed input, raise ``InvalidSpectrumError`` (with the
            spectrum index) or log it and return an empty identification
            carrying the error message
        complementary_spectra : sequence, optional
            ETD spectrum per input spectrum (or None entries)

        Returns
        -------
        list of PeptideIdentification
            One per input spectrum, in input order
        """
        if errors not in ("raise", "skip"):
            raise ValueError(f"errors must be 'raise' or 'skip', got {errors!r}")
        if n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        if complementary_spectra is not None and len(complementary_spectra) != len(spectra):
            raise ValueError("complementary_spectra must match spectra in length")

        def run(index: int) -> PeptideIdentification:
            complementary = complementary_spectra[index] if complementary_spectra is not None else None
            try:
                return self.identify(spectra[index], index, complementary)
            except InvalidSpectrumError as error:
                if errors == "raise":
                    raise
                logger.error(f"Skipping malformed spectrum: {error}")
                return PeptideIdentification(
                    spectrum_index=index,
                    native_id=spectra[index].native_id,
                    error=str(error),
                )

        logger.info(f"Sequencing {len(spectra):,} spectra with {n_workers} worker(s)...")
        if n_workers == 1:
            identifications = [run(i) for i in range(len(spectra))]
        else:
            with ThreadPoolExecutor(max_workers=n_workers) as executor:
                identifications = list(executor.map(run, range(len(spectra))))

        n_identified = sum(1 for identification in identifications if identification.hits)
        n_truncated = sum(1 for identification in identifications if identification.truncated)
        logger.info(
            f"✓ Sequenced {len(spectra):,} spectra: {n_identified:,} with hits, "
            f"{n_truncated:,} truncated"
        )
        return identifications
