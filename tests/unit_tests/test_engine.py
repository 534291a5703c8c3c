"""End-to-end tests of the de novo sequencing engine."""

import logging
import threading

import numpy as np
import pytest

from alphanovo import (
    DeNovoParams,
    DeNovoSequencer,
    InvalidSpectrumError,
    Spectrum,
    ToleranceUnit,
)
from alphanovo.constants import AA_MASSES_DICT, H2O_MASS, PROTON_MASS


class TestIdentify:
    """Test the single-spectrum pipeline."""

    def test_clean_ladder_ranked_first(self, avl_spectrum, params):
        """Test AVL's full b/y ladder puts AVL at rank 1."""
        identification = DeNovoSequencer(params).identify(avl_spectrum)

        assert identification.best_hit.sequence == "AVL"
        assert identification.best_hit.rank == 1
        assert identification.best_hit.n_matched == 4
        assert not identification.truncated

    def test_near_isobaric_pair(self, ak_spectrum):
        """Test K and Q both survive when the tolerances cannot tell them apart."""
        params = DeNovoParams(fragment_tolerance=0.05, precursor_tolerance=0.1)
        identification = DeNovoSequencer(params).identify(ak_spectrum)
        assert {"AK", "AQ"} <= set(identification.sequences)

    def test_precursor_tolerance_filters(self, ak_spectrum):
        """Test a tight precursor tolerance rejects Q (0.036 Da off)."""
        params = DeNovoParams(fragment_tolerance=0.05, precursor_tolerance=0.01)
        identification = DeNovoSequencer(params).identify(ak_spectrum)
        assert "AK" in identification.sequences
        assert "AQ" not in identification.sequences

    def test_tryptic_only(self, ak_spectrum):
        params = DeNovoParams(fragment_tolerance=0.05, precursor_tolerance=0.1, tryptic_only=True)
        identification = DeNovoSequencer(params).identify(ak_spectrum)
        assert identification.sequences == ["AK"]

    def test_precursor_invariant(self, avl_spectrum):
        """Test every hit's mass is within the precursor tolerance."""
        params = DeNovoParams(fragment_tolerance=0.05, precursor_tolerance=0.2)
        identification = DeNovoSequencer(params).identify(avl_spectrum)
        assert identification.hits
        for hit in identification.hits:
            assert abs(hit.mass_error) <= 0.2

    def test_ppm_tolerance(self, avl_spectrum):
        params = DeNovoParams(
            fragment_tolerance=0.05,
            precursor_tolerance=20.0,
            precursor_tolerance_unit=ToleranceUnit.PPM,
        )
        identification = DeNovoSequencer(params).identify(avl_spectrum)
        assert identification.best_hit.sequence == "AVL"

    def test_empty_spectrum(self, empty_spectrum, params):
        """Test no peaks is a valid input with zero hits."""
        identification = DeNovoSequencer(params).identify(empty_spectrum)
        assert identification.hits == []
        assert identification.error is None

    def test_mass_mismatch(self, avl_spectrum):
        """Test a precursor no ladder path can reach yields zero hits."""
        params = DeNovoParams(fragment_tolerance=0.05, max_gap_mass=60.0)
        spectrum = Spectrum(
            mz=avl_spectrum.mz,
            intensity=avl_spectrum.intensity,
            precursor_mass=500.0,
        )
        identification = DeNovoSequencer(params).identify(spectrum)
        assert identification.hits == []

    def test_deterministic(self, avl_spectrum, params):
        sequencer = DeNovoSequencer(params)
        first = sequencer.identify(avl_spectrum)
        second = sequencer.identify(avl_spectrum)
        assert first.hits == second.hits

    def test_estimated_precursor(self, avl_spectrum):
        """Test a mis-assigned precursor is corrected from b/y pairs."""
        params = DeNovoParams(
            fragment_tolerance=0.05,
            precursor_tolerance=1.5,
            estimate_precursor=True,
        )
        shifted = Spectrum(
            mz=avl_spectrum.mz,
            intensity=avl_spectrum.intensity,
            precursor_mz=avl_spectrum.precursor_mz + 0.51,
        )
        identification = DeNovoSequencer(params).identify(shifted)
        assert identification.best_hit.sequence == "AVL"

    def test_estimated_precursor_respects_measured_mass(self, avl_spectrum):
        """Test hits stay within tolerance of the measured precursor as well as the estimate."""
        params = DeNovoParams(
            fragment_tolerance=0.05,
            precursor_tolerance=0.5,
            estimate_precursor=True,
        )
        shifted = Spectrum(
            mz=avl_spectrum.mz,
            intensity=avl_spectrum.intensity,
            precursor_mz=avl_spectrum.precursor_mz + 0.51,
        )
        measured = shifted.peptide_mass()
        identification = DeNovoSequencer(params).identify(shifted)

        assert "AVL" not in identification.sequences
        for hit in identification.hits:
            candidate = sum(AA_MASSES_DICT[aa] for aa in hit.sequence) + H2O_MASS
            assert abs(candidate - measured) <= 0.5

    def test_missing_precursor(self, avl_spectrum, params):
        spectrum = Spectrum(mz=avl_spectrum.mz, intensity=avl_spectrum.intensity)
        with pytest.raises(InvalidSpectrumError, match="missing precursor"):
            DeNovoSequencer(params).identify(spectrum, spectrum_index=2)

    def test_invalid_spectrum(self, params):
        spectrum = Spectrum(mz=[200.0, 100.0], intensity=[1.0, 1.0], precursor_mz=302.2)
        with pytest.raises(InvalidSpectrumError):
            DeNovoSequencer(params).identify(spectrum, spectrum_index=3)

    def test_cancelled(self, avl_spectrum, params):
        event = threading.Event()
        event.set()
        identification = DeNovoSequencer(params).identify(avl_spectrum, cancel_event=event)
        assert identification.aborted
        assert identification.hits == []

    def test_truncation_warning(self, caplog, ak_spectrum):
        """Test a capped K/Q branch is reported, not silently dropped."""
        params = DeNovoParams(fragment_tolerance=0.05, max_candidates=1)
        with caplog.at_level(logging.WARNING, logger="alphanovo.engine"):
            identification = DeNovoSequencer(params).identify(ak_spectrum)
        assert identification.truncated
        assert len(identification.hits) == 1
        assert "truncated" in caplog.text

    def test_input_not_modified(self, avl_spectrum, params):
        mz = avl_spectrum.mz.copy()
        intensity = avl_spectrum.intensity.copy()
        DeNovoSequencer(params).identify(avl_spectrum)
        np.testing.assert_array_equal(avl_spectrum.mz, mz)
        np.testing.assert_array_equal(avl_spectrum.intensity, intensity)


class TestIdentifyBatch:
    """Test batch processing."""

    def test_order_preserved(self, avl_spectrum, ak_spectrum, empty_spectrum, params):
        spectra = [avl_spectrum, empty_spectrum, ak_spectrum]
        results = DeNovoSequencer(params).identify_batch(spectra)

        assert [r.spectrum_index for r in results] == [0, 1, 2]
        assert results[0].best_hit.sequence == "AVL"
        assert results[1].hits == []

    def test_parallel_matches_sequential(self, avl_spectrum, ak_spectrum, params):
        spectra = [avl_spectrum, ak_spectrum] * 3
        sequencer = DeNovoSequencer(params)

        sequential = sequencer.identify_batch(spectra)
        parallel = sequencer.identify_batch(spectra, n_workers=4)

        assert [r.hits for r in sequential] == [r.hits for r in parallel]

    def test_raise_carries_index(self, avl_spectrum, params):
        bad = Spectrum(mz=[200.0, 100.0], intensity=[1.0, 1.0], precursor_mz=302.2)
        with pytest.raises(InvalidSpectrumError) as excinfo:
            DeNovoSequencer(params).identify_batch([avl_spectrum, bad])
        assert excinfo.value.spectrum_index == 1

    def test_skip(self, avl_spectrum, params):
        bad = Spectrum(mz=[200.0, 100.0], intensity=[1.0, 1.0], precursor_mz=302.2, native_id="bad")
        results = DeNovoSequencer(params).identify_batch([bad, avl_spectrum], errors="skip")

        assert results[0].error is not None
        assert results[0].native_id == "bad"
        assert results[0].hits == []
        assert results[1].best_hit.sequence == "AVL"

    def test_invalid_arguments(self, avl_spectrum, params):
        sequencer = DeNovoSequencer(params)
        with pytest.raises(ValueError):
            sequencer.identify_batch([avl_spectrum], errors="ignore")
        with pytest.raises(ValueError):
            sequencer.identify_batch([avl_spectrum], n_workers=0)
        with pytest.raises(ValueError):
            sequencer.identify_batch([avl_spectrum], complementary_spectra=[])

    def test_empty_batch(self, params):
        assert DeNovoSequencer(params).identify_batch([]) == []


def test_precursor_mz_round_trip(avl_spectrum):
    """Test the fixture's precursor is residues + H2O + proton."""
    assert avl_spectrum.precursor_mz - PROTON_MASS == pytest.approx(avl_spectrum.peptide_mass())
