"""Pytest configuration for AlphaNovo tests.

Common fixtures: small synthetic spectra whose fragment ions are computed
from the residue masses, so every expected value is exact by construction.
"""

import numpy as np
import pytest

from alphanovo.config import DeNovoParams
from alphanovo.constants import AA_MASSES_DICT, H2O_MASS, PROTON_MASS
from alphanovo.spectrum import Spectrum


def by_ions(sequence):
    """Singly charged b and y ion m/z of a plain sequence (no terminals)."""
    masses = [AA_MASSES_DICT[aa] for aa in sequence]
    b_ions = [sum(masses[:i]) + PROTON_MASS for i in range(1, len(masses))]
    y_ions = [sum(masses[i:]) + H2O_MASS + PROTON_MASS for i in range(1, len(masses))]
    return b_ions, y_ions


def peptide_mass(sequence):
    """Neutral peptide mass (residues + H2O)."""
    return sum(AA_MASSES_DICT[aa] for aa in sequence) + H2O_MASS


@pytest.fixture
def ion_ladder():
    """The ``by_ions`` helper, for tests that build their own spectra."""
    return by_ions


@pytest.fixture
def neutral_mass():
    """The ``peptide_mass`` helper."""
    return peptide_mass


@pytest.fixture
def avl_spectrum():
    """Clean b/y ladder of AVL: b1, b2, y1, y2 at 72.04, 171.11, 132.10, 231.17."""
    b_ions, y_ions = by_ions("AVL")
    peaks = [(b_ions[0], 100.0), (b_ions[1], 80.0), (y_ions[1], 70.0), (y_ions[0], 90.0)]
    return Spectrum.from_peaks(
        peaks,
        precursor_mz=peptide_mass("AVL") + PROTON_MASS,
        precursor_charge=1,
        native_id="scan=1",
    )


@pytest.fixture
def ak_spectrum():
    """Only the b1 ion of AK; the second residue is K or Q (0.036 Da apart)."""
    b_ions, _ = by_ions("AK")
    return Spectrum.from_peaks(
        [(b_ions[0], 100.0)],
        precursor_mz=peptide_mass("AK") + PROTON_MASS,
        precursor_charge=1,
    )


@pytest.fixture
def empty_spectrum():
    """Spectrum without peaks."""
    return Spectrum(mz=np.array([]), intensity=np.array([]), precursor_mz=302.2, precursor_charge=1)


@pytest.fixture
def params():
    """Tight fragment tolerance for the synthetic spectra."""
    return DeNovoParams(fragment_tolerance=0.05)


# Random seed for reproducibility
@pytest.fixture(scope="session", autouse=True)
def set_random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
