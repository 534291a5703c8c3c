"""AlphaNovo - De novo peptide sequencing from tandem mass spectra.

Reads peptide sequences directly off fragmentation spectra without a
sequence database: peaks are scored into a graph of prefix-mass nodes, the
graph is decomposed divide-and-conquer into residue sequences, and candidate
orderings are ranked by matching their theoretical fragment ladders.

Hot loops (mass lookup, ladder generation, peak matching) are Numba-compiled.

Examples
--------
>>> from alphanovo import DeNovoParams, DeNovoSequencer, Spectrum
>>> spectrum = Spectrum(mz, intensity, precursor_mz=302.19, precursor_charge=1)
>>> DeNovoSequencer(DeNovoParams()).identify(spectrum).sequences[:3]
"""

__version__ = "0.1.0"

from alphanovo import constants
from alphanovo import search
from alphanovo import fragments
from alphanovo import graph
from alphanovo import scoring

from alphanovo.config import (
    DeNovoParams,
    FragmentationMethod,
    InstrumentType,
    ToleranceUnit,
)
from alphanovo.engine import DeNovoSequencer
from alphanovo.exceptions import ConfigurationError, InvalidSpectrumError
from alphanovo.identification import PeptideHit, PeptideIdentification
from alphanovo.residues import ResidueTable
from alphanovo.spectrum import Spectrum

__all__ = [
    "constants",
    "search",
    "fragments",
    "graph",
    "scoring",
    "DeNovoParams",
    "FragmentationMethod",
    "InstrumentType",
    "ToleranceUnit",
    "DeNovoSequencer",
    "ConfigurationError",
    "InvalidSpectrumError",
    "PeptideHit",
    "PeptideIdentification",
    "ResidueTable",
    "Spectrum",
]
