"""Search parameters for de novo sequencing.

Parameters are validated once at construction so that a bad configuration
fails before the first spectrum of a batch is touched. A single
``DeNovoParams`` instance is read-only during a search and can be shared by
concurrent workers.

Examples
--------
>>> params = DeNovoParams.for_instrument(InstrumentType.ORBITRAP)
>>> params.precursor_tolerance_da(1000.0)
0.01
>>> DeNovoParams(fragment_tolerance=0.0)
Traceback (most recent call last):
...
alphanovo.exceptions.ConfigurationError: fragment_tolerance must be > 0, got 0.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .constants import (
    DEFAULT_FRAGMENT_TOLERANCE,
    DEFAULT_MAX_CANDIDATES,
    DEFAULT_MAX_GAP_MASS,
    DEFAULT_MAX_HITS,
    DEFAULT_MAX_NODES,
    DEFAULT_MAX_RESIDUES_PER_GAP,
    DEFAULT_MAX_SUBSCORE_CANDIDATES,
    DEFAULT_PEAKS_PER_WINDOW,
    DEFAULT_PRECURSOR_TOLERANCE,
    DEFAULT_WINDOW_SIZE,
)
from .exceptions import ConfigurationError
from .residues import ResidueTable


class ToleranceUnit(Enum):
    """Unit of the precursor mass tolerance."""
    DA = "Da"
    PPM = "ppm"


class FragmentationMethod(Enum):
    """Fragmentation method, selects the ion scoring strategy."""
    CID = "cid"          # b/y ions
    ETD = "etd"          # c/z-dot ions
    CID_ETD = "cid_etd"  # both ladders


class InstrumentType(Enum):
    """Instrument classes with different fragment mass accuracy."""
    ION_TRAP = "ion_trap"  # unit resolution MS2
    ORBITRAP = "orbitrap"  # high-resolution MS2, ~10 ppm
    TOF = "tof"            # Q-TOF, ~20 ppm


@dataclass(frozen=True)
class DeNovoParams:
    """Parameters for one de novo search configuration.

    All mass tolerances except the precursor tolerance are absolute (Da).
    """

    # Mass tolerances
    precursor_tolerance: float = DEFAULT_PRECURSOR_TOLERANCE
    precursor_tolerance_unit: ToleranceUnit = ToleranceUnit.DA
    fragment_tolerance: float = DEFAULT_FRAGMENT_TOLERANCE

    # Growth control
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    max_hits: int = DEFAULT_MAX_HITS
    max_subscore_candidates: int = DEFAULT_MAX_SUBSCORE_CANDIDATES
    max_residues_per_gap: int = DEFAULT_MAX_RESIDUES_PER_GAP
    max_gap_mass: float = DEFAULT_MAX_GAP_MASS
    max_nodes: int = DEFAULT_MAX_NODES
    max_recursion_depth: int = 200
    time_limit: Optional[float] = None  # seconds per spectrum

    # Ion scoring
    fragmentation: FragmentationMethod = FragmentationMethod.CID
    max_fragment_charge: int = 1
    unexplained_gap_penalty: float = 0.5

    # Preprocessing
    window_size: float = DEFAULT_WINDOW_SIZE
    peaks_per_window: int = DEFAULT_PEAKS_PER_WINDOW
    estimate_precursor: bool = False

    # Candidate filters
    tryptic_only: bool = False

    residues: ResidueTable = field(default_factory=ResidueTable.standard)

    def __post_init__(self):
        if isinstance(self.precursor_tolerance_unit, str):
            object.__setattr__(
                self, "precursor_tolerance_unit", _parse_enum(ToleranceUnit, self.precursor_tolerance_unit)
            )
        if isinstance(self.fragmentation, str):
            object.__setattr__(
                self, "fragmentation", _parse_enum(FragmentationMethod, self.fragmentation)
            )

        for name in ("precursor_tolerance", "fragment_tolerance", "window_size", "max_gap_mass"):
            value = getattr(self, name)
            if not value > 0:
                raise ConfigurationError(f"{name} must be > 0, got {value}")

        for name in (
            "max_candidates",
            "max_hits",
            "max_subscore_candidates",
            "max_residues_per_gap",
            "max_recursion_depth",
            "max_fragment_charge",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {value}")

        if self.max_nodes < 2:
            raise ConfigurationError(f"max_nodes must be >= 2, got {self.max_nodes}")
        if self.peaks_per_window < 0:
            raise ConfigurationError(
                f"peaks_per_window must be >= 0, got {self.peaks_per_window}"
            )
        if not 0.0 < self.unexplained_gap_penalty <= 1.0:
            raise ConfigurationError(
                f"unexplained_gap_penalty must be in (0, 1], got {self.unexplained_gap_penalty}"
            )
        if self.time_limit is not None and not self.time_limit > 0:
            raise ConfigurationError(f"time_limit must be > 0, got {self.time_limit}")
        if not isinstance(self.residues, ResidueTable) or len(self.residues) == 0:
            raise ConfigurationError("residues must be a non-empty ResidueTable")

    @classmethod
    def for_instrument(cls, instrument: InstrumentType, **overrides) -> "DeNovoParams":
        """Create parameters with instrument-specific tolerances.

        Args:
            instrument: Instrument type enum
            **overrides: Any other field to set

        Returns:
            DeNovoParams with instrument-specific defaults
        """
        if instrument == InstrumentType.ION_TRAP:
            preset = dict(
                precursor_tolerance=1.5,
                precursor_tolerance_unit=ToleranceUnit.DA,
                fragment_tolerance=0.3,
            )
        elif instrument == InstrumentType.ORBITRAP:
            preset = dict(
                precursor_tolerance=10.0,
                precursor_tolerance_unit=ToleranceUnit.PPM,
                fragment_tolerance=0.02,
            )
        elif instrument == InstrumentType.TOF:
            preset = dict(
                precursor_tolerance=20.0,
                precursor_tolerance_unit=ToleranceUnit.PPM,
                fragment_tolerance=0.05,
            )
        else:
            raise ConfigurationError(f"Unknown instrument type: {instrument}")
        preset.update(overrides)
        return cls(**preset)

    def replace(self, **changes) -> "DeNovoParams":
        """Copy with some fields changed (validated again)."""
        return replace(self, **changes)

    def precursor_tolerance_da(self, peptide_mass: float) -> float:
        """Precursor tolerance in Da at the given neutral peptide mass."""
        if self.precursor_tolerance_unit == ToleranceUnit.PPM:
            return peptide_mass * self.precursor_tolerance / 1e6
        return self.precursor_tolerance

    def fragment_charges(self, precursor_charge: int) -> range:
        """Fragment charges to consider for a precursor charge state."""
        return range(1, max(1, min(self.max_fragment_charge, precursor_charge - 1)) + 1)


def _parse_enum(enum_cls, value: str):
    for member in enum_cls:
        if member.value.lower() == value.lower() or member.name.lower() == value.lower():
            return member
    raise ConfigurationError(f"Unknown {enum_cls.__name__}: {value!r}")
