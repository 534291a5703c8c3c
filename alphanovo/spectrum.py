"""Spectrum container, validation and preprocessing.

A ``Spectrum`` holds parallel m/z and intensity arrays sorted ascending by
m/z, plus precursor metadata. The core never mutates it: arrays are copied
into read-only float64 buffers on construction, and preprocessing returns a
new ``Spectrum``.

Preprocessing steps
-------------------
- ``window_mower``: keep the most intense peaks per m/z window
- ``estimate_peptide_mass``: refine the neutral peptide mass from
  complementary b/y ion pairs

Examples
--------
>>> spectrum = Spectrum.from_peaks(
...     [(72.04, 10.0), (171.11, 20.0)], precursor_mz=302.21, precursor_charge=1
... )
>>> spectrum.validate()
>>> round(spectrum.peptide_mass(), 3)
301.203
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np
import numba

from .constants import PROTON_MASS
from .exceptions import InvalidSpectrumError
from .search.fragment_matching import binary_search_mass

logger = logging.getLogger(__name__)


def _readonly(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class Spectrum:
    """One fragmentation spectrum.

    Attributes
    ----------
    mz : np.ndarray (float64)
        Peak m/z values, sorted ascending
    intensity : np.ndarray (float64)
        Peak intensities (parallel to mz)
    precursor_mz : float
        Precursor m/z (0.0 if unknown, then precursor_mass is required)
    precursor_charge : int
        Precursor charge state (default 1)
    precursor_mass : float, optional
        Neutral peptide mass; overrides the value derived from precursor_mz
    native_id : str
        Identifier carried through to the result
    """

    mz: np.ndarray
    intensity: np.ndarray
    precursor_mz: float = 0.0
    precursor_charge: int = 1
    precursor_mass: Optional[float] = None
    native_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "mz", _readonly(self.mz))
        object.__setattr__(self, "intensity", _readonly(self.intensity))

    @classmethod
    def from_peaks(cls, peaks: Iterable[Tuple[float, float]], **metadata) -> "Spectrum":
        """Build from ``(mz, intensity)`` pairs, sorting by m/z."""
        peaks = sorted(peaks)
        mz = [peak[0] for peak in peaks]
        intensity = [peak[1] for peak in peaks]
        return cls(mz=mz, intensity=intensity, **metadata)

    def __len__(self) -> int:
        return len(self.mz)

    @property
    def is_empty(self) -> bool:
        return len(self.mz) == 0

    def validate(self, spectrum_index: Optional[int] = None) -> None:
        """Fail fast on malformed input.

        An empty spectrum is valid (it simply yields zero hits). A spectrum
        without precursor_mz or precursor_mass is not.

        Raises
        ------
        InvalidSpectrumError
            Length mismatch, non-finite or negative values, non-ascending m/z,
            or an unusable precursor
        """
        if self.mz.ndim != 1 or self.mz.shape != self.intensity.shape:
            raise InvalidSpectrumError(
                f"mz and intensity shapes differ: {self.mz.shape} vs {self.intensity.shape}",
                spectrum_index,
            )
        if not np.all(np.isfinite(self.mz)) or not np.all(np.isfinite(self.intensity)):
            raise InvalidSpectrumError("non-finite peak value", spectrum_index)
        if len(self.mz) and self.mz.min() < 0.0:
            raise InvalidSpectrumError(f"negative m/z {self.mz.min()}", spectrum_index)
        if len(self.intensity) and self.intensity.min() < 0.0:
            raise InvalidSpectrumError(
                f"negative intensity {self.intensity.min()}", spectrum_index
            )
        if len(self.mz) > 1:
            steps = np.diff(self.mz)
            if np.any(steps < 0.0):
                bad = int(np.argmax(steps < 0.0))
                raise InvalidSpectrumError(
                    f"peaks not sorted by m/z at index {bad + 1} "
                    f"({self.mz[bad]} > {self.mz[bad + 1]})",
                    spectrum_index,
                )
        if self.precursor_charge < 1:
            raise InvalidSpectrumError(
                f"precursor charge must be >= 1, got {self.precursor_charge}", spectrum_index
            )
        if self.precursor_mass is not None:
            if not np.isfinite(self.precursor_mass) or self.precursor_mass <= 0.0:
                raise InvalidSpectrumError(
                    f"invalid precursor mass {self.precursor_mass}", spectrum_index
                )
        elif self.precursor_mz == 0.0:
            raise InvalidSpectrumError(
                "missing precursor: set precursor_mz or precursor_mass", spectrum_index
            )
        elif not np.isfinite(self.precursor_mz) or self.precursor_mz < 0.0:
            raise InvalidSpectrumError(
                f"invalid precursor m/z {self.precursor_mz}", spectrum_index
            )

    def peptide_mass(self) -> float:
        """Neutral peptide mass (residues + H2O) from the precursor."""
        if self.precursor_mass is not None:
            return float(self.precursor_mass)
        charge = self.precursor_charge
        return self.precursor_mz * charge - charge * PROTON_MASS

    def with_peaks(self, mz: np.ndarray, intensity: np.ndarray) -> "Spectrum":
        """Copy with a different peak list and the same metadata."""
        return Spectrum(
            mz=mz,
            intensity=intensity,
            precursor_mz=self.precursor_mz,
            precursor_charge=self.precursor_charge,
            precursor_mass=self.precursor_mass,
            native_id=self.native_id,
        )


# =============================================================================
# Window Mower
# =============================================================================

@numba.jit(nopython=True, cache=True)
def _window_mower_mask(
    mz: np.ndarray,
    intensity: np.ndarray,
    window_size: float,
    peaks_per_window: int,
) -> np.ndarray:
    """Mark the ``peaks_per_window`` most intense peaks of each window.

    Windows are consecutive, non-overlapping and start at the first peak.
    """
    n = len(mz)
    keep = np.zeros(n, dtype=np.bool_)
    start = 0
    while start < n:
        stop = start
        window_end = mz[start] + window_size
        while stop < n and mz[stop] < window_end:
            stop += 1
        order = np.argsort(-intensity[start:stop], kind="mergesort")
        for k in range(min(peaks_per_window, stop - start)):
            keep[start + order[k]] = True
        start = stop
    return keep


def window_mower(spectrum: Spectrum, window_size: float, peaks_per_window: int) -> Spectrum:
    """Keep the most intense peaks in every m/z window.

    Parameters
    ----------
    spectrum : Spectrum
        Input spectrum (not modified)
    window_size : float
        Window width in Th
    peaks_per_window : int
        Peaks kept per window; 0 disables filtering

    Returns
    -------
    Spectrum
        Filtered copy (same object when nothing is removed)
    """
    if peaks_per_window == 0 or spectrum.is_empty:
        return spectrum
    keep = _window_mower_mask(spectrum.mz, spectrum.intensity, window_size, peaks_per_window)
    if keep.all():
        return spectrum
    logger.debug(f"Window mower kept {int(keep.sum())}/{len(keep)} peaks")
    return spectrum.with_peaks(spectrum.mz[keep], spectrum.intensity[keep])


# =============================================================================
# Precursor Mass Estimation
# =============================================================================

@numba.jit(nopython=True, cache=True)
def _complementary_support(
    mz: np.ndarray,
    intensity: np.ndarray,
    peptide_mass: float,
    tolerance: float,
) -> float:
    """Intensity of b/y pairs whose singly charged m/z sum to M + 2H+."""
    target_sum = peptide_mass + 2.0 * PROTON_MASS
    support = 0.0
    for i in range(len(mz)):
        partner = target_sum - mz[i]
        if partner <= mz[i]:
            break
        j = binary_search_mass(mz, partner, tolerance)
        if j != -1:
            support += np.sqrt(intensity[i] * intensity[j])
    return support


def estimate_peptide_mass(
    spectrum: Spectrum,
    peptide_mass: float,
    precursor_tolerance: float,
    fragment_tolerance: float,
) -> float:
    """Refine the neutral peptide mass from complementary ion pairs.

    Candidate masses are scanned across ``peptide_mass +/- precursor_tolerance``
    in steps of half the fragment tolerance; the one with the most
    intensity-weighted complementary b/y pairs wins. Without any pair the
    input mass is returned unchanged.

    Parameters
    ----------
    spectrum : Spectrum
        Validated spectrum
    peptide_mass : float
        Neutral mass derived from the precursor
    precursor_tolerance : float
        Search half-width in Da
    fragment_tolerance : float
        Pair matching tolerance in Da

    Returns
    -------
    float
        Estimated neutral peptide mass
    """
    if len(spectrum) < 2:
        return peptide_mass

    step = fragment_tolerance / 2.0
    offsets = np.arange(-precursor_tolerance, precursor_tolerance + step / 2.0, step)
    # Prefer the measured mass on ties: scan outward from zero offset.
    offsets = offsets[np.argsort(np.abs(offsets), kind="mergesort")]

    best_mass = peptide_mass
    best_support = 0.0
    for offset in offsets:
        candidate = peptide_mass + offset
        support = _complementary_support(
            spectrum.mz, spectrum.intensity, candidate, fragment_tolerance
        )
        if support > best_support:
            best_support = support
            best_mass = candidate

    if best_mass != peptide_mass:
        logger.debug(
            f"Estimated peptide mass {best_mass:.4f} (precursor {peptide_mass:.4f})"
        )
    return float(best_mass)
