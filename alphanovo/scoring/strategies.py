"""Ion scoring strategies, one per fragmentation method.

A strategy is a capability description, not a subclass: it lists the ion
series a method produces, the peaks that corroborate each series and the
ions used to build theoretical ladders. ``get_strategy`` selects one from
the configured ``FragmentationMethod``.

- CID: b/y ions, witnessed by H2O/NH3 losses and a-ions
- ETD: c/z-dot ions, witnessed by z+1 ions
- CID_ETD: both
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from ..config import FragmentationMethod
from ..constants import (
    A_ION_OFFSET,
    B_ION_OFFSET,
    C_ION_OFFSET,
    H2O_MASS,
    HYDROGEN_MASS,
    NH3_MASS,
    Y_ION_OFFSET,
    Z_ION_OFFSET,
)
from ..fragments.ladder import ION_B, ION_C, ION_Y, ION_Z


@dataclass(frozen=True)
class IonScoringStrategy:
    """Ion series used to read a spectrum of one fragmentation method.

    Attributes
    ----------
    name : str
        Method name
    series_offsets : tuple of float
        Singly charged offset of every ion series
    series_n_terminal : tuple of bool
        Whether each series measures the prefix (True) or the suffix
    witness_shifts : tuple of tuple of float
        Mass shifts (relative to the ion, singly charged) of peaks that
        corroborate each series
    ladder_ions : tuple of int
        Ion identifiers used to build theoretical ladders
    """
    name: str
    series_offsets: Tuple[float, ...]
    series_n_terminal: Tuple[bool, ...]
    witness_shifts: Tuple[Tuple[float, ...], ...]
    ladder_ions: Tuple[int, ...]

    def witness_matrix(self) -> np.ndarray:
        """Witness shifts as a NaN-padded 2D array (series x shifts)."""
        width = max((len(shifts) for shifts in self.witness_shifts), default=0)
        matrix = np.full((len(self.series_offsets), max(width, 1)), np.nan)
        for i, shifts in enumerate(self.witness_shifts):
            matrix[i, :len(shifts)] = shifts
        return matrix


CID_STRATEGY = IonScoringStrategy(
    name="CID",
    series_offsets=(B_ION_OFFSET, Y_ION_OFFSET),
    series_n_terminal=(True, False),
    witness_shifts=(
        (-H2O_MASS, -NH3_MASS, A_ION_OFFSET - B_ION_OFFSET),  # b-H2O, b-NH3, a
        (-H2O_MASS, -NH3_MASS),            # y-H2O, y-NH3
    ),
    ladder_ions=(ION_B, ION_Y),
)

ETD_STRATEGY = IonScoringStrategy(
    name="ETD",
    series_offsets=(C_ION_OFFSET, Z_ION_OFFSET),
    series_n_terminal=(True, False),
    witness_shifts=(
        (),
        (HYDROGEN_MASS,),  # z+1
    ),
    ladder_ions=(ION_C, ION_Z),
)

CID_ETD_STRATEGY = IonScoringStrategy(
    name="CID_ETD",
    series_offsets=CID_STRATEGY.series_offsets + ETD_STRATEGY.series_offsets,
    series_n_terminal=CID_STRATEGY.series_n_terminal + ETD_STRATEGY.series_n_terminal,
    witness_shifts=CID_STRATEGY.witness_shifts + ETD_STRATEGY.witness_shifts,
    ladder_ions=CID_STRATEGY.ladder_ions + ETD_STRATEGY.ladder_ions,
)

_STRATEGIES: Dict[FragmentationMethod, IonScoringStrategy] = {
    FragmentationMethod.CID: CID_STRATEGY,
    FragmentationMethod.ETD: ETD_STRATEGY,
    FragmentationMethod.CID_ETD: CID_ETD_STRATEGY,
}


def get_strategy(method: FragmentationMethod) -> IonScoringStrategy:
    """Ion scoring strategy for a fragmentation method."""
    return _STRATEGIES[method]
