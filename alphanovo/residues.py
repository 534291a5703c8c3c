"""Residue mass table with fixed and variable modifications.

The residue table is the only source of edge labels in the spectrum graph:
every gap between two nodes must be explained by one of its masses. It is
built once per search configuration and shared read-only across spectra.

Modifications use the ``"Name@Residue"`` format found in proteomics data
files (e.g. ``"Carbamidomethyl@C"``, ``"Oxidation@M"``).

Examples
--------
>>> table = ResidueTable.standard(
...     fixed_modifications=["Carbamidomethyl@C"],
...     variable_modifications=["Oxidation@M"],
... )
>>> table.mass("C")
160.030649
>>> table.match(147.0354, tolerance=0.01)
['M[Oxidation]']
>>> split_sequence("PEM[Oxidation]K")
['P', 'E', 'M[Oxidation]', 'K']
"""

from __future__ import annotations

import re
from itertools import permutations
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from .constants import AA_MASSES_DICT, DEFAULT_EXCLUDED_RESIDUES, MODIFICATION_MASSES
from .exceptions import ConfigurationError
from .search.fragment_matching import find_mass_window


_TOKEN_PATTERN = re.compile(r"[A-Z](?:\[[^\]]+\])?")


# =============================================================================
# Modification Parsing
# =============================================================================

def parse_modification(modification: str) -> Tuple[str, str]:
    """Parse a ``"Name@Residue"`` string into ``(name, residue)``.

    Parameters
    ----------
    modification : str
        Modification string, e.g. ``"Oxidation@M"``

    Returns
    -------
    Tuple[str, str]
        Modification name and the one-letter residue it applies to

    Raises
    ------
    ConfigurationError
        If the string is malformed or the modification name is unknown
    """
    name, sep, residue = modification.strip().partition("@")
    if not sep or len(residue) != 1 or residue not in AA_MASSES_DICT:
        raise ConfigurationError(
            f"Invalid modification '{modification}', expected 'Name@Residue'"
        )
    if name not in MODIFICATION_MASSES:
        raise ConfigurationError(
            f"Unknown modification '{name}'. "
            f"Known: {', '.join(sorted(MODIFICATION_MASSES))}"
        )
    return name, residue


def split_sequence(sequence: str) -> List[str]:
    """Split a sequence string into residue tokens.

    ``"PEM[Oxidation]K"`` becomes ``['P', 'E', 'M[Oxidation]', 'K']``.
    """
    tokens = _TOKEN_PATTERN.findall(sequence)
    if "".join(tokens) != sequence:
        raise ValueError(f"Cannot tokenize sequence '{sequence}'")
    return tokens


def unique_permutations(composition: Sequence[str]) -> List[Tuple[str, ...]]:
    """All distinct orderings of a residue composition, sorted."""
    return sorted(set(permutations(composition)))


# =============================================================================
# Residue Table
# =============================================================================

class ResidueTable:
    """Residue tokens and their monoisotopic masses, sorted by mass.

    Parameters
    ----------
    residue_masses : dict
        Mapping from residue token to residue mass in Da

    Raises
    ------
    ConfigurationError
        If the table is empty or holds a non-positive / non-finite mass
    """

    def __init__(self, residue_masses: Dict[str, float]):
        if not residue_masses:
            raise ConfigurationError("Residue table is empty")
        for token, mass in residue_masses.items():
            if not np.isfinite(mass) or mass <= 0.0:
                raise ConfigurationError(
                    f"Residue '{token}' has invalid mass {mass}"
                )

        ordered = sorted(residue_masses.items(), key=lambda item: (item[1], item[0]))
        self.tokens: Tuple[str, ...] = tuple(token for token, _ in ordered)
        self.masses = np.array([mass for _, mass in ordered], dtype=np.float64)
        self.masses.flags.writeable = False
        self._mass_by_token = dict(ordered)

    @classmethod
    def standard(
        cls,
        exclude: str = DEFAULT_EXCLUDED_RESIDUES,
        fixed_modifications: Iterable[str] = (),
        variable_modifications: Iterable[str] = (),
    ) -> "ResidueTable":
        """Build the table from the 20 standard amino acids.

        Parameters
        ----------
        exclude : str
            One-letter codes to leave out (default: ``"I"``, isobaric with L)
        fixed_modifications : iterable of str
            ``"Name@Residue"`` strings; the modified mass replaces the residue
        variable_modifications : iterable of str
            ``"Name@Residue"`` strings; each adds a token ``"R[Name]"``
        """
        masses = {aa: mass for aa, mass in AA_MASSES_DICT.items() if aa not in exclude}

        for modification in fixed_modifications:
            name, residue = parse_modification(modification)
            if residue in masses:
                masses[residue] = AA_MASSES_DICT[residue] + MODIFICATION_MASSES[name]

        for modification in variable_modifications:
            name, residue = parse_modification(modification)
            if residue in masses:
                masses[f"{residue}[{name}]"] = masses[residue] + MODIFICATION_MASSES[name]

        return cls(masses)

    def __len__(self) -> int:
        return len(self.tokens)

    def __contains__(self, token: str) -> bool:
        return token in self._mass_by_token

    def __iter__(self):
        return iter(self.tokens)

    def __repr__(self) -> str:
        return f"ResidueTable({len(self)} residues: {' '.join(self.tokens)})"

    @property
    def min_mass(self) -> float:
        return float(self.masses[0])

    def mass(self, token: str) -> float:
        """Residue mass of one token (KeyError if unknown)."""
        return self._mass_by_token[token]

    def sequence_mass(self, residues: Iterable[str]) -> float:
        """Sum of residue masses (no terminal water).

        ``residues`` is a token sequence or a sequence string such as
        ``"PEM[Oxidation]K"``.
        """
        if isinstance(residues, str):
            residues = split_sequence(residues)
        return float(sum(self._mass_by_token[token] for token in residues))

    def residue_masses(self, residues: Sequence[str]) -> np.ndarray:
        """Residue masses of a token sequence (or sequence string) as a float64 array."""
        if isinstance(residues, str):
            residues = split_sequence(residues)
        return np.array([self._mass_by_token[token] for token in residues], dtype=np.float64)

    def match(self, mass: float, tolerance: float) -> List[str]:
        """Every token whose mass lies within ``tolerance`` of ``mass``.

        Isobaric and near-isobaric residues are all returned, ordered by
        mass; no residue is preferred over another.
        """
        start, stop = find_mass_window(self.masses, mass, tolerance)
        return list(self.tokens[start:stop])

    def compositions(
        self,
        mass: float,
        tolerance: float,
        max_residues: int,
    ) -> List[Tuple[str, ...]]:
        """Residue multisets of up to ``max_residues`` summing to ``mass``.

        Each composition is returned once, tokens ordered by mass.

        Examples
        --------
        >>> table = ResidueTable({'G': 57.021464, 'A': 71.037114})
        >>> table.compositions(128.058578, 0.01, 2)
        [('G', 'A')]
        """
        results: List[Tuple[str, ...]] = []
        masses = self.masses
        chosen: List[int] = []

        def extend(start: int, remaining: float) -> None:
            if chosen and abs(remaining) <= tolerance:
                results.append(tuple(self.tokens[i] for i in chosen))
            if len(chosen) == max_residues:
                return
            for i in range(start, len(masses)):
                if masses[i] > remaining + tolerance:
                    break
                chosen.append(i)
                extend(i, remaining - masses[i])
                chosen.pop()

        extend(0, mass)
        return results
