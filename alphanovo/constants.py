"""Physical constants and residue masses for de novo sequencing.

This module provides the physical constants, residue masses, ion offsets and
default tolerances used throughout AlphaNovo. All values are sourced from NIST
or established proteomics standards.

Key Features
------------
- Correct PROTON_MASS (1.007276466622 Da, not hydrogen atom mass!)
- Monoisotopic residue masses for the 20 standard amino acids
- Ion-type offsets for CID (b/y) and ETD (c/z-dot) ladders
- Neutral losses used as witness evidence (H2O, NH3, CO)
- Common modification masses keyed by Unimod name

Sources
-------
- NIST physical constants: https://physics.nist.gov/cgi-bin/cuu/Value
- IUPAC amino acid masses: https://www.unimod.org/masses.html
- Unimod modification masses: https://www.unimod.org/modifications_list.php
"""

# =============================================================================
# Fundamental Physical Constants (NIST values)
# =============================================================================

# Proton mass (NOT hydrogen atom mass!)
# Source: NIST 2018 CODATA
PROTON_MASS = 1.007276466622  # Da

# Electron mass
ELECTRON_MASS = 0.000548579909  # Da

# Hydrogen atom (proton + electron)
HYDROGEN_MASS = PROTON_MASS + ELECTRON_MASS  # Da

# Water mass (H2O)
# Calculated: 2*1.007825 + 15.994915 = 18.010564684
H2O_MASS = 18.010564684  # Da

# Ammonia mass (NH3)
# Calculated: 14.003074 + 3*1.007825 = 17.026549101
NH3_MASS = 17.026549101  # Da

# Carbon monoxide mass (CO)
CO_MASS = 27.994914620  # Da

# NH2 radical lost from a y-ion to form the z-dot ion
NH2_MASS = NH3_MASS - HYDROGEN_MASS  # Da

# =============================================================================
# Ion Type Offsets (singly charged, added to the neutral residue sum)
# =============================================================================

# b-ions: N-terminal fragments, [prefix + H]+
B_ION_OFFSET = PROTON_MASS

# y-ions: C-terminal fragments, [suffix + H2O + H]+
Y_ION_OFFSET = H2O_MASS + PROTON_MASS

# a-ions: b-ions minus CO (witness evidence only)
A_ION_OFFSET = PROTON_MASS - CO_MASS

# c-ions: b-ions plus NH3 (ETD)
C_ION_OFFSET = PROTON_MASS + NH3_MASS

# z-dot ions: y-ions minus NH2 (ETD)
Z_ION_OFFSET = Y_ION_OFFSET - NH2_MASS

# =============================================================================
# Isotope Masses
# =============================================================================

# Mass difference between C12 and C13
ISOTOPE_MASS_DIFFERENCE = 1.003355  # Da

# =============================================================================
# Amino Acid Monoisotopic Residue Masses (Da)
# =============================================================================

# Standard 20 amino acids (unmodified)
# Values are monoisotopic masses of residues (not including N/C terminals)
AA_MASSES_DICT = {
    'A': 71.037114,   # Alanine
    'R': 156.101111,  # Arginine
    'N': 114.042927,  # Asparagine
    'D': 115.026943,  # Aspartic acid
    'C': 103.009185,  # Cysteine (unmodified)
    'E': 129.042593,  # Glutamic acid
    'Q': 128.058578,  # Glutamine
    'G': 57.021464,   # Glycine
    'H': 137.058912,  # Histidine
    'I': 113.084064,  # Isoleucine
    'L': 113.084064,  # Leucine
    'K': 128.094963,  # Lysine
    'M': 131.040485,  # Methionine
    'F': 147.068414,  # Phenylalanine
    'P': 97.052764,   # Proline
    'S': 87.032028,   # Serine
    'T': 101.047679,  # Threonine
    'W': 186.079313,  # Tryptophan
    'Y': 163.063320,  # Tyrosine
    'V': 99.068414,   # Valine
}

# Isoleucine is indistinguishable from leucine by mass; the default residue
# set reports both as L.
DEFAULT_EXCLUDED_RESIDUES = "I"

# Residues a tryptic peptide ends with
TRYPTIC_C_TERMINAL = frozenset("KR")

# =============================================================================
# Common Modification Masses (Unimod)
# =============================================================================

CARBAMIDOMETHYL_MASS = 57.021464  # Unimod:4, C2H3NO
OXIDATION_MASS = 15.994915        # Unimod:35, O
ACETYL_MASS = 42.010565           # Unimod:1, C2H2O
PHOSPHO_MASS = 79.966331          # Unimod:21, HPO3
DEAMIDATION_MASS = 0.984016       # Unimod:7, NH -> O

MODIFICATION_MASSES = {
    'Carbamidomethyl': CARBAMIDOMETHYL_MASS,
    'Oxidation': OXIDATION_MASS,
    'Acetyl': ACETYL_MASS,
    'Phospho': PHOSPHO_MASS,
    'Deamidation': DEAMIDATION_MASS,
}

# =============================================================================
# Default Settings
# =============================================================================

# Low-resolution ion trap defaults
DEFAULT_PRECURSOR_TOLERANCE = 1.5  # Da
DEFAULT_FRAGMENT_TOLERANCE = 0.3   # Da

# Growth control for the divide-and-conquer search
DEFAULT_MAX_CANDIDATES = 2000
DEFAULT_MAX_HITS = 100
DEFAULT_MAX_SUBSCORE_CANDIDATES = 40
DEFAULT_MAX_RESIDUES_PER_GAP = 3
DEFAULT_MAX_GAP_MASS = 450.0  # Da
DEFAULT_MAX_NODES = 60

# Window mower preprocessing
DEFAULT_WINDOW_SIZE = 100.0  # Th
DEFAULT_PEAKS_PER_WINDOW = 8
