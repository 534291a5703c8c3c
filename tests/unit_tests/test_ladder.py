"""Tests for theoretical fragment ladder generation."""

import numpy as np
import pytest

from alphanovo.constants import (
    AA_MASSES_DICT,
    C_ION_OFFSET,
    H2O_MASS,
    PROTON_MASS,
    Z_ION_OFFSET,
)
from alphanovo.fragments.ladder import ION_B, ION_C, ION_Y, ION_Z, generate_ladder


A = AA_MASSES_DICT["A"]
V = AA_MASSES_DICT["V"]
L = AA_MASSES_DICT["L"]


def by_ladder(masses, prefix=0.0, suffix=0.0, max_charge=1):
    return generate_ladder(
        np.array(masses, dtype=np.float64),
        prefix,
        suffix,
        np.array([ION_B, ION_Y], dtype=np.int64),
        max_charge,
    )


class TestGenerateLadder:
    """Test b/y and c/z ladders of full and partial candidates."""

    def test_avl_by_ions(self):
        """Test AVL gives b1, y2, b2, y1 at 72.04, 231.17, 171.11, 132.10."""
        mz = by_ladder([A, V, L])

        expected = [
            A + PROTON_MASS,
            V + L + H2O_MASS + PROTON_MASS,
            A + V + PROTON_MASS,
            L + H2O_MASS + PROTON_MASS,
        ]
        np.testing.assert_allclose(mz, expected)
        np.testing.assert_allclose(mz, [72.04, 231.17, 171.11, 132.10], atol=0.01)

    def test_no_precursor_fragments(self):
        """Test empty and full-peptide fragments are skipped."""
        mz = by_ladder([A])
        assert len(mz) == 0

    def test_partial_candidate_uses_offsets(self):
        """Test a middle residue is scored where the full peptide puts it."""
        partial = by_ladder([V], prefix=A, suffix=L)
        full = by_ladder([A, V, L])
        np.testing.assert_allclose(np.sort(partial), np.sort(full))

    def test_prefix_only(self):
        """Test a candidate ending at the C-terminus keeps its inner sites."""
        mz = by_ladder([V, L], prefix=A)
        assert len(mz) == 4

    def test_doubly_charged(self):
        mz = by_ladder([A, V, L], max_charge=2)
        assert len(mz) == 8
        b1 = A + PROTON_MASS
        assert (b1 + PROTON_MASS) / 2 == pytest.approx(mz[1])

    def test_etd_ions(self):
        mz = generate_ladder(
            np.array([A, V, L]),
            0.0,
            0.0,
            np.array([ION_C, ION_Z], dtype=np.int64),
            1,
        )
        assert mz[0] == pytest.approx(A + C_ION_OFFSET)
        assert mz[1] == pytest.approx(V + L + Z_ION_OFFSET)
