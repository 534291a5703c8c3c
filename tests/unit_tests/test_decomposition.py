"""Tests for the divide-and-conquer spectrum graph decomposition."""

import itertools
import threading
from types import SimpleNamespace

import numpy as np
import pytest

from alphanovo.config import DeNovoParams
from alphanovo.constants import AA_MASSES_DICT, H2O_MASS
from alphanovo.graph import decomposition
from alphanovo.graph.decomposition import Decomposer, decompose
from alphanovo.graph.node_map import IonScore, IonType, NodeMap
from alphanovo.scoring.ion_scoring import score_spectrum
from alphanovo.spectrum import Spectrum


A = AA_MASSES_DICT["A"]
G = AA_MASSES_DICT["G"]
L = AA_MASSES_DICT["L"]
V = AA_MASSES_DICT["V"]

EMPTY = Spectrum(mz=np.array([]), intensity=np.array([]))


def chain(masses):
    """Node map over the given prefix masses; first and last are boundaries."""
    scores = [IonScore(1.0, 1, IonType.N_TERMINAL) for _ in masses]
    scores[0] = IonScore(0.0, 0, IonType.BOUNDARY)
    scores[-1] = IonScore(0.0, 0, IonType.BOUNDARY)
    return NodeMap(np.array(masses), scores)


def run(node_map, params):
    peptide_weight = node_map.mass(len(node_map) - 1) + H2O_MASS
    return decompose(node_map, 0, len(node_map) - 1, peptide_weight, EMPTY, params)


class TestDecompose:
    """Test candidate enumeration between boundary nodes."""

    def test_avl(self, avl_spectrum, params):
        peptide_weight = avl_spectrum.peptide_mass()
        node_map = score_spectrum(avl_spectrum, peptide_weight, params)

        result = decompose(node_map, 0, len(node_map) - 1, peptide_weight, avl_spectrum, params)

        assert ("A", "V", "L") in result.sequences
        assert not result.truncated
        assert not result.aborted

    def test_edges_are_residue_masses(self, avl_spectrum):
        """Test every consecutive node pair of a candidate is one residue apart."""
        params = DeNovoParams(fragment_tolerance=0.05, max_residues_per_gap=1)
        peptide_weight = avl_spectrum.peptide_mass()
        node_map = score_spectrum(avl_spectrum, peptide_weight, params)

        result = decompose(node_map, 0, len(node_map) - 1, peptide_weight, avl_spectrum, params)

        assert result.sequences
        for sequence in result.sequences:
            prefix = 0.0
            for token in sequence:
                prefix += params.residues.mass(token)
                assert node_map.find(prefix, 3 * params.fragment_tolerance) != -1

    def test_isobaric_alternatives(self, params):
        """Test a K/Q gap yields both residues as separate candidates."""
        node_map = chain([0.0, A, A + AA_MASSES_DICT["K"]])
        result = run(node_map, params)
        assert result.sequences == {("A", "K"), ("A", "Q")}

    def test_bridge_without_intermediate_nodes(self):
        """Test a node-less gap of A+V is filled by every composition order."""
        params = DeNovoParams(fragment_tolerance=0.01)
        result = run(chain([0.0, A + V]), params)
        assert result.sequences == {("A", "V"), ("V", "A"), ("G", "L"), ("L", "G")}

    def test_bridge_disabled(self):
        params = DeNovoParams(fragment_tolerance=0.01, max_residues_per_gap=1)
        result = run(chain([0.0, A + V]), params)
        assert result.sequences == set()

    def test_bridge_max_gap_mass(self):
        params = DeNovoParams(fragment_tolerance=0.01, max_gap_mass=100.0)
        result = run(chain([0.0, A + V]), params)
        assert result.sequences == set()

    def test_bridge_reduced_by_subscore(self):
        """Test large permutation sets are cut to the best-scoring few."""
        params = DeNovoParams(fragment_tolerance=0.01, max_subscore_candidates=2)
        result = run(chain([0.0, A + V]), params)
        assert len(result.sequences) == 2

    def test_truncated(self):
        """Test ``max_candidates`` caps the candidate set and sets the flag."""
        params = DeNovoParams(fragment_tolerance=0.01, max_candidates=2)
        node_map = chain([0.0, G, 2 * G, 3 * G, 4 * G])

        result = run(node_map, params)

        assert result.truncated
        assert 0 < len(result.sequences) <= 2

    def test_not_truncated_with_room(self):
        params = DeNovoParams(fragment_tolerance=0.01)
        node_map = chain([0.0, G, 2 * G, 3 * G, 4 * G])

        result = run(node_map, params)

        assert not result.truncated
        assert result.sequences == {
            ("G", "G", "G", "G"),
            ("N", "G", "G"),
            ("G", "N", "G"),
            ("G", "G", "N"),
            ("N", "N"),
        }

    def test_unreachable(self, params):
        """Test a gap no residue explains yields no candidates."""
        result = run(chain([0.0, 40.0]), params)
        assert result.sequences == set()
        assert not result.truncated

    def test_fewer_than_two_nodes(self, params):
        empty_map = NodeMap(np.array([]), [])
        result = decompose(empty_map, 0, 0, 100.0, EMPTY, params)
        assert result.sequences == set()

    def test_deterministic(self, avl_spectrum, params):
        peptide_weight = avl_spectrum.peptide_mass()
        node_map = score_spectrum(avl_spectrum, peptide_weight, params)
        first = decompose(node_map, 0, len(node_map) - 1, peptide_weight, avl_spectrum, params)
        second = decompose(node_map, 0, len(node_map) - 1, peptide_weight, avl_spectrum, params)
        assert first.sequences == second.sequences


class TestDecomposer:
    """Test the decomposer's guards."""

    def test_invalid_bounds(self, params):
        decomposer = Decomposer(chain([0.0, A]), A + H2O_MASS, EMPTY, params)
        with pytest.raises(ValueError):
            decomposer.run(1, 0)

    def test_cancelled(self, params):
        event = threading.Event()
        event.set()
        node_map = chain([0.0, A, A + V, A + V + L])

        result = decompose(node_map, 0, 3, A + V + L + H2O_MASS, EMPTY, params, cancel_event=event)

        assert result.aborted
        assert result.sequences == set()

    def test_time_limit(self, monkeypatch):
        """Test an expired deadline stops the search and flags the result."""
        clock = itertools.count(0, 1000)
        monkeypatch.setattr(decomposition, "time", SimpleNamespace(monotonic=lambda: next(clock)))
        params = DeNovoParams(fragment_tolerance=0.01, time_limit=1.0)
        node_map = chain([0.0, G, 2 * G, 3 * G])

        result = run(node_map, params)

        assert result.aborted
        assert not result.truncated

    def test_memoised_subranges(self, params):
        node_map = chain([0.0, G, 2 * G, 3 * G])
        decomposer = Decomposer(node_map, 3 * G + H2O_MASS, EMPTY, params.replace(fragment_tolerance=0.01))
        result = decomposer.run(0, 3)
        # (0,1) (1,2) (2,3) (0,2) (1,3) (0,3)
        assert result.n_subranges == 6

    def test_depth_guard(self):
        params = DeNovoParams(fragment_tolerance=0.01, max_recursion_depth=1)
        node_map = chain([0.0, G, 2 * G, 3 * G, 4 * G])
        result = run(node_map, params)
        assert result.truncated
