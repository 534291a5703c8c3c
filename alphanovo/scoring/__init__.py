"""Scoring modules for de novo sequencing.

This module provides the two scoring stages of the pipeline:
- Ion scoring: peaks -> scored prefix-mass nodes (per fragmentation method)
- Permutation scoring: candidate sequences -> ranked records by ladder matching

Examples
--------
>>> from alphanovo.scoring import score_spectrum, reduce_permutations
>>>
>>> node_map = score_spectrum(spectrum, peptide_weight, params)
>>> records = reduce_permutations(candidates, spectrum, 0.0, 0.0, params)
"""

from .strategies import (
    IonScoringStrategy,
    CID_STRATEGY,
    ETD_STRATEGY,
    CID_ETD_STRATEGY,
    get_strategy,
)

from .ion_scoring import score_spectrum

from .permutation_scoring import (
    PermutationRecord,
    ranking_key,
    score_candidate,
    reduce_permutations,
)

__all__ = [
    # Ion scoring
    'IonScoringStrategy',
    'CID_STRATEGY',
    'ETD_STRATEGY',
    'CID_ETD_STRATEGY',
    'get_strategy',
    'score_spectrum',
    # Permutation scoring
    'PermutationRecord',
    'ranking_key',
    'score_candidate',
    'reduce_permutations',
]
