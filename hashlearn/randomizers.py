"""
Term Randomizers - term lists to feature vectors.

A randomizer turns a list of terms into a vector over the hashed feature
space. Three kinds of signal can be emitted:

- unigrams: every term, at each of ``probes`` hashed locations
- all pairs: every ordered pair of terms (a term paired with itself included)
- windowed pairs: each term paired with the ``window`` terms preceding it

Variants:
- BinaryRandomizer: sparse increment counts (the default for learning)
- DenseRandomizer: dense random projection built from hash-seeded Gaussians

Randomizers are stateless after construction and safe to share for reads.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterator, Sequence, Tuple
import logging

import numpy as np

from .constants import DEFAULT_NUM_PROBES, MAX_BINARY_CAPACITY
from .hashing import hash_term, hash_term_pair
from .vectors import SparseVector

logger = logging.getLogger(__name__)


def _preceding_pairs(terms: Sequence[str], window: int) -> Iterator[Tuple[str, str]]:
    """(term, earlier term) for each earlier term at most ``window`` back."""
    for n, term in enumerate(terms):
        for j in range(max(0, n - window), n):
            yield term, terms[j]


class TermRandomizer(ABC):
    """
    Base class for term randomizers.

    Subclasses produce one vector per term list; ``num_features`` fixes the
    size of that vector.
    """

    def __init__(self, num_features: int):
        if num_features <= 0:
            raise ValueError(f"num_features must be positive, got {num_features}")
        self.num_features = num_features

    @abstractmethod
    def randomized_instance(self, terms: Sequence[str], window: int = 0,
                            all_pairs: bool = False):
        """Vectorize a list of terms."""
        pass

    def hash(self, term: str, probe: int) -> int:
        return hash_term(term, probe, self.num_features)

    def hash_pair(self, term1: str, term2: str, probe: int) -> int:
        return hash_term_pair(term1, term2, probe, self.num_features)


class BinaryRandomizer(TermRandomizer):
    """
    Sparse randomizer: each emitted feature adds 1 at ``probes`` locations.

    Example:
        >>> r = BinaryRandomizer(probes=2, num_features=1000)
        >>> v = r.randomized_instance(["red", "apple"], window=1)
        >>> v.norm(1)   # 2 terms * 2 probes + 1 windowed pair * 2 probes
        6.0
    """

    def __init__(self, probes: int = DEFAULT_NUM_PROBES, num_features: int = 1000):
        super().__init__(num_features)
        if probes < 1:
            raise ValueError(f"probes must be >= 1, got {probes}")
        self.probes = probes
        logger.debug("BinaryRandomizer(probes=%d, num_features=%d)", probes, num_features)

    def capacity_hint(self, terms: Sequence[str]) -> int:
        """Expected number of touched locations, capped for memory efficiency."""
        return min(len(terms) * self.probes, MAX_BINARY_CAPACITY)

    def randomized_instance(self, terms: Sequence[str], window: int = 0,
                            all_pairs: bool = False) -> SparseVector:
        terms = list(terms)
        counts = {}

        def bump(i: int):
            counts[i] = counts.get(i, 0.0) + 1.0

        for term in terms:
            for probe in range(self.probes):
                bump(self.hash(term, probe))

            if all_pairs:
                for other in terms:
                    for probe in range(self.probes):
                        bump(self.hash_pair(term, other, probe))

        if window > 0:
            for term, earlier in _preceding_pairs(terms, window):
                for probe in range(self.probes):
                    bump(self.hash_pair(term, earlier, probe))

        return SparseVector(size=self.num_features, data=counts)


class DenseRandomizer(TermRandomizer):
    """
    Dense random projection.

    For every output dimension ``i`` a Gaussian generator is reseeded from
    the hash of each term (``probe = i``) and the draws are summed, so every
    term contributes a fixed pseudo-random Gaussian direction.
    """

    def __init__(self, num_features: int):
        super().__init__(num_features)
        logger.debug("DenseRandomizer(num_features=%d)", num_features)

    @staticmethod
    def _gaussian(seed: int) -> float:
        return float(np.random.default_rng(seed).standard_normal())

    def randomized_instance(self, terms: Sequence[str], window: int = 0,
                            all_pairs: bool = False) -> np.ndarray:
        terms = list(terms)
        pairs = []
        if all_pairs:
            pairs.extend((a, b) for a in terms for b in terms)
        if window > 0:
            pairs.extend(_preceding_pairs(terms, window))

        instance = np.zeros(self.num_features)
        for i in range(self.num_features):
            v = 0.0
            for term in terms:
                v += self._gaussian(self.hash(term, i))
            for a, b in pairs:
                v += self._gaussian(self.hash_pair(a, b, i))
            instance[i] = v
        return instance
