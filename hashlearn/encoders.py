"""
Record Value Encoders - typed fields to hashed features.

Each encoder owns a field name and adds the contribution of one raw value
to a target vector (SparseVector or numpy array) sized to the feature space.

Encoder Family:
    RecordValueEncoder (abstract)
    ├── ConstantValueEncoder      1 at hash(name), intercept / bias term
    ├── ContinuousValueEncoder    float(value) at hash(name)
    ├── WordValueEncoder (abstract)  weight(value) at hash(name, value)
    │   ├── StaticWordValueEncoder    weight from a fixed dictionary
    │   └── AdaptiveWordValueEncoder  IDF-like weight from running counts
    └── TextValueEncoder          tokenize, delegate each word

Tracing:
    Give an encoder a trace dictionary and it records, for each feature it
    emits, the touched indices under ``name`` or ``name=value``. Summing the
    learned coefficients over those indices recovers a per-predictor weight.

AdaptiveWordValueEncoder mutates its counts on every call and must not be
shared across concurrent encodings without external locking.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, Mapping, Optional, Set
import math
import re

from .constants import CONTINUOUS_VALUE_HASH_SEED, WORD_LIKE_VALUE_HASH_SEED
from .errors import ParseError
from .hashing import hash_term, hash_term_pair
from .vectors import Vector, vector_size


class RecordValueEncoder(ABC):
    """
    Base class for field encoders.

    Args:
        name: Field name, mixed into every hash
        probes: Number of hashed locations per value
    """

    def __init__(self, name: str, probes: int = 1):
        self.name = name
        self.probes = probes
        self.trace_dictionary: Optional[Dict[str, Set[int]]] = None

    @property
    def probes(self) -> int:
        return self._probes

    @probes.setter
    def probes(self, probes: int):
        if probes < 1:
            raise ValueError(f"probes must be >= 1, got {probes}")
        self._probes = probes

    def set_trace_dictionary(self, trace_dictionary: Optional[Dict[str, Set[int]]]):
        """Record touched indices into trace_dictionary (None disables)."""
        self.trace_dictionary = trace_dictionary

    def _trace(self, value: Optional[str], index: int):
        if self.trace_dictionary is None:
            return
        key = self.name if value is None else f"{self.name}={value}"
        self.trace_dictionary.setdefault(key, set()).add(index)

    @abstractmethod
    def add_to_vector(self, value: Optional[str], data: Vector):
        """Add the contribution of value to data."""
        pass

    @abstractmethod
    def describe(self, value: Optional[str]) -> str:
        """Human-readable account of how value is interpreted."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, probes={self.probes})"


class ConstantValueEncoder(RecordValueEncoder):
    """Ignores the value; adds 1 at the hashed locations of the name."""

    def add_to_vector(self, value: Optional[str], data: Vector):
        size = vector_size(data)
        for probe in range(self.probes):
            n = hash_term(self.name, probe, size)
            self._trace(None, n)
            data[n] = data[n] + 1

    def describe(self, value: Optional[str]) -> str:
        return self.name


class ContinuousValueEncoder(RecordValueEncoder):
    """Adds the numeric value itself at the hashed locations of the name."""

    @staticmethod
    def parse(value: Optional[str]) -> float:
        if value is None:
            raise ParseError('For input string: "None"')
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ParseError(f'For input string: "{value}"') from e

    def add_to_vector(self, value: Optional[str], data: Vector):
        x = self.parse(value)
        size = vector_size(data)
        for probe in range(self.probes):
            n = hash_term(self.name, CONTINUOUS_VALUE_HASH_SEED + probe, size)
            self._trace(None, n)
            data[n] = data[n] + x

    def describe(self, value: Optional[str]) -> str:
        return f"{self.name}:{value}"


class WordValueEncoder(RecordValueEncoder):
    """
    Categorical encoder: hashes (name, value) and adds a per-value weight.

    Subclasses decide the weight.
    """

    def __init__(self, name: str, probes: int = 2):
        super().__init__(name, probes)

    def add_to_vector(self, value: Optional[str], data: Vector):
        if value is None:
            raise ParseError(f"Missing value for word-like field {self.name!r}")
        weight = self.weight(value)
        size = vector_size(data)
        for probe in range(self.probes):
            n = hash_term_pair(self.name, value, WORD_LIKE_VALUE_HASH_SEED + probe, size)
            self._trace(value, n)
            data[n] = data[n] + weight

    def describe(self, value: Optional[str]) -> str:
        return f"{self.name}:{value}:{self.weight(value):.4f}"

    @abstractmethod
    def weight(self, value: str) -> float:
        pass


class StaticWordValueEncoder(WordValueEncoder):
    """
    Word encoder with weights from a fixed dictionary.

    Values missing from the dictionary (or every value, when there is no
    dictionary) get ``missing_value_weight``.
    """

    def __init__(self, name: str, dictionary: Optional[Mapping[str, float]] = None,
                 missing_value_weight: float = 1.0, probes: int = 2):
        super().__init__(name, probes)
        self.dictionary: Dict[str, float] = dict(dictionary or {})
        self.missing_value_weight = missing_value_weight

    def set_dictionary(self, dictionary: Mapping[str, float]):
        self.dictionary = dict(dictionary)

    def weight(self, value: str) -> float:
        return self.dictionary.get(value, self.missing_value_weight)


class AdaptiveWordValueEncoder(WordValueEncoder):
    """
    Word encoder whose weight is an inverse-document-frequency estimate.

    Every add_to_vector call counts the value before weighting it. Each
    observed value, and one hypothetical unseen value, carries an extra 0.5
    count, so the first word seen weighs -log(1.5 / 2).
    """

    def __init__(self, name: str, probes: int = 2):
        super().__init__(name, probes)
        self.dictionary: Counter = Counter()
        self._total = 0

    @property
    def total(self) -> int:
        """Number of values counted so far."""
        return self._total

    def add_to_vector(self, value: Optional[str], data: Vector):
        if value is not None:
            self.dictionary[value] += 1
            self._total += 1
        super().add_to_vector(value, data)

    def weight(self, value: str) -> float:
        this_word = self.dictionary.get(value, 0) + 0.5
        all_words = self._total + len(self.dictionary) * 0.5 + 0.5
        return -math.log(this_word / all_words)


class TextValueEncoder(RecordValueEncoder):
    """
    Splits text on non-word characters and encodes each token with an inner
    word encoder (a uniform StaticWordValueEncoder unless one is given).
    """

    _NON_WORD = re.compile(r"\W+")

    def __init__(self, name: str, word_encoder: Optional[RecordValueEncoder] = None,
                 probes: int = 2):
        self.word_encoder = word_encoder or StaticWordValueEncoder(name, probes=probes)
        super().__init__(name, probes)

    def set_word_encoder(self, word_encoder: RecordValueEncoder):
        self.word_encoder = word_encoder

    def set_trace_dictionary(self, trace_dictionary: Optional[Dict[str, Set[int]]]):
        super().set_trace_dictionary(trace_dictionary)
        self.word_encoder.set_trace_dictionary(trace_dictionary)

    def tokenize(self, value: Optional[str]):
        if value is None:
            return []
        return [w for w in self._NON_WORD.split(value) if w]

    def add_to_vector(self, value: Optional[str], data: Vector):
        for word in self.tokenize(value):
            self.word_encoder.add_to_vector(word, data)

    def describe(self, value: Optional[str]) -> str:
        return "[" + ", ".join(self.word_encoder.describe(w) for w in self.tokenize(value)) + "]"
