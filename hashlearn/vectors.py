"""
Sparse Vector Representation for Hashed Features

This module provides a lightweight dict-backed sparse vector for the hashed
feature space, plus helpers that let the learner and the encoders accept
either a SparseVector or a plain 1-D numpy array.

Architecture:
- SparseVector: index -> value mapping with a fixed logical size
- nonzero_entries(): (indices, values) arrays for SparseVector or ndarray
- vector_size(): logical length of either representation

Accumulation is additive: encoders read the current value at an index and
write back the sum, so repeated contributions to one index add up.
"""

from __future__ import annotations
from typing import Dict, Iterator, Tuple, Union
from dataclasses import dataclass, field

import numpy as np


@dataclass
class SparseVector:
    """
    Sparse vector over [0, size).

    Uses a dict for O(1) access. Unset indices read as 0.0.
    """
    size: int
    data: Dict[int, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.size < 0:
            raise ValueError(f"size must be non-negative, got {self.size}")

    def _check(self, index: int) -> int:
        index = int(index)
        if index < 0 or index >= self.size:
            raise IndexError(f"index {index} out of range [0, {self.size})")
        return index

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index: int) -> float:
        return self.data.get(self._check(index), 0.0)

    def __setitem__(self, index: int, value: float):
        self.data[self._check(index)] = float(value)

    def get(self, index: int) -> float:
        """Get value at index, default 0."""
        return self[index]

    def set(self, index: int, value: float):
        """Set value at index."""
        self[index] = value

    def nonzero(self) -> Iterator[Tuple[int, float]]:
        """Iterate over (index, value) for non-zero entries, by index."""
        for index in sorted(self.data):
            value = self.data[index]
            if value != 0:
                yield index, value

    @property
    def nnz(self) -> int:
        """Number of non-zero entries."""
        return sum(1 for v in self.data.values() if v != 0)

    def dot(self, other: Vector) -> float:
        """Inner product with another SparseVector or dense array."""
        if vector_size(other) != self.size:
            raise ValueError(f"Size mismatch: {self.size} vs {vector_size(other)}")
        if isinstance(other, SparseVector):
            small, large = sorted((self, other), key=lambda v: len(v.data))
            return float(sum(v * large.data.get(i, 0.0) for i, v in small.data.items()))
        return float(sum(v * other[i] for i, v in self.data.items()))

    def norm(self, p: float = 2) -> float:
        """p-norm for p in {0, 1, 2}; the 0-norm counts non-zeros."""
        if p == 0:
            return float(self.nnz)
        values = np.fromiter(self.data.values(), dtype=float, count=len(self.data))
        if p == 1:
            return float(np.abs(values).sum())
        if p == 2:
            return float(np.sqrt(np.dot(values, values)))
        raise ValueError(f"Unsupported norm: {p}")

    def assign(self, value: float = 0.0):
        """Reset every entry to value (0 clears the vector)."""
        if value == 0:
            self.data.clear()
        else:
            self.data = {i: float(value) for i in range(self.size)}

    def to_dense(self) -> np.ndarray:
        """Return a dense float64 copy."""
        dense = np.zeros(self.size)
        for index, value in self.data.items():
            dense[index] = value
        return dense

    @classmethod
    def from_dense(cls, array) -> 'SparseVector':
        """Create from a 1-D array-like, keeping only non-zeros."""
        array = np.asarray(array, dtype=float)
        indices = np.flatnonzero(array)
        return cls(size=array.shape[0],
                   data={int(i): float(array[i]) for i in indices})


Vector = Union[SparseVector, np.ndarray]


def vector_size(vector: Vector) -> int:
    """Logical length of a SparseVector or 1-D array."""
    return len(vector)


def nonzero_entries(vector: Vector) -> Tuple[np.ndarray, np.ndarray]:
    """
    Non-zero (indices, values) of a vector, in ascending index order.

    Returns:
        (indices, values) where indices is int64 and values is float64
    """
    if isinstance(vector, SparseVector):
        pairs = list(vector.nonzero())
        indices = np.fromiter((i for i, _ in pairs), dtype=np.int64, count=len(pairs))
        values = np.fromiter((v for _, v in pairs), dtype=float, count=len(pairs))
        return indices, values

    array = np.asarray(vector, dtype=float)
    if array.ndim != 1:
        raise ValueError(f"Expected 1D vector, got {array.ndim}D")
    indices = np.flatnonzero(array)
    return indices.astype(np.int64), array[indices]
