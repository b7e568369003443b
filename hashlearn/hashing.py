"""
Feature Hashing - the "hashing trick" primitive.

Maps arbitrary strings (and ordered pairs of strings) into a bounded feature
index space [0, num_features). This is the only source of randomness in the
vectorization pipeline: no per-process seed, no dependence on insertion order.

Hash Pipeline:
    term --utf8--> bytes --MurmurHash64A(seed=probe)--> signed 64-bit
         --remainder(num_features)--> index (negatives folded by + num_features)

Pair hashing chains the first hash into the seed of the second:

    r1 = MurmurHash64A(term1, probe)
    r2 = MurmurHash64A(term2, int32(r1))

Usage:
    from hashlearn.hashing import hash_term, hash_term_pair

    i = hash_term("apple", probe=0, num_features=1000)
    j = hash_term_pair("red", "apple", probe=1, num_features=1000)
"""

from __future__ import annotations
import struct


MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF


# =============================================================================
# MURMURHASH64A
# =============================================================================

def murmur_hash64a(data: bytes, seed: int = 0) -> int:
    """
    MurmurHash64A over a byte string.

    The seed is treated as a signed 32-bit integer widened to 64 bits, so
    negative seeds (as produced by pair chaining) are sign-extended.

    Args:
        data: Bytes to hash
        seed: Integer seed (the probe number, or a chained hash)

    Returns:
        64-bit unsigned hash value
    """
    m = 0xc6a4a7935bd1e995
    r = 47

    length = len(data)
    h = (seed ^ (length * m)) & MASK64

    # 8-byte little-endian blocks
    nblocks = length // 8
    for k, in struct.iter_unpack('<Q', data[:nblocks * 8]):
        k = (k * m) & MASK64
        k ^= k >> r
        k = (k * m) & MASK64
        h ^= k
        h = (h * m) & MASK64

    # Tail is zero-padded into a final little-endian word
    tail = data[nblocks * 8:]
    if tail:
        h ^= int.from_bytes(tail, 'little')
        h = (h * m) & MASK64

    h ^= h >> r
    h = (h * m) & MASK64
    h ^= h >> r

    return h


def _signed64(h: int) -> int:
    return h - (1 << 64) if h & (1 << 63) else h


def _signed32(h: int) -> int:
    h &= MASK32
    return h - (1 << 32) if h & (1 << 31) else h


def _fold(raw: int, num_features: int) -> int:
    """Truncated remainder of a signed hash, shifted back into range."""
    r = abs(raw) % num_features
    if raw < 0:
        r = -r
    if r < 0:
        r += num_features
    return r


def _check_range(num_features: int):
    if num_features <= 0:
        raise ValueError(f"num_features must be positive, got {num_features}")


# =============================================================================
# TERM HASHING
# =============================================================================

def hash_term(term: str, probe: int, num_features: int) -> int:
    """
    Hash a string and a probe number into [0, num_features).

    Small changes in either the term or the probe land in uncorrelated
    buckets.
    """
    _check_range(num_features)
    raw = _signed64(murmur_hash64a(term.encode('utf-8'), probe))
    return _fold(raw, num_features)


def hash_term_pair(term1: str, term2: str, probe: int, num_features: int) -> int:
    """
    Hash an ordered pair of strings and a probe number into [0, num_features).

    The first term's hash (truncated to 32 bits) seeds the second, so
    ``hash_term_pair(a, b, ...)`` and ``hash_term_pair(b, a, ...)`` differ.
    """
    _check_range(num_features)
    first = murmur_hash64a(term1.encode('utf-8'), probe)
    raw = _signed64(murmur_hash64a(term2.encode('utf-8'), _signed32(first)))
    return _fold(raw, num_features)
