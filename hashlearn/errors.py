"""
Exception taxonomy.

All failures are raised synchronously to the caller of the operation that
triggered them. Each class also derives from the closest builtin so callers
that only know about ``ValueError``/``RuntimeError`` keep working.
"""


class HashLearnError(Exception):
    """Base class for every error raised by hashlearn."""


class ConfigurationError(HashLearnError, RuntimeError):
    """A required collaborator (e.g. a term randomizer) was never wired in."""


class ParseError(HashLearnError, ValueError):
    """A raw field value could not be interpreted (e.g. non-numeric input)."""


class DimensionMismatch(HashLearnError, ValueError):
    """Category or feature counts disagree between two collaborators."""
