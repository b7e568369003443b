"""
Hashlearn - Hashed Features and Online Logistic Regression

Turns symbolic input (terms, words, numbers) into fixed-width hashed feature
vectors and learns a multinomial logistic regression over them one example
at a time, with lazily applied regularization.
"""

__version__ = "0.1.0"

from .errors import HashLearnError, ConfigurationError, ParseError, DimensionMismatch
from .hashing import murmur_hash64a, hash_term, hash_term_pair
from .vectors import SparseVector, nonzero_entries
from .randomizers import TermRandomizer, BinaryRandomizer, DenseRandomizer
from .encoders import (
    RecordValueEncoder,
    ConstantValueEncoder,
    ContinuousValueEncoder,
    WordValueEncoder,
    StaticWordValueEncoder,
    AdaptiveWordValueEncoder,
    TextValueEncoder,
)
from .priors import PriorFunction, UniformPrior, L1, L2, TPrior, make_prior
from .config import LearnerConfig, RandomizerConfig, load_config
from .regression import OnlineLogisticRegression
from .evaluation import MultiLabelScores, LogLikelihoodEstimate, ThresholdClassifier, extract_terms

__all__ = [
    "HashLearnError",
    "ConfigurationError",
    "ParseError",
    "DimensionMismatch",
    "murmur_hash64a",
    "hash_term",
    "hash_term_pair",
    "SparseVector",
    "nonzero_entries",
    "TermRandomizer",
    "BinaryRandomizer",
    "DenseRandomizer",
    "RecordValueEncoder",
    "ConstantValueEncoder",
    "ContinuousValueEncoder",
    "WordValueEncoder",
    "StaticWordValueEncoder",
    "AdaptiveWordValueEncoder",
    "TextValueEncoder",
    "PriorFunction",
    "UniformPrior",
    "L1",
    "L2",
    "TPrior",
    "make_prior",
    "LearnerConfig",
    "RandomizerConfig",
    "load_config",
    "OnlineLogisticRegression",
    "MultiLabelScores",
    "LogLikelihoodEstimate",
    "ThresholdClassifier",
    "extract_terms",
]
