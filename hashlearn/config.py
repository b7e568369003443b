"""
Configuration objects.

LearnerConfig and RandomizerConfig are immutable and built once before
training begins. ``load_config`` reads the dotted keys used by older job
configuration files:

    randomizer.probes        int    (2)
    randomizer.numFeatures   int    (2**17)
    randomizer.window        int    (2)
    randomizer.allPairs      bool   (false)
    online.lambda            float  (0.01)
    online.learningRate      float  (0.01)
    online.priorClass        str    ("l1")
    online.random.seed       int    (42)
    classifier.threshold     float  (unset: 1 / (categories + 1))
    categories               comma separated names, lower-cased and trimmed
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .constants import (
    DEFAULT_ALL_PAIRS,
    DEFAULT_ALPHA,
    DEFAULT_FORGETTING_EXPONENT,
    DEFAULT_LAMBDA,
    DEFAULT_LEARNER_LAMBDA,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MU_0,
    DEFAULT_NUM_FEATURES,
    DEFAULT_NUM_PROBES,
    DEFAULT_STEP_OFFSET,
    DEFAULT_WINDOW,
    INIT_SCALE,
    SHARED_SEED,
)
from .priors import L1, PriorFunction, make_prior
from .randomizers import BinaryRandomizer, DenseRandomizer, TermRandomizer


@dataclass(frozen=True)
class LearnerConfig:
    """
    Settings of one OnlineLogisticRegression.

    Learning rate at step t:
        learning_rate * alpha^t * (t + step_offset)^forgetting_exponent

    Attributes:
        num_categories: Number of target categories (>= 2)
        num_features: Width of the hashed feature space
        prior: Regularizer shared by all coefficients
        learning_rate: Initial rate mu_0
        alpha: Exponential decay per step (1 disables it)
        step_offset: Offset of the polynomial term
        forgetting_exponent: Polynomial exponent (0 disables it)
        lambda_: Weight of the prior
        seed: Seed for the initial coefficients
        init_scale: Std-dev of the initial coefficients (0 gives zeros)
    """
    num_categories: int
    num_features: int
    prior: PriorFunction = field(default_factory=L1)
    learning_rate: float = DEFAULT_MU_0
    alpha: float = DEFAULT_ALPHA
    step_offset: int = DEFAULT_STEP_OFFSET
    forgetting_exponent: float = DEFAULT_FORGETTING_EXPONENT
    lambda_: float = DEFAULT_LEARNER_LAMBDA
    seed: Optional[int] = SHARED_SEED
    init_scale: float = INIT_SCALE

    def __post_init__(self):
        if self.num_categories < 2:
            raise ValueError(f"num_categories must be >= 2, got {self.num_categories}")
        if self.num_features < 1:
            raise ValueError(f"num_features must be >= 1, got {self.num_features}")
        if self.init_scale < 0:
            raise ValueError(f"init_scale must be >= 0, got {self.init_scale}")


@dataclass(frozen=True)
class RandomizerConfig:
    """Shape of the term vectorization."""
    num_features: int = DEFAULT_NUM_FEATURES
    probes: int = DEFAULT_NUM_PROBES
    window: int = DEFAULT_WINDOW
    all_pairs: bool = DEFAULT_ALL_PAIRS
    dense: bool = False

    def build(self) -> TermRandomizer:
        if self.dense:
            return DenseRandomizer(self.num_features)
        return BinaryRandomizer(self.probes, self.num_features)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def load_config(settings: Mapping[str, Any]) -> Tuple[Dict[str, Any], RandomizerConfig,
                                                      Optional[float], List[str]]:
    """
    Read dotted configuration keys.

    Returns:
        (learner_kwargs, randomizer_config, threshold, categories) where
        learner_kwargs lacks num_categories/num_features, which depend on
        the categories and the randomizer.
    """
    randomizer = RandomizerConfig(
        num_features=int(settings.get('randomizer.numFeatures', DEFAULT_NUM_FEATURES)),
        probes=int(settings.get('randomizer.probes', DEFAULT_NUM_PROBES)),
        window=int(settings.get('randomizer.window', DEFAULT_WINDOW)),
        all_pairs=_as_bool(settings.get('randomizer.allPairs', DEFAULT_ALL_PAIRS)),
    )

    learner_kwargs = {
        'prior': make_prior(str(settings.get('online.priorClass', 'l1'))),
        'lambda_': float(settings.get('online.lambda', DEFAULT_LAMBDA)),
        'learning_rate': float(settings.get('online.learningRate', DEFAULT_LEARNING_RATE)),
        'seed': int(settings.get('online.random.seed', SHARED_SEED)),
    }

    threshold = settings.get('classifier.threshold')
    if threshold is not None:
        threshold = float(threshold)

    raw = settings.get('categories', '')
    if isinstance(raw, str):
        raw = raw.split(',')
    categories = [c.lower().strip() for c in raw if c.strip()]

    return learner_kwargs, randomizer, threshold, categories
