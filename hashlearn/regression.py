"""
Online Multinomial Logistic Regression with Lazy Regularization

Learns a (num_categories - 1) x num_features coefficient matrix beta by
stochastic gradient descent, one example at a time. Row i holds the weights
of category i + 1 relative to the implicit baseline category 0.

Lazy Regularization:
    Decaying all of beta on every step costs O(num_features) even though an
    example touches only a handful of columns. Instead each column remembers
    the step at which it was last regularized:

        missing = step - update_steps[j]
        beta[:, j] = prior.age(beta[:, j], missing, lambda * learning_rate)
        update_steps[j] = step

    This runs only for the columns of the instance being classified or
    trained, so every call costs O(nnz(instance) * num_categories). For
    L1/L2/Uniform priors this equals eager single-step aging at every
    intermediate step (given a constant learning rate over the gap).

Commit:
    ``commit()`` catches every column up to the current step and returns
    beta. For sparsity-inducing priors (L1) it first forces one extra
    generation so that truncation to zero is fully applied.

Classification:
    v = exp(beta . x);  p[i] = v[i] / (1 + sum(v))   for categories 1..n-1
    p[0] = 1 - sum(p)                                 baseline category

Not thread-safe: one instance owns beta, update_steps and the step counter.
"""

from __future__ import annotations
from typing import Iterable, Optional, Sequence
import logging
import math

import numpy as np

from .config import LearnerConfig
from .errors import ConfigurationError, DimensionMismatch
from .priors import PriorFunction
from .randomizers import TermRandomizer
from .vectors import Vector, nonzero_entries, vector_size

logger = logging.getLogger(__name__)


class OnlineLogisticRegression:
    """
    Multinomial logistic regression trained online by SGD.

    Example:
        >>> config = LearnerConfig(num_categories=3, num_features=1000,
        ...                        prior=L1(), lambda_=0.01, learning_rate=0.1)
        >>> model = OnlineLogisticRegression(config, BinaryRandomizer(2, 1000))
        >>> model.train_terms(1, ["red", "apple"])
        >>> model.classify_full_terms(["red", "apple"]).sum()
        1.0
    """

    def __init__(self, config: LearnerConfig, randomizer: Optional[TermRandomizer] = None):
        self.config = config
        self.randomizer = randomizer
        self._prior = config.prior
        self._mu_0 = config.learning_rate

        rng = np.random.default_rng(config.seed)
        shape = (config.num_categories - 1, config.num_features)
        if config.init_scale > 0:
            self._beta = rng.standard_normal(shape) * config.init_scale
        else:
            self._beta = np.zeros(shape)

        self._update_steps = np.zeros(config.num_features, dtype=np.int64)
        self._step = 0
        self._sealed = False

        if randomizer is not None and randomizer.num_features != config.num_features:
            raise DimensionMismatch(
                f"Randomizer emits {randomizer.num_features} features, "
                f"model expects {config.num_features}")

        logger.debug("OnlineLogisticRegression(categories=%d, features=%d, prior=%r)",
                     config.num_categories, config.num_features, self._prior)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def num_categories(self) -> int:
        return self.config.num_categories

    @property
    def num_features(self) -> int:
        return self.config.num_features

    @property
    def prior(self) -> PriorFunction:
        return self._prior

    @prior.setter
    def prior(self, prior: PriorFunction):
        self._prior = prior

    @property
    def step(self) -> int:
        """Number of training calls so far (plus forced commit generations)."""
        return self._step

    @property
    def update_steps(self) -> np.ndarray:
        """Step at which each column was last regularized (read-only view)."""
        view = self._update_steps.view()
        view.flags.writeable = False
        return view

    @property
    def beta(self) -> np.ndarray:
        """Coefficients as they stand, without catching up pending decay."""
        return self._beta

    def set_beta(self, i: int, j: int, value: float):
        self._beta[i, j] = value

    def current_learning_rate(self) -> float:
        c = self.config
        return self._mu_0 * math.pow(c.alpha, self._step) * math.pow(
            self._step + c.step_offset, c.forgetting_exponent)

    def _entries(self, instance: Vector):
        if vector_size(instance) != self.num_features:
            raise DimensionMismatch(
                f"Instance has {vector_size(instance)} features, model expects {self.num_features}")
        return nonzero_entries(instance)

    # -------------------------------------------------------------------------
    # Lazy regularization
    # -------------------------------------------------------------------------

    def _regularize_columns(self, columns: np.ndarray) -> int:
        if self.config.lambda_ == 0.0 or self._prior is None or columns.size == 0:
            return 0

        missing = self._step - self._update_steps[columns]
        stale = columns[missing > 0]
        if stale.size == 0:
            return 0

        rate = self.config.lambda_ * self.current_learning_rate()
        self._beta[:, stale] = self._prior.age(self._beta[:, stale], missing[missing > 0], rate)
        self._update_steps[stale] = self._step
        return int(stale.size)

    def regularize(self, instance: Vector):
        """Apply pending decay to the columns the instance touches."""
        columns, _ = self._entries(instance)
        self._regularize_columns(columns)

    def regularize_all(self) -> int:
        """Catch every column up to the current step; returns columns aged."""
        return self._regularize_columns(np.arange(self.num_features))

    def commit(self) -> np.ndarray:
        """
        Bring beta fully up to date and return it.

        Sparsity-inducing priors get one forced extra generation before the
        catch-up. Calling again without training in between is a no-op.
        """
        if not self._sealed:
            self._sealed = True
            if self._prior is not None and self._prior.is_sparsity_inducing:
                self._step += 1
            aged = self.regularize_all()
            logger.debug("Committed at step %d (%d columns regularized)", self._step, aged)
        return self._beta

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    def _probabilities(self, columns: np.ndarray, values: np.ndarray) -> np.ndarray:
        self._regularize_columns(columns)
        scores = self._beta[:, columns] @ values
        # exp(s) / (1 + sum exp(s)), shifted so the largest exponent is <= 0
        shift = max(0.0, float(scores.max(initial=0.0)))
        v = np.exp(scores - shift)
        return v / (math.exp(-shift) + v.sum())

    def classify(self, instance: Vector) -> np.ndarray:
        """
        Probabilities of categories 1..n-1.

        The baseline category 0 has probability 1 - sum(result).
        """
        columns, values = self._entries(instance)
        return self._probabilities(columns, values)

    def classify_full(self, instance: Vector) -> np.ndarray:
        """Probabilities of all n categories, baseline category first."""
        p = self.classify(instance)
        return np.concatenate(([max(0.0, 1.0 - p.sum())], p))

    def classify_scalar(self, instance: Vector) -> float:
        """Probability of category 1 for a two-category model."""
        if self.num_categories != 2:
            raise DimensionMismatch("Can only call classify_scalar with two categories")
        columns, values = self._entries(instance)
        self._regularize_columns(columns)
        score = float(self._beta[0, columns] @ values)
        if score >= 0:
            return 1.0 / (1.0 + math.exp(-score))
        r = math.exp(score)
        return r / (1.0 + r)

    def classify_matrix(self, data) -> np.ndarray:
        """classify() applied to every row of a 2-D array."""
        data = np.asarray(data, dtype=float)
        r = np.zeros((data.shape[0], self.num_categories - 1))
        for row in range(data.shape[0]):
            r[row] = self.classify(data[row])
        return r

    def classify_full_matrix(self, data) -> np.ndarray:
        """classify_full() applied to every row of a 2-D array."""
        data = np.asarray(data, dtype=float)
        r = np.zeros((data.shape[0], self.num_categories))
        for row in range(data.shape[0]):
            r[row] = self.classify_full(data[row])
        return r

    def classify_scalar_matrix(self, data) -> np.ndarray:
        """classify_scalar() applied to every row of a 2-D array."""
        if self.num_categories != 2:
            raise DimensionMismatch("Can only call classify_scalar with two categories")
        data = np.asarray(data, dtype=float)
        return np.array([self.classify_scalar(row) for row in data])

    def _vectorize(self, terms: Sequence[str], window: int, all_pairs: bool):
        if self.randomizer is None:
            raise ConfigurationError("No term randomizer configured for this model")
        return self.randomizer.randomized_instance(terms, window, all_pairs)

    def classify_terms(self, terms: Sequence[str], window: int = 0,
                       all_pairs: bool = False) -> np.ndarray:
        """classify() on the randomizer's vector for a term list."""
        return self.classify(self._vectorize(terms, window, all_pairs))

    def classify_full_terms(self, terms: Sequence[str], window: int = 0,
                            all_pairs: bool = False) -> np.ndarray:
        """classify_full() on the randomizer's vector for a term list."""
        return self.classify_full(self._vectorize(terms, window, all_pairs))

    # -------------------------------------------------------------------------
    # Training
    # -------------------------------------------------------------------------

    def train(self, actual: int, instance: Vector):
        """
        One SGD step on an example of known category.

        A category outside [0, num_categories) matches no row and so trains
        every row toward "not this category".
        """
        self._sealed = False
        learning_rate = self.current_learning_rate()
        columns, values = self._entries(instance)

        # push coefficients back toward zero based on the prior
        self._regularize_columns(columns)

        # what does the current model say?
        p = self._probabilities(columns, values)

        gradient_base = -p
        if 1 <= actual < self.num_categories:
            gradient_base[actual - 1] += 1

        self._beta[:, columns] += learning_rate * np.outer(gradient_base, values)

        # remember that these columns are current
        self._update_steps[columns] = self._step
        self._step += 1

    def train_terms(self, actual: int, terms: Sequence[str], window: int = 0,
                    all_pairs: bool = False):
        """train() on the randomizer's vector for a term list."""
        self.train(actual, self._vectorize(terms, window, all_pairs))

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def log_likelihood(self, actual: int, instance: Vector) -> float:
        """
        log P(actual | instance) under the current model.

        Returns -inf when the model assigns zero probability.
        """
        if self.num_categories == 2:
            p = self.classify_scalar(instance)
            p = p if actual > 0 else 1.0 - p
        else:
            p = self.classify_full(instance)[actual]
        return math.log(p) if p > 0 else -math.inf

    def log_prior(self) -> float:
        """Sum of the prior's log density over every coefficient."""
        return float(np.sum(self._prior.log_density(self._beta)))

    def density(self) -> float:
        """Fraction of non-zero coefficients after a commit."""
        beta = self.commit()
        return np.count_nonzero(beta) / beta.size

    def predictor_weight(self, row: int, indices: Iterable[int]) -> float:
        """Sum of row's coefficients over traced feature indices."""
        beta = self.commit()
        return float(sum(beta[row, j] for j in indices))

    def __repr__(self) -> str:
        return (f"OnlineLogisticRegression(categories={self.num_categories}, "
                f"features={self.num_features}, prior={self._prior!r}, step={self._step})")
