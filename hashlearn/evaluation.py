"""
Multi-label Classification and Evaluation.

This module provides:
- MultiLabelScores: per-category precision / recall / F1 and their means
- LogLikelihoodEstimate: running estimate of the online log-likelihood
- ThresholdClassifier: one-vs-rest multi-label wrapper around a learner
- extract_terms(): default document tokenizer

ThresholdClassifier layout:
    The wrapped model has len(categories) + 1 categories. Model category 0
    means "none of the labels"; model category i + 1 is categories[i]. A
    document gets every label whose probability is strictly above that
    label's threshold.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Callable, Collection, List, Mapping, Optional, Sequence
import logging
import math
import re

import numpy as np

from .config import LearnerConfig, load_config
from .errors import ConfigurationError, DimensionMismatch
from .regression import OnlineLogisticRegression
from .vectors import Vector

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+")


def extract_terms(document: str) -> List[str]:
    """Lower-cased word tokens of a document."""
    return _WORD.findall(document.lower())


# ═══════════════════════════════════════════════════════════════════════════
# SCORES
# ═══════════════════════════════════════════════════════════════════════════

def _safe_ratio(num: np.ndarray, denom: np.ndarray) -> np.ndarray:
    return np.divide(num, denom, out=np.zeros_like(denom, dtype=float), where=denom != 0)


@total_ordering
class MultiLabelScores:
    """
    Precision, recall and F1 per category from raw counts.

    Zero denominators give 0 rather than NaN. Scores compare by mean F1.
    """

    def __init__(self, categories: Sequence[str], tp, fp, fn):
        self.categories = list(categories)
        tp = np.asarray(tp, dtype=float)
        fp = np.asarray(fp, dtype=float)
        fn = np.asarray(fn, dtype=float)
        if not (len(self.categories) == tp.size == fp.size == fn.size):
            raise DimensionMismatch(
                f"{len(self.categories)} categories but counts of sizes "
                f"{tp.size}, {fp.size}, {fn.size}")

        self.precision = _safe_ratio(tp, tp + fp)
        self.recall = _safe_ratio(tp, tp + fn)
        self.f1_score = _safe_ratio(2.0 * self.precision * self.recall,
                                    self.precision + self.recall)

        n = len(self.categories)
        self.mean_precision = float(self.precision.sum() / n) if n else 0.0
        self.mean_recall = float(self.recall.sum() / n) if n else 0.0
        self.mean_f1_score = float(self.f1_score.sum() / n) if n else 0.0

    def __eq__(self, other):
        if not isinstance(other, MultiLabelScores):
            return NotImplemented
        return self.mean_f1_score == other.mean_f1_score

    def __lt__(self, other):
        if not isinstance(other, MultiLabelScores):
            return NotImplemented
        return self.mean_f1_score < other.mean_f1_score

    __hash__ = None

    def report(self) -> str:
        """One line per category followed by the means."""
        lines = [f"{c:>20s}  p={p:.3f}  r={r:.3f}  f1={f:.3f}"
                 for c, p, r, f in zip(self.categories, self.precision,
                                       self.recall, self.f1_score)]
        lines.append(str(self))
        return "\n".join(lines)

    def __str__(self) -> str:
        return (f"precision: {self.mean_precision:.4f}, recall: {self.mean_recall:.4f}, "
                f"f1: {self.mean_f1_score:.4f}")


@dataclass
class LogLikelihoodEstimate:
    """
    Running estimate of per-example log-likelihood.

    The first ``warmup`` finite samples are averaged exactly; after that the
    estimate is an exponential average. Infinite samples (zero probability)
    are skipped so they cannot poison the estimate.
    """
    warmup: int = 20
    decay: float = 0.95
    value: float = 0.0
    samples: int = 0
    skipped: int = field(default=0)

    def update(self, log_p: float) -> float:
        if math.isinf(log_p) or math.isnan(log_p):
            self.skipped += 1
            return self.value
        if self.samples < self.warmup:
            self.value = (self.samples * self.value + log_p) / (self.samples + 1)
        else:
            self.value = self.decay * self.value + (1 - self.decay) * log_p
        self.samples += 1
        return self.value


# ═══════════════════════════════════════════════════════════════════════════
# THRESHOLD CLASSIFIER
# ═══════════════════════════════════════════════════════════════════════════

class ThresholdClassifier:
    """
    Multi-label document classifier over an OnlineLogisticRegression.

    Args:
        model: Learner with len(categories) + 1 categories
        categories: Label names (default "Category #1", ...)
        thresholds: Per-label probability thresholds (default 1 / (n + 1))
        window: Co-occurrence window passed to the randomizer
        all_pairs: Emit all term pairs
        tokenizer: document -> terms (default extract_terms)
    """

    def __init__(
        self,
        model: OnlineLogisticRegression,
        categories: Optional[Sequence[str]] = None,
        thresholds: Optional[Sequence[float]] = None,
        window: int = 2,
        all_pairs: bool = False,
        tokenizer: Optional[Callable[[str], List[str]]] = None
    ):
        self.model = model
        accepted = model.num_categories - 1
        if categories is None:
            categories = [f"Category #{i}" for i in range(1, accepted + 1)]
        self.categories = list(categories)
        n = len(self.categories)
        if n != accepted:
            raise DimensionMismatch(f"Model {model!r} accepts {accepted} categories, not {n}")

        if thresholds is None:
            thresholds = [1.0 / (n + 1)] * n
        self.thresholds = np.asarray(thresholds, dtype=float)
        if self.thresholds.size != n:
            raise DimensionMismatch(f"{self.thresholds.size} thresholds for {n} categories")

        self.window = window
        self.all_pairs = all_pairs
        self.tokenizer = tokenizer or extract_terms

        self.true_positive = np.zeros(n, dtype=np.int64)
        self.false_positive = np.zeros(n, dtype=np.int64)
        self.false_negative = np.zeros(n, dtype=np.int64)

    @classmethod
    def from_settings(cls, settings: Mapping[str, object]) -> 'ThresholdClassifier':
        """Build model, randomizer and classifier from dotted configuration keys."""
        learner_kwargs, randomizer_config, threshold, categories = load_config(settings)
        if not categories:
            raise ConfigurationError("No categories configured")

        config = LearnerConfig(num_categories=len(categories) + 1,
                               num_features=randomizer_config.num_features,
                               **learner_kwargs)
        model = OnlineLogisticRegression(config, randomizer_config.build())
        thresholds = None if threshold is None else [threshold] * len(categories)

        logger.info("ThresholdClassifier: %d categories, %d features, prior=%r",
                    len(categories), config.num_features, config.prior)
        return cls(model, categories, thresholds,
                   window=randomizer_config.window, all_pairs=randomizer_config.all_pairs)

    def extract_terms(self, document: str) -> List[str]:
        return self.tokenizer(document)

    def vectorize(self, document: str) -> Vector:
        if self.model.randomizer is None:
            raise ConfigurationError("No term randomizer configured for this model")
        return self.model.randomizer.randomized_instance(
            self.extract_terms(document), self.window, self.all_pairs)

    # -------------------------------------------------------------------------
    # Training
    # -------------------------------------------------------------------------

    def train(self, document: str, categories: Collection[str]):
        """
        Train on a labeled document.

        An empty label set trains model category 0 (purely negative example);
        otherwise the model is trained once per label. A label that is not
        one of ``self.categories`` also trains model category 0.
        """
        instance = self.vectorize(document)
        self.train_vector(instance, [self._label_index(c) for c in categories])

    def _label_index(self, category: str) -> int:
        try:
            return self.categories.index(category)
        except ValueError:
            logger.debug("Unknown category %r trained as no label", category)
            return -1

    def train_vector(self, instance: Vector, labels: Sequence[int]):
        """
        Train on an already vectorized instance.

        Labels are 0-based; -1 stands for "none of the labels".
        """
        if len(labels) == 0:
            self.model.train(0, instance)
        else:
            for label in labels:
                self.model.train(label + 1, instance)

    # -------------------------------------------------------------------------
    # Classification and evaluation
    # -------------------------------------------------------------------------

    def classify(self, document: str) -> List[str]:
        """Labels whose probability exceeds their threshold, in category order."""
        p = self.model.classify(self.vectorize(document))
        return [c for c, pi, t in zip(self.categories, p, self.thresholds) if pi > t]

    def _count(self, predicted: np.ndarray, expected: np.ndarray):
        self.true_positive += predicted & expected
        self.false_positive += predicted & ~expected
        self.false_negative += ~predicted & expected

    def evaluate(self, document: str, expected: Collection[str]):
        """Update evaluation counts with one labeled document."""
        actual = set(self.classify(document))
        expected = set(expected)
        self._count(np.array([c in actual for c in self.categories]),
                    np.array([c in expected for c in self.categories]))

    def evaluate_vector(self, instance: Vector, labels: Sequence[int]):
        """Update evaluation counts with one vectorized instance (0-based labels)."""
        p = self.model.classify(instance)
        expected = np.zeros(len(self.categories), dtype=bool)
        expected[list(labels)] = True
        self._count(p > self.thresholds, expected)

    def current_evaluation(self) -> MultiLabelScores:
        return MultiLabelScores(self.categories, self.true_positive,
                                self.false_positive, self.false_negative)

    def reset_evaluation(self):
        self.true_positive[:] = 0
        self.false_positive[:] = 0
        self.false_negative[:] = 0

    def density(self) -> float:
        """Ratio of non-zero coefficients in the model."""
        return self.model.density()
