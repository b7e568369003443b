"""
Prior Functions - regularization for online learning.

A prior shrinks coefficients toward zero. Under lazy regularization a
coefficient can go untouched for thousands of steps, so every prior exposes
``age(value, generations, learning_rate)``: the effect of ``generations``
single-step decays applied at once.

    Prior       age(x, g, lr)                          log_density(x)
    ---------   ------------------------------------   -------------------------
    Uniform     x                                      0
    L1          x - sign(x)*lr*g, clipped at 0         -|x|
    L2(s)       x * (1 - lr/s^2)^g                     Gaussian with scale s
    T(df)       g explicit steps x -= lr*x*(df+1)/(df+x^2)   Student-t with df

L1 is sparsity-inducing: the learner forces one extra generation when it
commits its coefficients so that truncation to zero is not under-applied.

All operations accept scalars or numpy arrays (``generations`` broadcasts
against ``value``).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import math

import numpy as np


class PriorFunction(ABC):
    """Base class for regularizers."""

    is_sparsity_inducing = False

    @abstractmethod
    def age(self, value, generations, learning_rate):
        """
        Apply ``generations`` steps of decay.

        Args:
            value: Previous coefficient value(s)
            generations: Number of skipped steps
            learning_rate: Step size with lambda already folded in

        Returns:
            New coefficient value(s)
        """
        pass

    @abstractmethod
    def log_density(self, value):
        """Log prior probability of a coefficient value."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UniformPrior(PriorFunction):
    """Improper flat prior: no regularization at all."""

    def age(self, value, generations, learning_rate):
        return value

    def log_density(self, value):
        return np.zeros_like(value, dtype=float) if np.ndim(value) else 0.0


class L1(PriorFunction):
    """Laplace prior. Moves coefficients toward zero but never across it."""

    is_sparsity_inducing = True

    def age(self, value, generations, learning_rate):
        new_value = value - np.sign(value) * learning_rate * generations
        # don't allow the value to change sign
        new_value = np.where(new_value * value < 0, 0.0, new_value)
        return float(new_value) if new_value.ndim == 0 else new_value

    def log_density(self, value):
        return -np.abs(value)


class L2(PriorFunction):
    """Gaussian prior with standard deviation ``scale``."""

    def __init__(self, scale: float = 1.0):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = scale
        self.s2 = scale * scale

    def age(self, value, generations, learning_rate):
        return value * np.power(1 - learning_rate / self.s2, generations)

    def log_density(self, value):
        return -np.square(value) / self.s2 / 2 - math.log(self.scale) - math.log(2 * math.pi) / 2

    def __repr__(self) -> str:
        return f"L2(scale={self.scale})"


class TPrior(PriorFunction):
    """
    Student-t prior with ``df`` degrees of freedom.

    There is no closed form for repeated aging, so ``age`` iterates the
    single-step update. Cost is O(generations).
    """

    def __init__(self, df: float = 1.0):
        if df <= 0:
            raise ValueError(f"df must be positive, got {df}")
        self.df = df

    def _step(self, x, learning_rate):
        return x - learning_rate * x * (self.df + 1) / (self.df + x * x)

    def age(self, value, generations, learning_rate):
        if np.ndim(value) == 0 and np.ndim(generations) == 0:
            for _ in range(int(math.ceil(generations))):
                value = self._step(value, learning_rate)
            return value

        value = np.array(value, dtype=float)
        generations = np.broadcast_to(generations, value.shape)
        for i in range(int(math.ceil(np.max(generations, initial=0)))):
            value = np.where(i < generations, self._step(value, learning_rate), value)
        return value

    def log_density(self, value):
        df = self.df
        return (math.lgamma((df + 1) / 2) - math.log(df * math.pi) - math.lgamma(df / 2)
                - (df + 1) / 2 * np.log1p(np.square(value)))

    def __repr__(self) -> str:
        return f"TPrior(df={self.df})"


_PRIORS = {
    'uniform': UniformPrior,
    'uniformprior': UniformPrior,
    'l1': L1,
    'l2': L2,
    't': TPrior,
    'tprior': TPrior,
    'student-t': TPrior,
}


def make_prior(name: str, **params) -> PriorFunction:
    """
    Build a prior from its name.

    Dotted class names are accepted; only the part after the last dot is
    looked up.

    Example:
        >>> make_prior("l2", scale=0.5)
        L2(scale=0.5)
        >>> make_prior("sgd.L1")
        L1()
    """
    key = name.strip().rsplit('.', 1)[-1].lower()
    if key not in _PRIORS:
        raise ValueError(f"Unknown prior: {name}")
    return _PRIORS[key](**params)
