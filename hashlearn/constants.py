# hashlearn/constants.py
"""
Hashlearn Constants

This module defines constants used throughout the hashing and learning code:

LAYER 1: Hashing Constants (Feature Index Space)
- SHARED_SEED: Seed for reproducible coefficient initialization
- CONTINUOUS_VALUE_HASH_SEED / WORD_LIKE_VALUE_HASH_SEED: probe offsets
- MAX_BINARY_CAPACITY: cap on the initial size hint of binary instances

LAYER 2: Learner Constants (Online Logistic Regression)
- Learning-rate schedule: mu_0 * alpha^step * (step + offset)^exponent
- DEFAULT_LEARNER_LAMBDA: weight of the prior
- INIT_SCALE: standard deviation of the initial coefficients

LAYER 3: Classifier Constants (Threshold Multi-label Wrapper)
- Randomizer shape and regularization used when building from settings
"""


# =============================================================================
# LAYER 1: Hashing Constants (Feature Index Space)
# =============================================================================

SHARED_SEED = 42

# Probe offsets keep continuous and word-like encoders from colliding with
# each other when they share a field name.
CONTINUOUS_VALUE_HASH_SEED = 1
WORD_LIKE_VALUE_HASH_SEED = 100

MAX_BINARY_CAPACITY = 20


# =============================================================================
# LAYER 2: Learner Constants (Online Logistic Regression)
# =============================================================================

DEFAULT_MU_0 = 1.0
DEFAULT_ALPHA = 1 - 1e-3
DEFAULT_STEP_OFFSET = 10
# -1 weights all examples evenly, 0 leaves only exponential annealing
DEFAULT_FORGETTING_EXPONENT = -0.5
DEFAULT_LEARNER_LAMBDA = 0.1
INIT_SCALE = 1e-3


# =============================================================================
# LAYER 3: Classifier Constants (Threshold Multi-label Wrapper)
# =============================================================================

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_LAMBDA = 0.01
DEFAULT_WINDOW = 2           # bigrams
DEFAULT_NUM_FEATURES = 2 ** 17
DEFAULT_NUM_PROBES = 2
DEFAULT_ALL_PAIRS = False
