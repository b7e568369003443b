"""
Demonstration of hashed-feature online learning

This script walks through three uses of the library:
1. Encoding a mixed record (text, words, numbers) into a hashed vector
2. Training a multinomial model on term lists and tracking its log-likelihood
3. Multi-label document classification with per-label thresholds
"""

import logging

import numpy as np
from hashlearn import (
    AdaptiveWordValueEncoder,
    BinaryRandomizer,
    ConstantValueEncoder,
    ContinuousValueEncoder,
    L1,
    LearnerConfig,
    LogLikelihoodEstimate,
    OnlineLogisticRegression,
    SparseVector,
    TextValueEncoder,
    ThresholdClassifier,
)


def print_section(title):
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def demonstrate_record_encoding():
    """Encode one record with several field encoders and trace the features."""
    print_section("PART 1: Record Encoding")

    trace = {}
    encoders = [
        ConstantValueEncoder("intercept"),
        ContinuousValueEncoder("price"),
        AdaptiveWordValueEncoder("color"),
        TextValueEncoder("title"),
    ]
    for encoder in encoders:
        encoder.set_trace_dictionary(trace)

    record = {"intercept": None, "price": "12.5", "color": "red", "title": "Red apple pie"}
    vector = SparseVector(100)
    for encoder in encoders:
        encoder.add_to_vector(record[encoder.name], vector)
        print(f"  {encoder.describe(record[encoder.name])}")

    print(f"\n  Non-zero features: {vector.nnz} of {len(vector)}")
    for key, locations in sorted(trace.items()):
        print(f"    • {key:<14s} -> {sorted(locations)}")

    return trace


def demonstrate_online_training():
    """Train on three disjoint vocabularies and watch the estimate improve."""
    print_section("PART 2: Online Training on Term Lists")

    topics = {
        0: ["sun", "rain", "cloud", "wind", "storm", "snow"],
        1: ["cat", "dog", "horse", "cow", "sheep", "goat"],
        2: ["red", "blue", "green", "yellow", "purple", "orange"],
    }
    config = LearnerConfig(num_categories=3, num_features=1000, prior=L1(),
                           lambda_=0.01, learning_rate=0.1)
    model = OnlineLogisticRegression(config, BinaryRandomizer(2, 1000))
    estimate = LogLikelihoodEstimate()

    rng = np.random.default_rng(0)
    for epoch in range(1, 21):
        for _ in range(15):
            category = int(rng.integers(3))
            terms = list(rng.choice(topics[category], size=3, replace=False))
            estimate.update(model.log_likelihood(category, model.randomizer.randomized_instance(terms)))
            model.train_terms(category, terms)
        if epoch % 5 == 0:
            print(f"  epoch {epoch:2d}: log-likelihood {estimate.value:8.4f}  "
                  f"learning rate {model.current_learning_rate():.4f}")

    print(f"\n  Model: {model!r}")
    print(f"  Density after commit: {model.density():.3f}")
    for category, words in topics.items():
        p = model.classify_full_terms(words[:3])
        print(f"    • {words[:3]} -> category {int(p.argmax())} (p={p.max():.3f})")


def demonstrate_threshold_classifier():
    """Multi-label classification configured from dotted settings."""
    print_section("PART 3: Multi-label Threshold Classifier")

    classifier = ThresholdClassifier.from_settings({
        "randomizer.numFeatures": "1000",
        "randomizer.window": "2",
        "online.priorClass": "l1",
        "online.lambda": "0.001",
        "online.learningRate": "0.1",
        "categories": "machine learning, programming",
    })

    corpus = [
        ("Online learning updates the parameters one instance at a time",
         {"machine learning"}),
        ("Clojure is a functional programming language for the JVM",
         {"programming"}),
        ("Numpy is a Python library used to write machine learning code",
         {"machine learning", "programming"}),
        ("The weather was pleasant all afternoon", set()),
    ]

    for _ in range(20):
        for document, labels in corpus:
            classifier.train(document, labels)

    classifier.reset_evaluation()
    for document, labels in corpus:
        classifier.evaluate(document, labels)
        print(f"  {document[:45]:<45s} -> {classifier.classify(document)}")

    print("\n" + classifier.current_evaluation().report())


def main():
    """Run the complete demonstration."""
    logging.basicConfig(level=logging.INFO, format="  [%(name)s] %(message)s")

    print("\n" + "=" * 70)
    print("  HASHLEARN - DEMONSTRATION")
    print("  Online logistic regression over hashed features")
    print("=" * 70)

    demonstrate_record_encoding()
    demonstrate_online_training()
    demonstrate_threshold_classifier()

    print("\n" + "=" * 70 + "\n")


if __name__ == "__main__":
    main()
