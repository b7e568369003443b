"""
Tests for the online logistic regression learner
"""

import math

import pytest
import numpy as np

from hashlearn import (
    BinaryRandomizer,
    ConfigurationError,
    DimensionMismatch,
    L1,
    L2,
    LearnerConfig,
    OnlineLogisticRegression,
    SparseVector,
    TPrior,
    UniformPrior,
)


def make_model(num_categories=3, num_features=2, **kwargs):
    randomizer = kwargs.pop("randomizer", None)
    kwargs.setdefault("init_scale", 0.0)
    config = LearnerConfig(num_categories=num_categories, num_features=num_features, **kwargs)
    return OnlineLogisticRegression(config, randomizer)


def random_examples(num_examples, num_features, num_categories, nnz=3, seed=3):
    rng = np.random.default_rng(seed)
    examples = []
    for _ in range(num_examples):
        x = np.zeros(num_features)
        x[rng.choice(num_features, size=nnz, replace=False)] = rng.standard_normal(nnz)
        examples.append((int(rng.integers(num_categories)), x))
    return examples


def eager_train(beta, prior, rate, learning_rate, examples):
    """Reference trainer that decays every coefficient on every step."""
    beta = beta.copy()
    for t, (actual, x) in enumerate(examples):
        if t > 0:
            beta = np.array(prior.age(beta, 1, rate), dtype=float)
        v = np.exp(beta @ x)
        p = v / (1 + v.sum())
        gradient = -p
        if actual >= 1:
            gradient[actual - 1] += 1
        columns = np.flatnonzero(x)
        beta[:, columns] += learning_rate * np.outer(gradient, x[columns])
    return np.array(prior.age(beta, 1, rate), dtype=float)


class TestConfig:
    def test_rejects_too_few_categories(self):
        with pytest.raises(ValueError):
            LearnerConfig(num_categories=1, num_features=10)

    def test_rejects_empty_feature_space(self):
        with pytest.raises(ValueError):
            LearnerConfig(num_categories=2, num_features=0)

    def test_defaults(self):
        config = LearnerConfig(num_categories=2, num_features=10)
        assert isinstance(config.prior, L1)
        assert config.learning_rate == 1.0
        assert config.alpha == 1 - 1e-3
        assert config.step_offset == 10
        assert config.forgetting_exponent == -0.5


class TestClassify:
    def test_classify(self):
        lr = make_model(3, 2, prior=L2(1))
        # set up some internal coefficients as if we had learned them
        lr.set_beta(0, 0, -1)
        lr.set_beta(1, 0, -2)

        # zero vector gives no information, all classes are equal
        v = lr.classify(np.array([0.0, 0.0]))
        np.testing.assert_allclose(v, [1 / 3, 1 / 3], atol=1e-8)
        v = lr.classify_full(np.array([0.0, 0.0]))
        assert v.sum() == pytest.approx(1.0, abs=1e-8)
        np.testing.assert_allclose(v, [1 / 3, 1 / 3, 1 / 3], atol=1e-8)

        # weights for the second component are still zero
        v = lr.classify_full(np.array([0.0, 1.0]))
        np.testing.assert_allclose(v, [1 / 3, 1 / 3, 1 / 3], atol=1e-8)

        # but the weights on the first component are non-zero
        z = 1 + math.exp(-1) + math.exp(-2)
        v = lr.classify(np.array([1.0, 0.0]))
        np.testing.assert_allclose(v, [math.exp(-1) / z, math.exp(-2) / z], atol=1e-8)
        v = lr.classify_full(np.array([1.0, 0.0]))
        assert v.sum() == pytest.approx(1.0, abs=1e-8)
        np.testing.assert_allclose(v, [1 / z, math.exp(-1) / z, math.exp(-2) / z], atol=1e-8)

        lr.set_beta(0, 1, 1)
        z = 1 + math.exp(0) + math.exp(-2)
        v = lr.classify_full(np.array([1.0, 1.0]))
        np.testing.assert_allclose(v, [1 / z, math.exp(0) / z, math.exp(-2) / z], atol=1e-8)

        lr.set_beta(1, 1, 3)
        z = 1 + math.exp(0) + math.exp(1)
        v = lr.classify_full(np.array([1.0, 1.0]))
        np.testing.assert_allclose(v, [1 / z, math.exp(0) / z, math.exp(1) / z], atol=1e-8)

    def test_sparse_and_dense_instances_agree(self):
        lr = make_model(3, 5, init_scale=0.5)
        dense = np.array([0.0, 1.0, 0.0, 2.0, 0.0])
        np.testing.assert_allclose(lr.classify(dense), lr.classify(SparseVector.from_dense(dense)))

    def test_large_scores_do_not_overflow(self):
        lr = make_model(3, 1)
        lr.set_beta(0, 0, 2000.0)
        p = lr.classify_full(np.array([1.0]))
        assert np.all(np.isfinite(p))
        np.testing.assert_allclose(p, [0.0, 1.0, 0.0], atol=1e-12)

    def test_classify_scalar(self):
        lr = make_model(2, 2)
        lr.set_beta(0, 0, 1.5)
        x = np.array([1.0, 0.0])
        p = math.exp(1.5) / (1 + math.exp(1.5))
        assert lr.classify_scalar(x) == pytest.approx(p)
        assert lr.classify(x)[0] == pytest.approx(p)

    def test_classify_scalar_requires_two_categories(self):
        with pytest.raises(DimensionMismatch):
            make_model(3, 2).classify_scalar(np.zeros(2))

    def test_instance_size_must_match(self):
        with pytest.raises(DimensionMismatch):
            make_model(3, 2).classify(np.zeros(3))

    def test_matrix_variants(self):
        lr = make_model(2, 3, init_scale=0.3)
        data = np.array([[1.0, 0.0, 0.0], [0.0, 2.0, 1.0]])
        full = lr.classify_full_matrix(data)
        assert full.shape == (2, 2)
        np.testing.assert_allclose(full.sum(axis=1), 1.0)
        np.testing.assert_allclose(lr.classify_matrix(data)[:, 0], full[:, 1])
        np.testing.assert_allclose(lr.classify_scalar_matrix(data), full[:, 1])

    def test_invariants_after_training(self):
        lr = make_model(4, 30, prior=L2(1.0), lambda_=0.01, learning_rate=0.5, init_scale=0.01)
        examples = random_examples(300, 30, 4)
        for actual, x in examples:
            lr.train(actual, x)
        for _, x in examples[:50]:
            p = lr.classify(x)
            assert np.all(p >= 0) and np.all(p <= 1)
            assert p.sum() <= 1 + 1e-12
            assert lr.classify_full(x).sum() == pytest.approx(1.0, abs=1e-12)


class TestTermOverloads:
    def test_requires_randomizer(self):
        lr = make_model(3, 100)
        with pytest.raises(ConfigurationError):
            lr.classify_terms(["a", "b"])
        with pytest.raises(ConfigurationError):
            lr.train_terms(1, ["a", "b"])

    def test_randomizer_width_must_match(self):
        with pytest.raises(DimensionMismatch):
            make_model(3, 100, randomizer=BinaryRandomizer(2, 50))

    def test_terms_use_randomizer(self):
        randomizer = BinaryRandomizer(2, 100)
        lr = make_model(3, 100, randomizer=randomizer, init_scale=0.1)
        terms = ["red", "apple", "pie"]
        np.testing.assert_allclose(
            lr.classify_terms(terms, window=1),
            lr.classify(randomizer.randomized_instance(terms, window=1)))
        assert lr.classify_full_terms(terms).sum() == pytest.approx(1.0)


class TestLearningRate:
    def test_annealing_schedule(self):
        lr = make_model(2, 4, learning_rate=0.5, alpha=0.9, step_offset=10,
                        forgetting_exponent=-0.5)
        assert lr.current_learning_rate() == pytest.approx(0.5 * 10 ** -0.5)
        for _ in range(3):
            lr.train(1, np.array([1.0, 0.0, 0.0, 0.0]))
        assert lr.current_learning_rate() == pytest.approx(0.5 * 0.9 ** 3 * 13 ** -0.5)

    def test_constant_rate(self):
        lr = make_model(2, 4, learning_rate=0.2, alpha=1.0, forgetting_exponent=0.0)
        for _ in range(5):
            lr.train(0, np.array([0.0, 1.0, 0.0, 0.0]))
        assert lr.current_learning_rate() == pytest.approx(0.2)


class TestTraining:
    def test_single_step_gradient(self):
        lr = make_model(3, 3, prior=UniformPrior(), learning_rate=1.0, alpha=1.0,
                        forgetting_exponent=0.0)
        x = np.array([2.0, 0.0, 1.0])
        lr.train(2, x)
        # uniform start: p = [1/3, 1/3] for categories 1 and 2
        expected = np.array([[-2 / 3, 0.0, -1 / 3],
                             [4 / 3, 0.0, 2 / 3]])
        np.testing.assert_allclose(lr.beta, expected)
        assert lr.step == 1

    def test_update_steps_bookkeeping(self):
        lr = make_model(3, 10, prior=L2(1.0), lambda_=0.1)
        lr.train(1, SparseVector(10, {2: 1.0, 5: 1.0}))
        lr.train(2, SparseVector(10, {5: 1.0, 7: 1.0}))
        steps = lr.update_steps
        assert lr.step == 2
        assert steps[2] == 0 and steps[5] == 1 and steps[7] == 1
        untouched = [j for j in range(10) if j not in (2, 5, 7)]
        assert np.all(steps[untouched] == 0)
        assert np.all(steps <= lr.step)
        with pytest.raises(ValueError):
            steps[0] = 3

    def test_out_of_range_category_trains_all_rows_down(self):
        lr = make_model(3, 1, prior=UniformPrior())
        lr.train(7, np.array([1.0]))
        assert np.all(lr.beta < 0)

    def test_classify_does_not_double_regularize(self):
        lr = make_model(2, 2, prior=L2(1.0), lambda_=1.0, learning_rate=0.1,
                        alpha=1.0, forgetting_exponent=0.0)
        lr.set_beta(0, 0, 1.0)
        lr.train(0, np.array([0.0, 1.0]))
        x = np.array([1.0, 0.0])
        first = lr.classify(x)
        second = lr.classify(x)
        np.testing.assert_array_equal(first, second)
        assert lr.beta[0, 0] == pytest.approx(0.9)


class TestLazyRegularization:
    @pytest.mark.parametrize("prior", [L1(), L2(1.0), UniformPrior(), TPrior(1.0)],
                             ids=["l1", "l2", "uniform", "t"])
    def test_matches_eager_regularization(self, prior):
        lr = make_model(3, 20, prior=prior, learning_rate=0.1, alpha=1.0,
                        forgetting_exponent=0.0, lambda_=0.1, init_scale=0.1, seed=7)
        initial = lr.beta.copy()
        examples = random_examples(200, 20, 3)

        for actual, x in examples:
            lr.train(actual, x)
        lr.regularize_all()

        expected = eager_train(initial, prior, 0.1 * 0.1, 0.1, examples)
        np.testing.assert_allclose(lr.beta, expected, rtol=1e-7, atol=1e-9)

    def test_untouched_columns_are_not_visited(self):
        lr = make_model(2, 6, prior=L2(1.0), lambda_=1.0, init_scale=0.5)
        before = lr.beta.copy()
        for _ in range(5):
            lr.train(1, SparseVector(6, {0: 1.0}))
        np.testing.assert_array_equal(lr.beta[:, 1:], before[:, 1:])

    def test_no_regularization_when_lambda_is_zero(self):
        lr = make_model(2, 3, prior=L1(), lambda_=0.0, init_scale=0.5)
        before = lr.beta.copy()
        lr.train(0, np.array([0.0, 0.0, 1.0]))
        assert lr.regularize_all() == 0
        np.testing.assert_array_equal(lr.beta[:, :2], before[:, :2])


class TestCommit:
    def test_sparsity_inducing_prior_forces_one_generation(self):
        lr = make_model(2, 4, prior=L1(), lambda_=0.1, init_scale=0.5)
        lr.train(1, np.array([1.0, 0.0, 0.0, 0.0]))
        lr.commit()
        assert lr.step == 2
        assert np.all(lr.update_steps == 2)

    def test_other_priors_only_catch_up(self):
        lr = make_model(2, 4, prior=L2(1.0), lambda_=0.1, init_scale=0.5)
        lr.train(1, np.array([1.0, 0.0, 0.0, 0.0]))
        lr.commit()
        assert lr.step == 1
        assert np.all(lr.update_steps == 1)

    def test_commit_is_idempotent_until_training(self):
        lr = make_model(2, 4, prior=L1(), lambda_=0.1, init_scale=0.5)
        lr.train(1, np.array([1.0, 0.0, 0.0, 0.0]))
        first = lr.commit().copy()
        np.testing.assert_array_equal(lr.commit(), first)
        assert lr.step == 2
        lr.train(0, np.array([0.0, 1.0, 0.0, 0.0]))
        lr.commit()
        assert lr.step == 4


class TestDiagnostics:
    def test_log_likelihood(self):
        lr = make_model(2, 2)
        assert lr.log_likelihood(1, np.array([1.0, 0.0])) == pytest.approx(math.log(0.5))
        lr3 = make_model(3, 2)
        assert lr3.log_likelihood(0, np.array([1.0, 0.0])) == pytest.approx(math.log(1 / 3))

    def test_log_likelihood_of_impossible_category(self):
        lr = make_model(3, 1)
        lr.set_beta(0, 0, 1000.0)
        assert lr.log_likelihood(0, np.array([1.0])) == -math.inf

    def test_log_prior(self):
        lr = make_model(2, 3, prior=L1())
        lr.set_beta(0, 0, 0.5)
        lr.set_beta(0, 2, -1.5)
        assert lr.log_prior() == pytest.approx(-2.0)

    def test_density_and_predictor_weight(self):
        lr = make_model(3, 4, prior=UniformPrior())
        lr.set_beta(0, 1, 0.25)
        lr.set_beta(1, 3, 0.5)
        assert lr.density() == pytest.approx(2 / 8)
        assert lr.predictor_weight(0, {1, 3}) == pytest.approx(0.25)


class TestConvergence:
    @pytest.mark.parametrize("prior", [L1(), L2(1.0), UniformPrior(), TPrior(1.0)],
                             ids=["l1", "l2", "uniform", "t"])
    def test_training_convergence_to_reference(self, prior):
        # labels come from a random reference model, so the data is separable
        num_categories, num_features, size = 3, 420, 100
        reference = make_model(num_categories, num_features, prior=UniformPrior(),
                               init_scale=1.0, seed=0)
        rng = np.random.default_rng(0)
        data = rng.standard_normal((size, num_features))
        labels = reference.classify_full_matrix(data).argmax(axis=1)

        model = make_model(num_categories, num_features, prior=prior, lambda_=0.005,
                           learning_rate=0.1, init_scale=1e-3, seed=42)

        def error_rate():
            return np.mean(model.classify_full_matrix(data).argmax(axis=1) != labels)

        assert error_rate() > 0.3
        assert np.count_nonzero(model.beta) / model.beta.size > 0.99

        for _ in range(10):
            for x, label in zip(data, labels):
                model.train(int(label), x)

        assert error_rate() < 0.05


TOPICS = {
    0: ["sun", "rain", "cloud", "wind", "storm", "snow"],
    1: ["cat", "dog", "horse", "cow", "sheep", "goat"],
    2: ["red", "blue", "green", "yellow", "purple", "orange"],
}


def topic_corpus():
    corpus = []
    for doc in range(5):
        for category, words in TOPICS.items():
            terms = [words[(doc + k) % len(words)] for k in range(3 + doc % 2)]
            corpus.append((category, terms))
    return corpus


class TestEndToEnd:
    def test_three_vocabularies(self):
        num_features = 1000
        config = LearnerConfig(num_categories=3, num_features=num_features, prior=L1(),
                               lambda_=0.01, learning_rate=0.1)
        model = OnlineLogisticRegression(config, BinaryRandomizer(2, num_features))
        corpus = topic_corpus()

        initial_density = np.count_nonzero(model.beta) / model.beta.size
        assert initial_density > 0.99

        for _ in range(20):
            for category, terms in corpus:
                model.train_terms(category, terms)

        errors = sum(int(model.classify_full_terms(terms).argmax() != category)
                     for category, terms in corpus)
        assert errors == 0
        assert model.density() < initial_density


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
