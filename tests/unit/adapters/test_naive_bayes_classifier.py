import threading
import numpy as np
import pytest
from landclassifier.adapters.naive_bayes_classifier import NaiveBayesClassifier
from landclassifier.contracts.core import FeatureVector, LabeledSample
from landclassifier.contracts.errors import (
    DimensionMismatchError, ModelNotTrainedError, SymbolDomainError, TrainingError,
)
from landclassifier.ports.classifier import LandCoverClassifierPort

def _s(label, *values):
    return LabeledSample(vector=FeatureVector.of(*values), label=label)

def _separable():
    return [_s(0, 10, 20), _s(0, 11, 21), _s(0, 10, 22),
            _s(1, 200, 90), _s(1, 201, 91), _s(1, 199, 90)]

def test_implements_port():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    assert isinstance(clf, LandCoverClassifierPort)

def test_separable_classes_predicted():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    assert clf.is_trained and clf.feature_count == 2
    assert clf.predict(FeatureVector.of(10, 20)) == 0
    assert clf.predict(FeatureVector.of(200, 90)) == 1

def test_deterministic_prediction():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    v = FeatureVector.of(100, 50)
    assert len({clf.predict(v) for _ in range(20)}) == 1

def test_same_training_sequence_same_predictions():
    a = NaiveBayesClassifier(symbol_count=256)
    b = NaiveBayesClassifier(symbol_count=256)
    a.train(_separable())
    b.train(_separable())
    vectors = [s.vector for s in _separable()] + [FeatureVector.of(v, w) for v in (0, 60, 120, 255) for w in (0, 50, 255)]
    assert [a.predict(v) for v in vectors] == [b.predict(v) for v in vectors]
    np.testing.assert_array_equal(a.model.log_likelihood, b.model.log_likelihood)

def test_every_training_sample_recovers_its_label():
    clf = NaiveBayesClassifier(symbol_count=256)
    samples = _separable()
    clf.train(samples)
    assert [clf.predict(s.vector) for s in samples] == [s.label for s in samples]

def test_tie_breaks_to_lowest_class_id():
    clf = NaiveBayesClassifier(symbol_count=8)
    clf.train([_s(3, 1), _s(5, 2)])
    # símbolo 7 nunca visto: empate exacto entre clases
    assert clf.predict(FeatureVector.of(7)) == 3

def test_laplace_avoids_zero_probability():
    clf = NaiveBayesClassifier(symbol_count=16, laplace=True)
    clf.train([_s(0, 1), _s(1, 2)])
    assert np.isfinite(clf.model.log_likelihood).all()
    p = clf.predict_probability(FeatureVector.of(9))
    assert 0.0 < p <= 1.0

def test_without_laplace_unseen_symbol_has_zero_likelihood():
    clf = NaiveBayesClassifier(symbol_count=16, laplace=False)
    clf.train([_s(0, 1), _s(1, 2)])
    assert clf.model.log_likelihood[0, 0, 2] == -np.inf
    assert clf.predict(FeatureVector.of(2)) == 1

def test_predict_probability_normalized_top_posterior():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    assert clf.predict_probability(FeatureVector.of(10, 20)) > 0.5
    assert clf.supports_probability

def test_predict_many_matches_predict():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    X = np.array([[10, 20], [200, 90], [11, 21], [150.7, 60.2]])
    out = clf.predict_many(X)
    assert out.tolist() == [clf.predict(FeatureVector.of(*row)) for row in X]

def test_untrained_raises():
    clf = NaiveBayesClassifier()
    assert not clf.is_trained
    with pytest.raises(ModelNotTrainedError):
        clf.predict(FeatureVector.of(1))
    with pytest.raises(ModelNotTrainedError):
        clf.predict_many(np.zeros((1, 1)))
    with pytest.raises(ModelNotTrainedError):
        _ = clf.feature_count

def test_dimension_mismatch():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    with pytest.raises(DimensionMismatchError) as ei:
        clf.predict(FeatureVector.of(1, 2, 3))
    assert (ei.value.expected, ei.value.got) == (2, 3)
    with pytest.raises(DimensionMismatchError):
        clf.predict_many(np.zeros((4, 1)))

def test_symbol_outside_domain_at_prediction():
    clf = NaiveBayesClassifier(symbol_count=16)
    clf.train([_s(0, 1), _s(1, 2)])
    with pytest.raises(SymbolDomainError):
        clf.predict(FeatureVector.of(16))
    with pytest.raises(SymbolDomainError):
        clf.predict_many(np.array([[-1.0]]))

@pytest.mark.parametrize("samples", [
    [],
    [_s(0, 1), _s(1, 1, 2)],
    [_s(0, 70000)],
    [_s(0, -1)],
])
def test_training_errors(samples):
    with pytest.raises(TrainingError):
        NaiveBayesClassifier().train(samples)

def test_failed_training_keeps_previous_model():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    before = clf.model
    with pytest.raises(TrainingError):
        clf.train([_s(0, 1, 2), _s(1, 1)])
    assert clf.model is before
    assert clf.predict(FeatureVector.of(200, 90)) == 1

def test_fixed_class_catalog():
    clf = NaiveBayesClassifier(symbol_count=8, classes=[0, 1, 2])
    clf.train([_s(0, 1), _s(2, 5)])
    assert clf.model.classes.tolist() == [0, 1, 2]
    assert clf.model.log_prior[1] == -np.inf
    with pytest.raises(TrainingError):
        clf.train([_s(7, 1)])

def test_invalid_symbol_count():
    with pytest.raises(ValueError):
        NaiveBayesClassifier(symbol_count=1)
    with pytest.raises(ValueError):
        NaiveBayesClassifier(symbol_count=65537)

def test_concurrent_predict_during_retrain():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    results, errors = [], []

    def _predict():
        try:
            for _ in range(200):
                results.append(clf.predict(FeatureVector.of(10, 20)))
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=_predict) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(5):
        clf.train(_separable())
    for t in threads:
        t.join()
    assert not errors
    assert set(results) == {0}

def test_non_finite_rows_rejected_in_batch():
    clf = NaiveBayesClassifier(symbol_count=256)
    clf.train(_separable())
    with pytest.raises(SymbolDomainError):
        clf.predict_many(np.array([[10.0, np.nan]]))
