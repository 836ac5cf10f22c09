import numpy as np
import pytest
from landclassifier.adapters.naive_bayes_classifier import NaiveBayesClassifier
from landclassifier.contracts.core import FeatureVector, LabeledSample
from landclassifier.contracts.errors import TrainingError
from landclassifier.services.accuracy_service import AccuracyService

def test_tally_matrix_and_metrics():
    cm = AccuracyService().tally([0, 0, 1, 1, 1, 2], [0, 1, 1, 1, 2, 2])
    assert cm.classes == (0, 1, 2)
    assert cm.matrix.tolist() == [[1, 1, 0], [0, 2, 1], [0, 0, 1]]
    assert cm.total == 6
    assert cm.overall_accuracy == pytest.approx(4 / 6)
    # pe = (1*2 + 3*3 + 2*1) / 36
    assert cm.kappa == pytest.approx((4 / 6 - 13 / 36) / (1 - 13 / 36))
    assert cm.producer_accuracy()[1] == pytest.approx(2 / 3)
    assert cm.user_accuracy()[2] == pytest.approx(0.5)

def test_tally_with_fixed_classes_keeps_empty_rows():
    cm = AccuracyService().tally([1, 1], [1, 1], classes=[0, 1, 2])
    assert cm.matrix.shape == (3, 3)
    assert cm.producer_accuracy()[0] == 0.0
    assert cm.overall_accuracy == 1.0

def test_tally_rejects_unknown_label():
    with pytest.raises(ValueError):
        AccuracyService().tally([0, 5], [0, 0], classes=[0, 1])

def test_evaluate_with_trained_classifier():
    samples = [LabeledSample(vector=FeatureVector.of(v), label=lab)
               for v, lab in [(1, 0), (2, 0), (1, 0), (8, 1), (9, 1), (8, 1)]]
    clf = NaiveBayesClassifier(symbol_count=16)
    clf.train(samples)
    cm = AccuracyService().evaluate(clf, samples, classes=[0, 1])
    assert cm.overall_accuracy == 1.0
    assert cm.kappa == pytest.approx(1.0)

def test_evaluate_empty():
    with pytest.raises(TrainingError):
        AccuracyService().evaluate(NaiveBayesClassifier(symbol_count=4), [])

def test_report_context_rows():
    cm = AccuracyService().tally([0, 1], [0, 1])
    ctx = AccuracyService.report_context(cm, {0: "Water", 1: "Forest"})
    assert ctx["headers"] == ["truth \\ predicted", "Water", "Forest", "producer_accuracy"]
    assert ctx["rows"][0] == ["Water", 1, 0, "1.0000"]
    assert ctx["rows"][-1] == ["kappa", "1.0000"]
