"""Unit tests for prediction aggregation and the inference entry point."""
from __future__ import annotations

import gc
import weakref

import numpy as np
import pytest
import torch

from heveaguard.errors import PredictionError, ShapeMismatchError
from heveaguard.schemas import ClassProbability
from heveaguard.services import inference, predictor

LABELS = ["Oidium Heveae", "Healthy", "Anthracnose", "Leaf Spot"]


def _tensor():
    return torch.zeros(1, 224, 224, 3)


def test_prediction_set_aligned_to_labels():
    predictions = predictor.build_prediction_set(np.array([[0.1, 0.7, 0.1, 0.1]]), LABELS)
    assert [p.className for p in predictions] == LABELS
    assert [p.probability for p in predictions] == pytest.approx([0.1, 0.7, 0.1, 0.1])


@pytest.mark.parametrize("raw", [[0.5, 0.5], [0.2] * 5, [], np.zeros((2, 2)), np.zeros((1, 2, 2))])
def test_cardinality_mismatch_raises(raw):
    with pytest.raises(ShapeMismatchError, match="4 output classes"):
        predictor.build_prediction_set(raw, LABELS)


def test_top_prediction_keeps_first_maximum():
    predictions = predictor.build_prediction_set([0.4, 0.1, 0.4, 0.1], LABELS)
    top = predictor.select_top_prediction(predictions)
    assert top.className == "Oidium Heveae"
    assert top.probability == max(p.probability for p in predictions)


def test_all_zero_output_yields_empty_top_pick():
    predictions = predictor.build_prediction_set([0.0, 0.0, 0.0, 0.0], LABELS)
    assert predictor.select_top_prediction(predictions) == ClassProbability(className="", probability=0.0)
    assert predictor.select_top_prediction([]).className == ""


def test_predict_builds_result(make_classifier, log_records):
    classifier = make_classifier([0.1, 0.7, 0.1, 0.1])
    result = predictor.predict(classifier, _tensor(), threshold=0.6)

    assert result.topPrediction.className == "Healthy"
    assert result.topPrediction.probability == pytest.approx(0.7)
    assert result.confidence == pytest.approx(70.0)
    assert result.labels == LABELS
    assert result.imageSize == 224
    assert result.modelName == "stub-classifier"
    assert result.timeStamp.endswith("Z")
    assert not [r for r in log_records if r["message"] == "Low confidence prediction"]


def test_low_confidence_only_logs(make_classifier, log_records):
    classifier = make_classifier([0.3, 0.25, 0.25, 0.2])
    result = predictor.predict(classifier, _tensor(), threshold=0.6)

    assert result.topPrediction.className == "Oidium Heveae"
    warnings = [r for r in log_records if r["message"] == "Low confidence prediction"]
    assert len(warnings) == 1
    assert warnings[0]["level"].name == "WARNING"
    assert warnings[0]["extra"]["className"] == "Oidium Heveae"


def test_forward_failure_wrapped(make_classifier):
    classifier = make_classifier([0.25] * 4)
    classifier.error = RuntimeError("shape mismatch at input layer")
    with pytest.raises(PredictionError, match="Model prediction failed: shape mismatch at input layer"):
        predictor.predict(classifier, _tensor())


def test_run_inference_releases_input_tensor(make_classifier, make_image, settings):
    refs = []

    class RecordingClassifier(make_classifier):
        def predict(self, tensor):
            refs.append(weakref.ref(tensor))
            return super().predict(tensor)

    classifier = RecordingClassifier([0.1, 0.7, 0.1, 0.1])
    result = inference.run_inference(classifier, make_image(), settings)
    gc.collect()

    assert result.topPrediction.className == "Healthy"
    assert classifier.calls == [(1, 224, 224, 3)]
    assert refs[0]() is None


def test_run_inference_releases_input_tensor_on_error(make_classifier, make_image, settings):
    refs = []

    class FailingClassifier(make_classifier):
        def predict(self, tensor):
            refs.append(weakref.ref(tensor))
            raise RuntimeError("forward pass exploded")

    classifier = FailingClassifier([0.25] * 4)
    try:
        inference.run_inference(classifier, make_image(), settings)
    except PredictionError as exc:
        gc.collect()
        assert refs[0]() is None
        assert "forward pass exploded" in str(exc)
    else:
        pytest.fail("PredictionError was not raised")


def test_single_row_batch_output_accepted():
    predictions = predictor.build_prediction_set(np.array([[0.1, 0.7, 0.1, 0.1]]), LABELS)
    assert predictor.select_top_prediction(predictions).className == "Healthy"


def test_non_numeric_output_raises_prediction_error():
    with pytest.raises(PredictionError, match="Model output is not numeric"):
        predictor.build_prediction_set(np.array(["a", "b", "c", "d"]), LABELS)
