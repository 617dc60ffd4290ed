"""Smoke tests for the TorchScript export and startup loading."""
from __future__ import annotations

import numpy as np
import pytest
import torch
from fastapi.testclient import TestClient

from heveaguard.main import create_app
from heveaguard.services import classifier as classifier_service
from heveaguard.services import inference, preprocess
from heveaguard.services.vision import LeafClassifier, export_torchscript


def test_leaf_classifier_forward_is_distribution():
    model = LeafClassifier()
    with torch.no_grad():
        output = model(torch.rand(1, 224, 224, 3))
    assert tuple(output.shape) == (1, len(model.class_names))
    assert float(output.sum()) == pytest.approx(1.0, abs=1e-5)


def test_export_then_load(settings, make_image):
    labels = ["Oidium Heveae", "Healthy", "Anthracnose", "Leaf Spot"]
    export_torchscript(settings.model_path, class_names=labels)

    loaded = classifier_service.load_classifier(settings)
    assert loaded.labels == labels

    raw = loaded.predict(preprocess.transform_image_bytes(make_image()))
    assert isinstance(raw, np.ndarray)
    assert raw.reshape(-1).shape == (4,)

    result = inference.run_inference(loaded, make_image(color="blue"), settings)
    assert [p.className for p in result.predictions] == labels
    assert result.topPrediction.probability == max(p.probability for p in result.predictions)


def test_missing_artifact_raises(settings):
    with pytest.raises(FileNotFoundError):
        classifier_service.load_classifier(settings)


def test_startup_with_real_loader_survives_missing_model(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        assert client.get("/health").json()["modelLoaded"] is False
        assert client.post("/predict").status_code == 503
