"""Shared fixtures: settings under tmp_path, stub classifier, loguru capture."""
from __future__ import annotations

import io
from typing import List

import numpy as np
import pytest
from fastapi.testclient import TestClient
from loguru import logger
from PIL import Image

from heveaguard.config import Settings
from heveaguard.main import create_app

LABELS = ["Oidium Heveae", "Healthy", "Anthracnose", "Leaf Spot"]


class StubClassifier:
    """Returns a fixed output and records the shape of every input."""

    def __init__(self, output, labels: List[str] | None = None) -> None:
        self.output = output
        self.labels = list(labels or LABELS)
        self.image_size = 224
        self.name = "stub-classifier"
        self.version = "0.0.1"
        self.calls: List[tuple] = []
        self.error: Exception | None = None

    def predict(self, tensor):
        self.calls.append(tuple(tensor.shape))
        if self.error is not None:
            raise self.error
        return np.asarray(self.output)


def _image_bytes(color="red", size=(224, 224), mode="RGB", fmt="JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        upload_dir=str(tmp_path / "uploads"),
        model_dir=str(tmp_path / "models"),
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def stub_classifier() -> StubClassifier:
    return StubClassifier([0.1, 0.7, 0.1, 0.1])


@pytest.fixture
def client(settings, stub_classifier):
    app = create_app(settings, loader=lambda _: stub_classifier)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unready_client(settings):
    def failing_loader(_settings):
        raise FileNotFoundError("model.ts missing")

    app = create_app(settings, loader=failing_loader)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def make_image():
    return _image_bytes


@pytest.fixture
def make_classifier():
    return StubClassifier
