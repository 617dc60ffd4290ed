"""Preprocess and predict one image inside a tensor scope."""
from __future__ import annotations

from ..config import Settings
from ..schemas import PredictionResult
from . import predictor, preprocess
from .classifier import ClassifierModel
from .resources import TensorScope


def run_inference(classifier: ClassifierModel, image_bytes: bytes, settings: Settings) -> PredictionResult:
    """Classify ``image_bytes``; every tensor is released before this returns or raises."""
    tensor = None
    with TensorScope() as scope:
        try:
            tensor = scope.track(preprocess.transform_image_bytes(image_bytes, classifier.image_size))
            result = predictor.predict(
                classifier,
                tensor,
                threshold=settings.confidence_threshold,
                scope=scope,
            )
        finally:
            tensor = None
    return result
