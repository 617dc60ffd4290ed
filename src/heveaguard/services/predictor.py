"""Turn raw classifier output into labelled, ranked predictions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Sequence

import numpy as np
import torch

from ..errors import PredictionError, ShapeMismatchError
from ..schemas import ClassProbability, PredictionResult
from ..utils.logger import get_logger
from .classifier import ClassifierModel
from .resources import TensorScope

logger = get_logger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.6


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_prediction_set(raw: np.ndarray | Sequence[float], labels: Sequence[str]) -> List[ClassProbability]:
    """Zip the model output with ``labels`` in label order.

    The output must be one row of scores, either shape ``(N,)`` or ``(1, N)``.
    """
    try:
        probabilities = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise PredictionError(f"Model output is not numeric: {exc}") from exc
    if probabilities.ndim == 2 and probabilities.shape[0] == 1:
        probabilities = probabilities[0]
    if probabilities.ndim != 1:
        raise ShapeMismatchError(
            f"Expected a single row of {len(labels)} output classes but got shape {probabilities.shape}"
        )
    if probabilities.shape[0] != len(labels):
        raise ShapeMismatchError(
            f"Expected {len(labels)} output classes but got {probabilities.shape[0]}"
        )
    return [
        ClassProbability(className=label, probability=float(probability))
        for label, probability in zip(labels, probabilities)
    ]


def select_top_prediction(predictions: Sequence[ClassProbability]) -> ClassProbability:
    """Return the first entry with the highest probability.

    The scan starts from an empty pick with probability 0, so an all-zero or
    empty set yields ``ClassProbability(className="", probability=0)``.
    """
    top = ClassProbability(className="", probability=0.0)
    for prediction in predictions:
        if prediction.probability > top.probability:
            top = prediction
    return top


def predict(
    classifier: ClassifierModel,
    tensor: torch.Tensor,
    *,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    scope: TensorScope | None = None,
) -> PredictionResult:
    """Run the forward pass on ``tensor`` and build the response envelope."""
    try:
        raw = classifier.predict(tensor)
    except Exception as exc:
        raise PredictionError(f"Model prediction failed: {exc}") from exc
    if scope is not None and isinstance(raw, torch.Tensor):
        scope.track(raw)
    logger.debug("Raw probabilities", probabilities=np.asarray(raw).reshape(-1).tolist())

    predictions = build_prediction_set(raw, classifier.labels)
    top_prediction = select_top_prediction(predictions)

    if top_prediction.probability < threshold:
        logger.warning(
            "Low confidence prediction",
            className=top_prediction.className,
            probability=top_prediction.probability,
            threshold=threshold,
        )

    return PredictionResult(
        frameworkVersion=torch.__version__,
        modelName=classifier.name,
        modelVersion=classifier.version,
        labels=list(classifier.labels),
        predictions=predictions,
        topPrediction=top_prediction,
        imageSize=classifier.image_size,
        timeStamp=utc_timestamp(),
    )
