"""Wire schemas for the HTTP and streaming transports."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiSchema(BaseModel):
    """Common base for API schemas."""

    model_config = ConfigDict(protected_namespaces=())


class ClassProbability(ApiSchema):
    """Probability assigned to one class."""

    className: str = Field(..., description="Class label")
    probability: float = Field(..., description="Model output for the class")


class PredictionResult(ApiSchema):
    """Response envelope of a single classification."""

    frameworkVersion: str
    modelName: str
    modelVersion: str
    labels: List[str]
    predictions: List[ClassProbability]
    topPrediction: ClassProbability
    imageSize: int
    timeStamp: str = Field(..., description="ISO-8601 UTC generation time")

    @property
    def confidence(self) -> float:
        """Top prediction probability as a percentage."""
        return round(self.topPrediction.probability * 100, 2)


class FrameMessage(ApiSchema):
    """Inbound streaming message."""

    type: str
    frameData: Optional[str] = None


class StreamPrediction(ApiSchema):
    type: Literal["prediction"] = "prediction"
    predictions: List[ClassProbability]
    topPrediction: ClassProbability
    confidence: float
    timestamp: str


class StreamError(ApiSchema):
    type: Literal["error"] = "error"
    error: str
    predictions: List[ClassProbability] = []


class ErrorResponse(ApiSchema):
    error: str
    details: Optional[str] = None


class HealthResponse(ApiSchema):
    status: str
    modelLoaded: bool
    activeConnections: int


__all__ = [
    "ClassProbability",
    "PredictionResult",
    "FrameMessage",
    "StreamPrediction",
    "StreamError",
    "ErrorResponse",
    "HealthResponse",
]
