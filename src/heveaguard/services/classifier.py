"""Model handle loaded once at startup and shared read-only afterwards."""
from __future__ import annotations

import json
from functools import lru_cache
from typing import List, Protocol, Sequence, runtime_checkable

import numpy as np
import torch

from ..config import Settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ClassifierModel(Protocol):
    labels: List[str]
    image_size: int
    name: str
    version: str

    def predict(self, tensor: torch.Tensor) -> np.ndarray:
        ...


@lru_cache(maxsize=1)
def get_device() -> torch.device:
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


class TorchScriptClassifier:
    """Wraps a TorchScript module that maps (1, H, W, 3) images to class scores."""

    def __init__(
        self,
        module: torch.jit.ScriptModule,
        labels: Sequence[str],
        *,
        image_size: int = 224,
        name: str = "heveaguard-leaf-classifier",
        version: str = "1.0.0",
        device: torch.device | None = None,
    ) -> None:
        self.device = device or get_device()
        self.module = module.to(self.device)
        self.module.eval()
        self.labels = list(labels)
        self.image_size = image_size
        self.name = name
        self.version = version

    def predict(self, tensor: torch.Tensor) -> np.ndarray:
        with torch.inference_mode():
            output = self.module(tensor.to(self.device))
            if isinstance(output, dict):
                output = next(iter(output.values()))
            elif isinstance(output, (list, tuple)):
                output = output[0]
            return output.detach().cpu().numpy().copy()


def load_classifier(settings: Settings) -> TorchScriptClassifier:
    """Load the TorchScript artifact configured in ``settings``."""
    path = settings.model_path
    if not path.exists():
        raise FileNotFoundError(f"Model artifact not found: {path}")

    extra_files = {"labels.json": ""}
    module = torch.jit.load(str(path), map_location=get_device(), _extra_files=extra_files)
    labels = settings.labels
    if extra_files["labels.json"]:
        labels = json.loads(extra_files["labels.json"])

    classifier = TorchScriptClassifier(
        module,
        labels,
        image_size=settings.image_size,
        name=settings.model_name,
        version=settings.model_version,
    )
    logger.info(
        "Model loaded",
        path=str(path),
        device=str(classifier.device),
        input_shape=[1, settings.image_size, settings.image_size, 3],
        output_shape=[1, len(labels)],
        labels=labels,
    )
    return classifier


__all__ = ["ClassifierModel", "TorchScriptClassifier", "get_device", "load_classifier"]
