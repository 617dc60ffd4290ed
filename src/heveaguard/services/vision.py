"""Leaf classifier network used to produce the deployable TorchScript artifact."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

import torch
from torchvision import models

from ..config import DEFAULT_LABELS


class LeafClassifier(torch.nn.Module):
    """MobileNetV3-Small taking NHWC images in [0, 1] and returning class probabilities."""

    def __init__(
        self,
        class_names: Sequence[str] | None = None,
        checkpoint: Path | None = None,
    ) -> None:
        super().__init__()
        self._class_names: List[str] = list(class_names) if class_names else DEFAULT_LABELS.split(",")
        self.model = models.mobilenet_v3_small(weights=None, num_classes=len(self._class_names))

        if checkpoint and checkpoint.exists():
            state = torch.load(checkpoint, map_location="cpu")
            state_dict = state.get("state_dict", state)
            checkpoint_classes = state.get("class_names")
            if checkpoint_classes:
                self._class_names = list(checkpoint_classes)
                self.model = models.mobilenet_v3_small(weights=None, num_classes=len(self._class_names))
            self.model.load_state_dict(state_dict, strict=False)

        self.eval()

    def forward(self, tensor: torch.Tensor) -> torch.Tensor:
        logits = self.model(tensor.permute(0, 3, 1, 2))
        return torch.softmax(logits, dim=-1)

    @property
    def class_names(self) -> List[str]:
        return self._class_names


def export_torchscript(
    output: Path,
    class_names: Sequence[str] | None = None,
    checkpoint: Path | None = None,
    image_size: int = 224,
) -> Path:
    """Trace a ``LeafClassifier`` and save it with its label list embedded."""
    model = LeafClassifier(class_names=class_names, checkpoint=checkpoint)
    dummy_input = torch.rand(1, image_size, image_size, 3)
    with torch.no_grad():
        traced = torch.jit.trace(model, dummy_input)
    output.parent.mkdir(parents=True, exist_ok=True)
    torch.jit.save(
        traced,
        str(output),
        _extra_files={"labels.json": json.dumps(model.class_names)},
    )
    return output
