"""Image preprocessing for the leaf classifier."""
from __future__ import annotations

import io
from functools import lru_cache

import torch
from PIL import Image, UnidentifiedImageError
from torchvision import transforms

from ..errors import DecodeError

IMAGE_SIZE = 224


@lru_cache(maxsize=4)
def _image_transform(image_size: int) -> transforms.Compose:
    return transforms.Compose(
        [
            transforms.Resize(
                (image_size, image_size),
                interpolation=transforms.InterpolationMode.NEAREST,
            ),
            transforms.ToTensor(),
        ]
    )


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode encoded image bytes into a 3-channel RGB image."""
    if not image_bytes:
        raise DecodeError("Image buffer is empty")
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"Unable to decode image: {exc}") from exc


def transform_image_bytes(image_bytes: bytes, image_size: int = IMAGE_SIZE) -> torch.Tensor:
    """Convert raw bytes into a (1, H, W, 3) float tensor scaled to [0, 1].

    Pixels are resized with nearest-neighbour sampling and divided by 255;
    no mean/std normalisation is applied.
    """
    image = decode_image(image_bytes)
    chw = _image_transform(image_size)(image)
    return chw.permute(1, 2, 0).unsqueeze(0).contiguous()
