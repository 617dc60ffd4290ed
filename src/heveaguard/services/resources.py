"""Scoped ownership of per-request tensors and upload files."""
from __future__ import annotations

import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, TypeVar

import torch

from ..errors import CleanupError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=torch.Tensor)


class TensorScope:
    """Owns every tensor created during one inference.

    References are dropped exactly once when the ``with`` block exits. On an
    exceptional exit the finished frames on the tracebacks of the error and of
    its chained causes are cleared as well, so locals deeper in the call stack
    cannot keep a tensor alive while the error travels up to the transport
    layer. The frame running the ``with`` block is still executing and must
    drop its own tensor locals.
    """

    def __init__(self) -> None:
        self._tensors: List[torch.Tensor] = []
        self.released = False

    def track(self, tensor: T) -> T:
        if self.released:
            raise RuntimeError("TensorScope already released")
        self._tensors.append(tensor)
        return tensor

    def release(self) -> None:
        if self.released:
            return
        self._tensors.clear()
        self.released = True

    def __len__(self) -> int:
        return len(self._tensors)

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
        if tb is not None:
            traceback.clear_frames(tb)
        seen = set()
        while exc is not None and id(exc) not in seen:
            seen.add(id(exc))
            if exc.__traceback__ is not None:
                traceback.clear_frames(exc.__traceback__)
            exc = exc.__cause__ or exc.__context__


def remove_upload(path: Path) -> bool:
    """Delete an upload once; failures are logged and swallowed."""
    try:
        path.unlink()
    except OSError as exc:
        error = CleanupError(f"Failed to delete upload {path}: {exc}")
        error.__cause__ = exc
        logger.opt(exception=error).error("Failed to delete upload", path=str(path), kind=type(error).__name__)
        return False
    logger.debug("Deleted upload", path=str(path))
    return True


@contextmanager
def temporary_upload(path: Path) -> Iterator[Path]:
    """Yield ``path`` and remove it when the block exits, whatever the outcome."""
    try:
        yield path
    finally:
        remove_upload(path)
