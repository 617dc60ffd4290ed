"""WebSocket endpoint classifying a stream of independent frames."""
from __future__ import annotations

import base64
import binascii
from typing import Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..config import Settings
from ..errors import BadInputError, DecodeError, InferenceError, NotReadyError
from ..schemas import FrameMessage, StreamError, StreamPrediction
from ..services.classifier import ClassifierModel
from ..services.inference import run_inference
from ..services.predictor import utc_timestamp
from ..utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


class ConnectionRegistry:
    """Tracks the WebSocket connections that are currently open."""

    def __init__(self) -> None:
        self._active: Set[WebSocket] = set()

    def add(self, websocket: WebSocket) -> None:
        self._active.add(websocket)

    def discard(self, websocket: WebSocket) -> None:
        self._active.discard(websocket)

    def __len__(self) -> int:
        return len(self._active)


def decode_frame_payload(frame_data: str | None) -> bytes:
    """Decode a base64 frame payload, accepting an optional data-URL prefix."""
    if not frame_data:
        raise DecodeError("Frame payload is empty")
    payload = frame_data
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 frame payload: {exc}") from exc
    if not image_bytes:
        raise DecodeError("Frame payload is empty")
    return image_bytes


def parse_frame_message(raw: str) -> FrameMessage:
    try:
        message = FrameMessage.model_validate_json(raw)
    except ValidationError as exc:
        raise BadInputError(f"Malformed frame message: {exc.errors()[0]['msg']}") from exc
    if message.type != "frame":
        raise BadInputError(f"Unsupported message type: {message.type}")
    return message


def handle_frame_message(
    raw: str, classifier: ClassifierModel | None, settings: Settings
) -> Dict[str, object]:
    """Classify one inbound message and return the reply; never raises for bad frames."""
    try:
        if classifier is None:
            raise NotReadyError()
        message = parse_frame_message(raw)
        image_bytes = decode_frame_payload(message.frameData)
        result = run_inference(classifier, image_bytes, settings)
    except InferenceError as exc:
        logger.warning("Frame failed", error=str(exc), kind=type(exc).__name__)
        return StreamError(error=str(exc)).model_dump()
    except Exception as exc:
        logger.opt(exception=exc).error("Unexpected frame failure", kind=type(exc).__name__)
        return StreamError(error=f"Prediction failed: {exc}").model_dump()

    return StreamPrediction(
        predictions=result.predictions,
        topPrediction=result.topPrediction,
        confidence=result.confidence,
        timestamp=utc_timestamp(),
    ).model_dump()


async def _receive_text(websocket: WebSocket) -> str:
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


@router.websocket("/stream")
async def stream_frames(websocket: WebSocket) -> None:
    """Reply to every frame on the same connection, in arrival order."""
    state = websocket.app.state
    await websocket.accept()
    state.connections.add(websocket)
    logger.info("Stream connected", active=len(state.connections))
    try:
        while True:
            raw = await _receive_text(websocket)
            reply = handle_frame_message(raw, state.classifier, state.settings)
            await websocket.send_json(reply)
    except WebSocketDisconnect as exc:
        logger.info("Stream disconnected", code=exc.code)
    finally:
        state.connections.discard(websocket)
        logger.info("Stream closed", active=len(state.connections))
