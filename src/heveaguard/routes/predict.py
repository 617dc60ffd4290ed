"""Endpoints for uploaded-image classification."""
from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import JSONResponse, PlainTextResponse

from ..errors import BadInputError, InferenceError, NotReadyError, UploadTooLargeError
from ..schemas import ErrorResponse, PredictionResult
from ..services.inference import run_inference
from ..services.resources import temporary_upload
from ..services.uploads import save_upload
from ..utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/predict",
    response_model=PredictionResult,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def predict_leaf(request: Request, image: UploadFile | None = File(default=None)):
    """Classify one uploaded leaf image; the stored upload is always removed."""
    settings = request.app.state.settings
    classifier = request.app.state.classifier
    if classifier is None:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(NotReadyError()))

    if image is None:
        return _error(status.HTTP_400_BAD_REQUEST, "No image uploaded")

    try:
        upload_path = await save_upload(image, Path(settings.upload_dir), settings.max_upload_bytes)
    except UploadTooLargeError as exc:
        return _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, str(exc))
    except BadInputError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    with temporary_upload(upload_path):
        logger.info("Processing image", filename=image.filename or upload_path.name)
        try:
            result = run_inference(classifier, upload_path.read_bytes(), settings)
        except (InferenceError, OSError) as exc:
            logger.error("Prediction error", error=str(exc), kind=type(exc).__name__)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Prediction failed", str(exc))

    logger.info(
        "Top prediction",
        className=result.topPrediction.className,
        probability=result.topPrediction.probability,
    )
    return result


@router.get("/predict", response_class=PlainTextResponse)
async def predict_liveness(request: Request) -> str:
    """Plain-text liveness line kept for clients that poll the upload URL."""
    return f"Server is running and listening on port {request.app.state.settings.port}"
