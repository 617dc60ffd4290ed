"""FastAPI entrypoint for the HeveaGuard backend service."""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from . import __version__
from .config import Settings, get_settings
from .routes import predict, stream
from .schemas import HealthResponse
from .services.classifier import ClassifierModel, load_classifier
from .utils.logger import get_logger

logger = get_logger(__name__)

ClassifierLoader = Callable[[Settings], ClassifierModel]


def create_app(
    settings: Optional[Settings] = None,
    loader: ClassifierLoader = load_classifier,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
        logger.info("Loading classifier", path=str(settings.model_path))
        try:
            app.state.classifier = await run_in_threadpool(loader, settings)
        except Exception as exc:
            logger.error("Failed to load model; serving in not-ready state", error=str(exc))
        yield
        logger.info("Shutting down", active_connections=len(app.state.connections))

    app = FastAPI(title="HeveaGuard Leaf Disease API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.classifier = None
    app.state.connections = stream.ConnectionRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(predict.router, tags=["vision"])
    app.include_router(stream.router, tags=["stream"])

    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def healthcheck(request: Request) -> HealthResponse:
        """Liveness plus model readiness and open stream count."""
        state = request.app.state
        return HealthResponse(
            status="ok",
            modelLoaded=state.classifier is not None,
            activeConnections=len(state.connections),
        )

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run("heveaguard.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    run()
