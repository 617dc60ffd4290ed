"""Route modules for FastAPI application."""
from . import predict, stream

__all__ = ["predict", "stream"]
