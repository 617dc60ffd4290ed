"""Configuration management for HeveaGuard backend."""
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_LABELS = "Oidium Heveae,Healthy,Anthracnose,Leaf Spot"


class Settings(BaseSettings):
    environment: str = Field("development", alias="HEVEAGUARD_ENV")
    cors_origins_raw: str = Field("*", alias="CORS_ORIGINS")
    host: str = Field("0.0.0.0", alias="HEVEAGUARD_HOST")
    port: int = Field(8080, alias="PORT")
    model_dir: str = Field("models", alias="HEVEAGUARD_MODEL_DIR")
    model_filename: str = "vision/heveaguard_classifier.ts"
    model_name: str = "heveaguard-leaf-classifier"
    model_version: str = "1.0.0"
    labels_raw: str = Field(DEFAULT_LABELS, alias="HEVEAGUARD_LABELS")
    image_size: int = 224
    confidence_threshold: float = 0.6
    upload_dir: str = Field("uploads", alias="HEVEAGUARD_UPLOAD_DIR")
    max_upload_bytes: int = 5 * 1024 * 1024

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        populate_by_name = True
        protected_namespaces = ()

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin]

    @property
    def labels(self) -> List[str]:
        return [label.strip() for label in self.labels_raw.split(",") if label.strip()]

    @property
    def model_path(self) -> Path:
        return Path(self.model_dir) / self.model_filename


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
