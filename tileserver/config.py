import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from tileserver.classes import PyramidParameters
from tileserver.constants import Constants

ENV_PREFIX = "TILESERVER"


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup and handed to the store and the app."""

    tiles_dir: str = "tiles"
    upload_dir: str = "uploads"
    tile_size: int = Constants.DEFAULT_TILE_SIZE
    overlap: int = Constants.DEFAULT_OVERLAP
    format: str = Constants.DEFAULT_FORMAT
    quality: int = Constants.DEFAULT_QUALITY
    max_file_size: int = Constants.DEFAULT_MAX_FILE_SIZE
    allowed_content_types: list[str] = field(
        default_factory=lambda: list(Constants.DEFAULT_ALLOWED_UPLOAD_CONTENT_TYPES)
    )
    cors_origin: str = "*"
    environment: str = "development"
    version: str = "local-dev"
    loglevel: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    def __post_init__(self):
        if self.tile_size <= 0:
            raise ValueError(f"Default tile size has to be positive, got {self.tile_size}")
        if self.overlap < 0:
            raise ValueError(f"Default overlap can't be negative, got {self.overlap}")
        if self.format not in Constants.OUTPUT_FORMATS:
            raise ValueError(
                f"Default tile format '{self.format}' is not one of {Constants.OUTPUT_FORMATS}"
            )
        if not 1 <= self.quality <= 100:
            raise ValueError(f"Default quality has to be between 1 and 100, got {self.quality}")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def tile_defaults(self) -> PyramidParameters:
        return PyramidParameters(
            tile_size=self.tile_size,
            overlap=self.overlap,
            format=self.format,
            quality=self.quality,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "Settings":
        if environ is None:
            environ = os.environ

        def getenv(name: str, default=None):
            return environ.get(f"{ENV_PREFIX}_{name}", default)

        allowed_content_types = [
            content_type.strip()
            for content_type in getenv(
                "ALLOWED_FORMATS",
                ",".join(Constants.DEFAULT_ALLOWED_UPLOAD_CONTENT_TYPES),
            ).split(",")
            if content_type.strip()
        ]

        return cls(
            tiles_dir=getenv("TILES_DIR", "tiles"),
            upload_dir=getenv("UPLOAD_DIR", "uploads"),
            tile_size=int(getenv("TILE_SIZE", Constants.DEFAULT_TILE_SIZE)),
            overlap=int(getenv("TILE_OVERLAP", Constants.DEFAULT_OVERLAP)),
            format=getenv("TILE_FORMAT", Constants.DEFAULT_FORMAT).lower(),
            quality=int(getenv("TILE_QUALITY", Constants.DEFAULT_QUALITY)),
            max_file_size=int(getenv("MAX_FILE_SIZE", Constants.DEFAULT_MAX_FILE_SIZE)),
            allowed_content_types=allowed_content_types,
            cors_origin=getenv("CORS_ORIGIN", "*"),
            environment=getenv("ENVIRONMENT", "development"),
            version=environ.get("APP_VERSION", "local-dev"),
            loglevel=str(
                getenv(
                    "LOG_LEVEL",
                    environ.get("UVICORN_LOG_LEVEL", logging.getLevelName(logging.INFO)),
                )
            ).upper(),
            host=getenv("HOST", "0.0.0.0"),
            port=int(getenv("PORT", 3000)),
        )
