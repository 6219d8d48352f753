from dataclasses import dataclass, replace
from typing import Protocol, Union

from fastapi.responses import Response

from tileserver.constants import Constants
from tileserver.errors import InvalidTileOptions


@dataclass(frozen=True)
class ImageInfo:
    width: Union[int, None]
    height: Union[int, None]
    format: Union[str, None]
    size: int


@dataclass(frozen=True)
class PyramidParameters:
    tile_size: int
    overlap: int
    format: str
    quality: int


@dataclass(frozen=True)
class TileGenerationOptions:
    """Per-upload overrides; anything left as None falls back to the configured defaults."""

    tile_size: Union[int, None] = None
    overlap: Union[int, None] = None
    format: Union[str, None] = None
    quality: Union[int, None] = None

    def __post_init__(self):
        if self.tile_size is not None and self.tile_size <= 0:
            raise InvalidTileOptions("Tile size has to be a positive integer!")

        if self.overlap is not None and self.overlap < 0:
            raise InvalidTileOptions("Overlap can't be negative!")

        if self.format is not None and self.format not in Constants.OUTPUT_FORMATS:
            raise InvalidTileOptions(
                f"Format has to be one of {Constants.OUTPUT_FORMATS}"
            )

        if self.quality is not None and not 1 <= self.quality <= 100:
            raise InvalidTileOptions("Quality has to be between 1 and 100!")

    def resolve(self, defaults: PyramidParameters) -> PyramidParameters:
        overrides = {
            "tile_size": self.tile_size,
            "overlap": self.overlap,
            "format": self.format,
            "quality": self.quality,
        }
        return replace(
            defaults, **{k: v for k, v in overrides.items() if v is not None}
        )


class ImagingBackend(Protocol):
    def inspect(self, path: str) -> ImageInfo: ...

    def build_pyramid(
        self, path: str, output_base: str, parameters: PyramidParameters
    ) -> None: ...


class TileResponse(Response):
    # tiles are always announced as jpeg, whatever they were encoded as
    media_type = "image/jpeg"


class DziXmlResponse(Response):
    media_type = "application/xml"
