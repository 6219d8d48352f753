from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tileserver.constants import Constants


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageRecord(CamelModel):
    id: str
    filename: str
    original_name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    format: str
    size: int = Field(ge=0)
    tile_size: int = Field(gt=0)
    overlap: int = Field(ge=0)
    max_level: int = Field(ge=0)
    dzi_url: str
    tiles_url: str
    uploaded_at: datetime


class DziSize(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    height: str = Field(alias="Height")
    width: str = Field(alias="Width")


class DziImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    xmlns: str = Constants.DZI_XMLNS
    url: str = Field(alias="Url")
    format: str = Field(alias="Format")
    overlap: str = Field(alias="Overlap")
    tile_size: str = Field(alias="TileSize")
    size: DziSize = Field(alias="Size")


class DziInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: DziImage = Field(alias="Image")


class ImageListResponse(BaseModel):
    count: int
    images: list[ImageRecord]


class UploadResponse(BaseModel):
    message: str
    data: ImageRecord


class MessageResponse(BaseModel):
    message: str


class HealthCheckResponse(BaseModel):
    status: str = "OK"
    timestamp: datetime
    uptime: float
