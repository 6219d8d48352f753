import io
import os

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tileserver.classes import ImageInfo, PyramidParameters
from tileserver.config import Settings
from tileserver.constants import Constants
from tileserver.routes import create_app
from tileserver.store import TileStore


class FakeImagingBackend:
    """Returns fixed dimensions and writes a minimal pyramid, remembering how it was called."""

    def __init__(
        self,
        width: int = 800,
        height: int = 600,
        format: str = "png",
        size: int = 2000,
        fail_inspect: Exception = None,
        fail_build: Exception = None,
    ):
        self.info = ImageInfo(width=width, height=height, format=format, size=size)
        self.fail_inspect = fail_inspect
        self.fail_build = fail_build
        self.inspected = []
        self.built = []

    def inspect(self, path: str) -> ImageInfo:
        self.inspected.append(path)
        if self.fail_inspect:
            raise self.fail_inspect
        return self.info

    def build_pyramid(
        self, path: str, output_base: str, parameters: PyramidParameters
    ) -> None:
        self.built.append((path, output_base, parameters))

        tiles_dir = os.path.join(f"{output_base}{Constants.TILES_DIR_SUFFIX}", "0")
        os.makedirs(tiles_dir, exist_ok=True)
        with open(os.path.join(tiles_dir, f"0_0.{parameters.format}"), "wb") as f:
            f.write(b"tile-0-0")

        if self.fail_build:
            raise self.fail_build

        with open(f"{output_base}.dzi", "w", encoding="utf-8") as f:
            f.write(
                f'<Image xmlns="{Constants.DZI_XMLNS}" Format="{parameters.format}" '
                f'Overlap="{parameters.overlap}" TileSize="{parameters.tile_size}">'
                f'<Size Height="{self.info.height}" Width="{self.info.width}"/></Image>'
            )


def make_image_bytes(width: int, height: int, format: str = "PNG", mode: str = "RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), "teal").save(buffer, format=format)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        tiles_dir=str(tmp_path / "tiles"),
        upload_dir=str(tmp_path / "uploads"),
        environment="production",
    )


@pytest.fixture
def backend() -> FakeImagingBackend:
    return FakeImagingBackend()


@pytest.fixture
def store(settings, backend) -> TileStore:
    return TileStore(settings, backend=backend)


@pytest.fixture
def client(settings, store) -> TestClient:
    return TestClient(create_app(settings, store))


@pytest.fixture
def source_image(tmp_path) -> str:
    path = tmp_path / "source.png"
    path.write_bytes(make_image_bytes(800, 600))
    return str(path)


@pytest.fixture
def make_store(settings):
    def factory(**backend_kwargs) -> tuple[TileStore, FakeImagingBackend]:
        backend = FakeImagingBackend(**backend_kwargs)
        return TileStore(settings, backend=backend), backend

    return factory


@pytest.fixture
def image_bytes():
    return make_image_bytes
