import logging
import os
from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Union

from pydantic import ValidationError

from tileserver.classes import ImagingBackend, TileGenerationOptions
from tileserver.config import Settings
from tileserver.constants import Constants
from tileserver.errors import (
    CorruptMetadata,
    DescriptorNotFound,
    ImageAlreadyExists,
    ImageNotFound,
    InvalidImageId,
    MetadataNotFound,
    TileGenerationFailed,
    TileNotFound,
    UnreadableImage,
)
from tileserver.models import DziImage, DziInfo, DziSize, ImageRecord
from tileserver.utils.filesystem import FilesystemUtils
from tileserver.utils.identifier import IdentifierUtils
from tileserver.utils.image import ImageProcessor
from tileserver.utils.locks import KeyedLock


class TileStore:
    """
    Owns the tiles directory: one subdirectory per image holding its metadata record,
    the DZI descriptor and the tile pyramid. Nothing is kept in memory between calls,
    the directory is the only source of truth.
    """

    _tiles_dir: str
    _logger: logging.Logger

    def __init__(
        self,
        settings: Settings,
        backend: Union[ImagingBackend, None] = None,
    ):
        self._logger = logging.getLogger(__name__)
        self._settings = settings
        self._backend = backend or ImageProcessor()
        self._locks = KeyedLock()
        self._tiles_dir = os.path.abspath(settings.tiles_dir)

        FilesystemUtils.ensure_dir(self._tiles_dir)
        self._logger.info(
            f"Created tile store with tiles directory='{self._tiles_dir}'"
        )

    @property
    def tiles_dir(self) -> str:
        return self._tiles_dir

    def generate_tiles(
        self,
        file_path: str,
        filename: str,
        options: Union[TileGenerationOptions, None] = None,
    ) -> ImageRecord:
        image_id = IdentifierUtils.derive_image_id(filename)
        output_dir = self._get_image_dir(image_id)

        with self._locks.hold(image_id):
            if os.path.isfile(self._get_metadata_filename(image_id)):
                raise ImageAlreadyExists(f"Image with id='{image_id}' already exists")

            FilesystemUtils.ensure_dir(output_dir)
            try:
                return self._generate_into(
                    image_id, output_dir, file_path, filename, options
                )
            except Exception:
                self._logger.warning(
                    f"Generating tiles for '{image_id}' failed, removing '{output_dir}'"
                )
                FilesystemUtils.delete_directory(output_dir)
                raise

    def _generate_into(
        self,
        image_id: str,
        output_dir: str,
        file_path: str,
        filename: str,
        options: Union[TileGenerationOptions, None],
    ) -> ImageRecord:
        start = perf_counter()

        try:
            info = self._backend.inspect(file_path)
        except Exception as e:
            raise TileGenerationFailed(f"Failed to generate tiles: {e}") from e

        if not info.width or not info.height:
            raise UnreadableImage()

        parameters = (options or TileGenerationOptions()).resolve(
            self._settings.tile_defaults
        )

        self._logger.info(
            f"Generating tiles for '{image_id}' ({info.width}x{info.height}, "
            f"tile size {parameters.tile_size}, overlap {parameters.overlap}, "
            f"{parameters.format} at quality {parameters.quality})"
        )

        try:
            self._backend.build_pyramid(
                file_path,
                os.path.join(output_dir, Constants.PYRAMID_BASENAME),
                parameters,
            )
        except Exception as e:
            raise TileGenerationFailed(f"Failed to generate tiles: {e}") from e

        record = ImageRecord(
            id=image_id,
            filename=filename,
            original_name=os.path.basename(file_path),
            width=info.width,
            height=info.height,
            format=info.format or "unknown",
            size=info.size or 0,
            tile_size=parameters.tile_size,
            overlap=parameters.overlap,
            max_level=ImageProcessor.calculate_max_level(
                info.width, info.height, parameters.tile_size
            ),
            dzi_url=Constants.get_dzi_url(image_id),
            tiles_url=Constants.get_tiles_url(image_id),
            uploaded_at=datetime.now(timezone.utc),
        )
        self._save_metadata(record)

        end = perf_counter()
        self._logger.info(
            f"Generated tiles for '{image_id}' in {timedelta(seconds=end - start)}"
        )

        return record

    def get_tile(self, image_id: str, level: int, column: int, row: int) -> bytes:
        level_dir = os.path.join(
            self._get_image_dir(image_id), Constants.get_tiles_dirname(), str(level)
        )

        for extension in Constants.TILE_EXTENSIONS:
            filename = os.path.join(level_dir, f"{column}_{row}.{extension}")
            if os.path.isfile(filename):
                with open(filename, "rb") as f:
                    return f.read()

        raise TileNotFound()

    def get_dzi_descriptor(self, image_id: str) -> str:
        filename = os.path.join(
            self._get_image_dir(image_id), Constants.get_descriptor_filename()
        )

        if not os.path.isfile(filename):
            raise DescriptorNotFound()

        with open(filename, "r", encoding="utf-8") as f:
            return f.read()

    def get_dzi_json(self, image_id: str) -> DziInfo:
        metadata = self.get_metadata(image_id)

        return DziInfo(
            image=DziImage(
                url=f"{Constants.get_tiles_url(image_id)}/",
                # viewers get jpeg framing no matter what the tiles were encoded as
                format=Constants.DEFAULT_FORMAT,
                overlap=str(metadata.overlap),
                tile_size=str(metadata.tile_size),
                size=DziSize(height=str(metadata.height), width=str(metadata.width)),
            )
        )

    def get_metadata(self, image_id: str) -> ImageRecord:
        filename = self._get_metadata_filename(image_id)

        if not os.path.isfile(filename):
            raise MetadataNotFound()

        # bytes, so bad encodings surface as a ValidationError too
        with open(filename, "rb") as f:
            data = f.read()

        try:
            return ImageRecord.model_validate_json(data)
        except ValidationError as e:
            raise CorruptMetadata(
                f"Metadata of image '{image_id}' could not be decoded"
            ) from e

    def list_images(self) -> list[ImageRecord]:
        images = []

        if not os.path.isdir(self._tiles_dir):
            return images

        with os.scandir(self._tiles_dir) as entries:
            for entry in entries:
                if not entry.is_dir():
                    continue

                try:
                    images.append(self.get_metadata(entry.name))
                except (MetadataNotFound, CorruptMetadata, InvalidImageId) as e:
                    self._logger.warning(f"Skipping '{entry.name}': {e}")

        return images

    def delete_image(self, image_id: str):
        image_dir = self._get_image_dir(image_id)

        with self._locks.hold(image_id):
            if not os.path.isdir(image_dir):
                raise ImageNotFound()

            FilesystemUtils.delete_directory(image_dir)

        self._logger.info(f"Deleted image '{image_id}'")

    def _save_metadata(self, record: ImageRecord):
        with open(self._get_metadata_filename(record.id), "w", encoding="utf-8") as f:
            f.write(record.model_dump_json(by_alias=True, indent=2))

    def _get_image_dir(self, image_id: str) -> str:
        return os.path.join(self._tiles_dir, IdentifierUtils.validate_image_id(image_id))

    def _get_metadata_filename(self, image_id: str) -> str:
        return os.path.join(self._get_image_dir(image_id), Constants.METADATA_FILENAME)
