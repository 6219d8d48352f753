import logging
import math
import os
import xml.etree.ElementTree as ET
from PIL import ExifTags, Image, ImageOps

from tileserver.classes import ImageInfo, PyramidParameters
from tileserver.constants import Constants
from tileserver.utils.filesystem import FilesystemUtils

# orientations that swap width and height once applied
TRANSPOSING_ORIENTATIONS = {5, 6, 7, 8}


class ImageProcessor:
    """Pillow based imaging backend: reads source dimensions and writes DZI pyramids."""

    def __init__(self):
        self._logger = logging.getLogger(__name__)

    def inspect(self, path: str) -> ImageInfo:
        with Image.open(path) as image:
            width, height = image.size
            orientation = image.getexif().get(ExifTags.Base.Orientation)
            if orientation in TRANSPOSING_ORIENTATIONS:
                width, height = height, width

            return ImageInfo(
                width=width,
                height=height,
                format=image.format.lower() if image.format else None,
                size=os.path.getsize(path),
            )

    def build_pyramid(
        self, path: str, output_base: str, parameters: PyramidParameters
    ) -> None:
        """
        Writes a Deep Zoom pyramid for the image at `path`:
        - `<output_base>.dzi` with the XML descriptor
        - `<output_base>_files/<level>/<column>_<row>.<format>` for every tile

        Level 0 is a single pixel, the highest level is the source at full size.

        Args:
            path (str): the source image
            output_base (str): output path without extension
            parameters (PyramidParameters): tile size, overlap, output format and quality
        """
        tiles_dir = f"{output_base}{Constants.TILES_DIR_SUFFIX}"

        with Image.open(path) as source:
            image = ImageOps.exif_transpose(source)
            image = self._prepare_for_format(image, parameters.format)

            width, height = image.size
            max_level = self.calculate_dzi_level_count(width, height) - 1

            self._logger.debug(
                f"Writing {max_level + 1} levels for {width}x{height} image to '{tiles_dir}'"
            )

            # walk down from full size so every level is resized from the one above it
            level_image = image
            for level in range(max_level, -1, -1):
                level_size = self.calculate_level_size(
                    width, height, max_level - level
                )
                if level_image.size != level_size:
                    level_image = level_image.resize(
                        level_size, Image.Resampling.LANCZOS
                    )

                self._write_level(
                    level_image,
                    os.path.join(tiles_dir, str(level)),
                    parameters,
                )

        self.write_descriptor(
            f"{output_base}.{Constants.DESCRIPTOR_EXTENSION}",
            width=width,
            height=height,
            parameters=parameters,
        )

    def _write_level(
        self, image: Image.Image, level_dir: str, parameters: PyramidParameters
    ):
        FilesystemUtils.ensure_dir(level_dir)

        tile_size = parameters.tile_size
        overlap = parameters.overlap
        columns = math.ceil(image.width / tile_size)
        rows = math.ceil(image.height / tile_size)

        save_properties = self._get_save_properties(parameters)

        for column in range(columns):
            for row in range(rows):
                box = (
                    max(column * tile_size - overlap, 0),
                    max(row * tile_size - overlap, 0),
                    min((column + 1) * tile_size + overlap, image.width),
                    min((row + 1) * tile_size + overlap, image.height),
                )
                tile = image.crop(box)
                tile.save(
                    os.path.join(level_dir, f"{column}_{row}.{parameters.format}"),
                    **save_properties,
                )

    @staticmethod
    def _prepare_for_format(image: Image.Image, format: str) -> Image.Image:
        if format != "jpeg":
            if image.mode not in ("RGB", "RGBA", "L", "LA"):
                return image.convert("RGBA")
            return image

        if image.mode in ("RGBA", "LA") or (
            image.mode == "P" and "transparency" in image.info
        ):
            # jpeg can't do transparency, flatten onto white
            rgba_image = image.convert("RGBA")
            background = Image.new("RGB", rgba_image.size, (255, 255, 255))
            background.paste(rgba_image, mask=rgba_image.split()[3])
            return background

        if image.mode not in ("RGB", "L"):
            return image.convert("RGB")

        return image

    @staticmethod
    def _get_save_properties(parameters: PyramidParameters) -> dict:
        if parameters.format == "png":
            return {"format": "PNG"}

        return {"format": parameters.format.upper(), "quality": parameters.quality}

    @staticmethod
    def write_descriptor(
        filename: str, *, width: int, height: int, parameters: PyramidParameters
    ):
        root = ET.Element(
            "Image",
            {
                "xmlns": Constants.DZI_XMLNS,
                "Format": parameters.format,
                "Overlap": str(parameters.overlap),
                "TileSize": str(parameters.tile_size),
            },
        )
        ET.SubElement(root, "Size", {"Height": str(height), "Width": str(width)})

        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ")
        tree.write(filename, encoding="utf-8", xml_declaration=True)

    @staticmethod
    def calculate_max_level(width: int, height: int, tile_size: int) -> int:
        # a source smaller than a single tile still has level 0
        return max(0, math.ceil(math.log2(max(width, height) / tile_size)))

    @staticmethod
    def calculate_dzi_level_count(width: int, height: int) -> int:
        # ceil(log2(n)) + 1 levels, down to a single pixel
        return (max(width, height) - 1).bit_length() + 1

    @staticmethod
    def calculate_level_size(
        width: int, height: int, steps_down: int
    ) -> tuple[int, int]:
        scale = 2**steps_down
        return max(1, math.ceil(width / scale)), max(1, math.ceil(height / scale))
