import os
import re
import random
import time
from typing import Union

from tileserver.errors import InvalidImageId
from tileserver.utils.filesystem import FilesystemUtils

MAX_ID_LENGTH = 200
MAX_STEM_LENGTH = 150

_VALID_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_UNSAFE_STEM_CHARS = re.compile(r"[^A-Za-z0-9_-]+")
_UNSAFE_EXTENSION_CHARS = re.compile(r"[^A-Za-z0-9]+")


class IdentifierUtils:
    @staticmethod
    def validate_image_id(image_id: str) -> str:
        if (
            not image_id
            or len(image_id) > MAX_ID_LENGTH
            or ".." in image_id
            or not _VALID_ID.match(image_id)
        ):
            raise InvalidImageId(f"Invalid image id '{image_id}'")

        return image_id

    @classmethod
    def derive_image_id(cls, filename: str) -> str:
        """
        Derives the public image id from an upload filename by dropping the directory
        part and the last extension, e.g. 'scans/slide-1.tif' -> 'slide-1'.

        Raises:
            InvalidImageId: if the remaining name isn't safe to use as a directory name
        """
        stem, _ = os.path.splitext(os.path.basename(filename))
        return cls.validate_image_id(stem)

    @staticmethod
    def safe_upload_filename(
        original_name: str,
        timestamp_ms: Union[int, None] = None,
        suffix: Union[int, None] = None,
    ) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        if suffix is None:
            suffix = random.randint(0, 10**9)

        name = os.path.basename(original_name or "")
        stem = os.path.splitext(name)[0]
        stem = _UNSAFE_STEM_CHARS.sub("_", stem).strip("_-")[:MAX_STEM_LENGTH] or "upload"
        extension = _UNSAFE_EXTENSION_CHARS.sub(
            "", FilesystemUtils.get_file_extension(name)
        )

        filename = f"{stem}-{timestamp_ms}-{suffix}"
        if extension:
            filename = f"{filename}.{extension}"

        return filename
