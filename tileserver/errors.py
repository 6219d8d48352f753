from http import HTTPStatus


class TileServerError(Exception):
    """Base class for all errors the tile store raises on purpose.

    The HTTP layer answers with ``status_code`` and the error message.
    """

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidImageId(TileServerError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid image id"


class InvalidTileOptions(TileServerError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "Invalid tile generation options"


class UploadRejected(TileServerError):
    status_code = HTTPStatus.BAD_REQUEST
    default_message = "No file uploaded"


class UploadTooLarge(TileServerError):
    status_code = HTTPStatus.REQUEST_ENTITY_TOO_LARGE
    default_message = "File too large"


class ImageAlreadyExists(TileServerError):
    status_code = HTTPStatus.CONFLICT
    default_message = "Image already exists"


class TileGenerationFailed(TileServerError):
    default_message = "Failed to generate tiles"


class UnreadableImage(TileGenerationFailed):
    default_message = "Unable to read image dimensions"


class CorruptMetadata(TileServerError):
    default_message = "Metadata could not be decoded"


class NotFoundError(TileServerError):
    status_code = HTTPStatus.NOT_FOUND
    default_message = "Resource not found"


class TileNotFound(NotFoundError):
    default_message = "Tile not found"


class DescriptorNotFound(NotFoundError):
    default_message = "DZI descriptor not found"


class MetadataNotFound(NotFoundError):
    default_message = "Metadata not found"


class ImageNotFound(NotFoundError):
    default_message = "Image not found"
