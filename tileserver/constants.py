class Constants:
    DZI_XMLNS = "http://schemas.microsoft.com/deepzoom/2008"

    OUTPUT_FORMATS = ["jpeg", "png", "webp"]
    # order matters, the first existing file wins
    TILE_EXTENSIONS = ["jpeg", "jpg", "png", "webp"]

    DEFAULT_TILE_SIZE = 256
    DEFAULT_OVERLAP = 1
    DEFAULT_FORMAT = "jpeg"
    DEFAULT_QUALITY = 80
    DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024
    DEFAULT_ALLOWED_UPLOAD_CONTENT_TYPES = [
        "image/jpeg",
        "image/png",
        "image/tiff",
        "image/webp",
    ]

    METADATA_FILENAME = "metadata.json"
    PYRAMID_BASENAME = "image"
    DESCRIPTOR_EXTENSION = "dzi"
    TILES_DIR_SUFFIX = "_files"

    API_PREFIX = "/api/images"

    @classmethod
    def get_descriptor_filename(cls) -> str:
        return f"{cls.PYRAMID_BASENAME}.{cls.DESCRIPTOR_EXTENSION}"

    @classmethod
    def get_tiles_dirname(cls) -> str:
        return f"{cls.PYRAMID_BASENAME}{cls.TILES_DIR_SUFFIX}"

    @classmethod
    def get_dzi_url(cls, image_id: str) -> str:
        return f"{cls.API_PREFIX}/{image_id}/dzi"

    @classmethod
    def get_tiles_url(cls, image_id: str) -> str:
        return f"{cls.API_PREFIX}/{image_id}/tiles"
