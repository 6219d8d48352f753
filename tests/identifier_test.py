import pytest

from tileserver.errors import InvalidImageId
from tileserver.utils.identifier import IdentifierUtils


@pytest.mark.parametrize(
    "filename, image_id",
    [
        ("photo.jpg", "photo"),
        ("archive.tar.gz", "archive.tar"),
        ("noextension", "noextension"),
        ("uploads/slide-1700000000000-42.tif", "slide-1700000000000-42"),
        ("../../escape.png", "escape"),
    ],
)
def test_derive_image_id(filename, image_id):
    assert IdentifierUtils.derive_image_id(filename) == image_id


@pytest.mark.parametrize(
    "image_id",
    ["", ".", "..", ".hidden", "a..b", "with space", "semi;colon", "x" * 201],
)
def test_invalid_image_ids_are_rejected(image_id):
    with pytest.raises(InvalidImageId):
        IdentifierUtils.validate_image_id(image_id)


def test_derive_image_id_rejects_extension_only_names():
    with pytest.raises(InvalidImageId):
        IdentifierUtils.derive_image_id(".png")


@pytest.mark.parametrize(
    "original_name, filename",
    [
        ("photo.png", "photo-1700000000000-42.png"),
        ("My Photo (1).JPG", "My_Photo_1-1700000000000-42.jpg"),
        ("../../etc/passwd", "passwd-1700000000000-42"),
        ("???.png", "upload-1700000000000-42.png"),
        (None, "upload-1700000000000-42"),
    ],
)
def test_safe_upload_filename(original_name, filename):
    assert (
        IdentifierUtils.safe_upload_filename(
            original_name, timestamp_ms=1700000000000, suffix=42
        )
        == filename
    )


def test_safe_upload_filename_always_derives_a_valid_id():
    filename = IdentifierUtils.safe_upload_filename("-" * 10 + "é" * 300 + ".webp")

    image_id = IdentifierUtils.derive_image_id(filename)

    assert image_id.startswith("upload-")
