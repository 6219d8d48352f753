import os

import pytest

from tileserver.utils.filesystem import FilesystemUtils


def test_ensure_dir_creates_parents(tmp_path):
    path = tmp_path / "a" / "b" / "c"

    FilesystemUtils.ensure_dir(str(path))

    assert path.is_dir()


def test_ensure_dir_twice_is_a_noop(tmp_path):
    path = tmp_path / "tiles"
    FilesystemUtils.ensure_dir(str(path))
    (path / "keep.txt").write_text("x")

    FilesystemUtils.ensure_dir(str(path))

    assert os.listdir(path) == ["keep.txt"]


def test_delete_file(tmp_path):
    path = tmp_path / "file.bin"
    path.write_bytes(b"data")

    FilesystemUtils.delete_file(str(path))
    FilesystemUtils.delete_file(str(path))

    assert not path.exists()


def test_delete_directory_removes_whole_tree(tmp_path):
    root = tmp_path / "image"
    (root / "image_files" / "0").mkdir(parents=True)
    (root / "image_files" / "0" / "0_0.jpeg").write_bytes(b"tile")
    (root / "metadata.json").write_text("{}")

    FilesystemUtils.delete_directory(str(root))

    assert not root.exists()
    assert tmp_path.exists()


def test_delete_missing_directory_is_a_noop(tmp_path):
    FilesystemUtils.delete_directory(str(tmp_path / "missing"))


@pytest.mark.parametrize(
    "filename, extension",
    [
        ("photo.JPG", "jpg"),
        ("archive.tar.gz", "gz"),
        ("slide.tiff", "tiff"),
        ("noextension", ""),
        (".hidden", ""),
        ("dir.d/file", ""),
    ],
)
def test_get_file_extension(filename, extension):
    assert FilesystemUtils.get_file_extension(filename) == extension
