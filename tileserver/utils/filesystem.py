import os
import shutil


class FilesystemUtils:
    @staticmethod
    def ensure_dir(path: str) -> str:
        os.makedirs(path, exist_ok=True)
        return path

    @staticmethod
    def delete_file(path: str):
        if os.path.isfile(path):
            os.remove(path)

    @staticmethod
    def delete_directory(path: str):
        """Removes a directory tree, files before their parent directories. Missing paths are ignored."""
        if not os.path.isdir(path):
            return

        shutil.rmtree(path)

    @staticmethod
    def get_file_extension(filename: str) -> str:
        return os.path.splitext(filename)[1].lower().lstrip(".")
