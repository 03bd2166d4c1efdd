# services/storage.py
import logging
import shutil
import uuid
from pathlib import Path

from fastapi import UploadFile

logger = logging.getLogger(__name__)

THUMBNAILS_DIR = "course-thumbnails"
VIDEOS_DIR = "lesson-videos"
MATERIALS_DIR = "lesson-materials"


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else ""


class LocalFileStorage:
    """Stores uploads on the local disk below ``root``.

    Returned paths are relative to ``root`` and are what gets persisted.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def store(self, upload: UploadFile, directory: str) -> str:
        ext = file_extension(upload.filename or "")
        name = f"{uuid.uuid4().hex}.{ext}" if ext else uuid.uuid4().hex
        target = self.root / directory / name
        target.parent.mkdir(parents=True, exist_ok=True)

        upload.file.seek(0)
        with target.open("wb") as out:
            shutil.copyfileobj(upload.file, out)

        relative = f"{directory}/{name}"
        logger.info(f"Stored upload {upload.filename!r} as {relative}")
        return relative

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    def delete(self, path: str) -> None:
        (self.root / path).unlink(missing_ok=True)
