"""File intake for post thumbnails and user avatars."""

import logging
import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePath

from fastapi import UploadFile

from src.errors import APIError

logger = logging.getLogger(__name__)

# Anything outside this set is dropped from the client-supplied base name
UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def unique_filename(original_name: str) -> str:
    """Derive a collision-free name from an uploaded file's name.

    Keeps the original base name (directories and unsafe characters
    stripped), appends a random uuid4 suffix and preserves the extension.
    """
    base = PurePath(original_name.replace("\\", "/")).name
    stem, dot, extension = base.partition(".")
    if dot:
        extension = base.rsplit(".", 1)[-1]
    stem = UNSAFE_FILENAME_CHARS.sub("", stem)
    extension = UNSAFE_FILENAME_CHARS.sub("", extension)

    filename = f"{stem}{uuid.uuid4().hex}"
    if extension:
        filename = f"{filename}.{extension}"
    return filename


class FileIntake:
    """Validates uploads and stores them under a single directory."""

    def __init__(self, upload_dir: str | Path):
        self.upload_dir = Path(upload_dir)

    def path_for(self, filename: str) -> Path:
        return self.upload_dir / PurePath(filename).name

    async def read_upload(self, upload: UploadFile | None, max_bytes: int, label: str) -> bytes:
        """Read an upload fully, rejecting it if missing or over the size limit.

        Nothing is written here, so an oversized upload never reaches disk.
        """
        if upload is None or not upload.filename:
            raise APIError.validation(f"Please choose an image for the {label}")

        # One byte past the limit is enough to know it is too big
        data = await upload.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise APIError.validation(
                f"{label.capitalize()} too big. File should be less than {max_bytes} bytes."
            )
        return data

    @contextmanager
    def stored(self, original_name: str, data: bytes) -> Iterator[str]:
        """Write a file and yield its new name.

        If the block raises, the written file is removed again so a failed
        store write never leaves an unreferenced upload behind.
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = unique_filename(original_name)
        path = self.path_for(filename)
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write upload {filename}: {e}")
            raise APIError.server("Error uploading file") from e
        logger.info(f"Stored upload {filename} ({len(data)} bytes)")

        try:
            yield filename
        except BaseException:
            self.discard(filename)
            raise

    def remove(self, filename: str) -> None:
        """Remove a stored file; a file that is already gone counts as removed.

        Other OS errors propagate to the caller.
        """
        try:
            self.path_for(filename).unlink()
        except FileNotFoundError:
            logger.warning(f"Upload {filename} was already missing")

    def discard(self, filename: str | None) -> None:
        """Best-effort removal of a replaced or orphaned file."""
        if not filename:
            return
        try:
            self.remove(filename)
        except OSError as e:
            logger.error(f"Failed to delete upload {filename}: {e}")
