"""
Poster file storage for catalog books.
Generates unique filenames, recognises image content and writes uploads to disk.
"""

import uuid
from io import BytesIO
from pathlib import Path
from typing import Union

import structlog
from PIL import Image, UnidentifiedImageError
from starlette.datastructures import UploadFile

logger = structlog.get_logger(__name__)


class PosterStorage:
    """
    Stores uploaded poster images under a single upload directory.
    Storage is not transactional with catalog inserts.
    """

    def __init__(self, upload_path: Union[str, Path], max_size: int):
        """
        Initialize poster storage.

        Args:
            upload_path: Directory receiving poster files
            max_size: Largest accepted poster in bytes
        """
        self.upload_path = Path(upload_path)
        self.max_size = max_size

    @staticmethod
    def generate_unique_filename(upload: UploadFile) -> str:
        """Prefix the original file name with a random UUID."""
        original_name = Path(upload.filename or "").name
        return f"{uuid.uuid4()}.{original_name}"

    async def is_image_content(self, upload: UploadFile) -> bool:
        """
        Check that the uploaded bytes decode as an image no larger than
        max_size. At most max_size + 1 bytes are read.

        The upload is rewound afterwards so it can still be stored.
        """
        content = await upload.read(self.max_size + 1)
        await upload.seek(0)

        if not content:
            return False

        if len(content) > self.max_size:
            logger.warning("Poster upload too large", filename=upload.filename, max_size=self.max_size)
            return False

        try:
            with Image.open(BytesIO(content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError):
            logger.debug("Upload is not a recognised image", filename=upload.filename)
            return False

        return True

    async def store(self, upload: UploadFile, filename: str) -> Path:
        """
        Write an uploaded poster to the upload directory.

        Args:
            upload: Uploaded poster
            filename: Target filename, usually from generate_unique_filename

        Returns:
            Path of the stored file

        Raises:
            OSError: If the file is too large or cannot be written
        """
        content = await upload.read()
        await upload.seek(0)

        if len(content) > self.max_size:
            raise OSError(f"Poster file exceeds {self.max_size} bytes")

        self.upload_path.mkdir(parents=True, exist_ok=True)
        target = self.upload_path / filename
        target.write_bytes(content)

        logger.info("Poster file stored", filename=filename, size=len(content))
        return target
