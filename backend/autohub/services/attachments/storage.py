"""
Local attachment storage for order documents, payment receipts and part images.

Files are written below a configured base directory with generated names;
callers keep the returned relative path and hand it back for deletion.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import aiofiles
import aiofiles.os

from autohub.core.exceptions import AttachmentRejectedError, StorageError
from autohub.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """File received with a request, fully read into memory."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @property
    def size(self) -> int:
        return len(self.content)


class AttachmentStorage:
    """
    Stores uploaded files on the local filesystem.

    Attributes:
        base_dir: Root directory every stored path is relative to
        max_size_bytes: Per-file size cap, None for no limit
    """

    def __init__(self, base_dir: str | Path, max_size_bytes: Optional[int] = None):
        self.base_dir = Path(base_dir)
        self.max_size_bytes = max_size_bytes

    def validate(self, upload: UploadedFile, allowed_extensions: Iterable[str]) -> None:
        """
        Check an upload before anything is written.

        Raises:
            AttachmentRejectedError: If the extension is not allowed, the file
                is empty or it exceeds the size cap
        """
        allowed = sorted(allowed_extensions)
        if upload.extension not in allowed:
            logger.warning(
                "Attachment rejected - extension not allowed",
                filename=upload.filename,
                extension=upload.extension,
            )
            raise AttachmentRejectedError(
                f"Invalid file type {upload.extension or '(none)'}. "
                f"Allowed types: {', '.join(allowed)}",
                filename=upload.filename,
                allowed_extensions=allowed,
            )

        if upload.size == 0:
            raise AttachmentRejectedError("Uploaded file is empty", filename=upload.filename)

        if self.max_size_bytes is not None and upload.size > self.max_size_bytes:
            logger.warning(
                "Attachment rejected - too large",
                filename=upload.filename,
                size=upload.size,
                max_size=self.max_size_bytes,
            )
            raise AttachmentRejectedError(
                "Uploaded file exceeds the maximum allowed size",
                filename=upload.filename,
                size=upload.size,
                max_size=self.max_size_bytes,
            )

    def validate_all(
        self,
        uploads: Iterable[UploadedFile],
        allowed_extensions: Iterable[str],
    ) -> None:
        allowed = list(allowed_extensions)
        for upload in uploads:
            self.validate(upload, allowed)

    async def save(self, upload: UploadedFile, directory: str) -> str:
        """
        Write an upload below ``directory`` under a generated name.

        Returns:
            Path of the stored file relative to the base directory

        Raises:
            StorageError: If the file cannot be written
        """
        relative = Path(directory) / f"{uuid.uuid4().hex}{upload.extension}"
        target = self._resolve(relative)

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(upload.content)
        except OSError as e:
            logger.error(
                "Failed to store attachment",
                filename=upload.filename,
                directory=directory,
                error=str(e),
            )
            raise StorageError(
                "Failed to store attachment",
                filename=upload.filename,
                error=str(e),
            ) from e

        logger.info(
            "Attachment stored",
            filename=upload.filename,
            path=relative.as_posix(),
            size=upload.size,
        )
        return relative.as_posix()

    async def save_all(self, uploads: Iterable[UploadedFile], directory: str) -> list[str]:
        return [await self.save(upload, directory) for upload in uploads]

    async def delete(self, path: str) -> None:
        """
        Remove a stored file. A file that is already gone is ignored.

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        target = self._resolve(Path(path))
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            logger.debug("Attachment already removed", path=path)
            return
        except OSError as e:
            logger.error("Failed to delete attachment", path=path, error=str(e))
            raise StorageError("Failed to delete attachment", path=path, error=str(e)) from e

        logger.info("Attachment deleted", path=path)

    def _resolve(self, relative: Path) -> Path:
        base = self.base_dir.resolve()
        target = (base / relative).resolve()
        if not target.is_relative_to(base):
            raise AttachmentRejectedError(
                "Attachment path escapes the storage directory",
                path=relative.as_posix(),
            )
        return target
