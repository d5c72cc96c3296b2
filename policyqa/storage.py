"""Local file storage for uploaded documents."""
import mimetypes
import time
from pathlib import Path

import structlog

from policyqa import config
from policyqa.db import ChunkStore
from policyqa.models import Document

logger = structlog.get_logger()

MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".md": "text/markdown",
}


def guess_media_type(file_name: str) -> str:
    """Media type from the file extension, application/octet-stream if unknown."""
    suffix = Path(file_name).suffix.lower()
    if suffix in MEDIA_TYPES:
        return MEDIA_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or "application/octet-stream"


class DocumentStorage:
    """Writes uploads to disk and registers them as documents."""

    def __init__(self, store: ChunkStore, upload_dir: Path = None):
        self.store = store
        self.upload_dir = Path(upload_dir or config.UPLOAD_DIR)

    def store_file(self, original_name: str, data: bytes) -> Document:
        """Save uploaded bytes and record an UPLOADED document.

        The stored name is prefixed with a millisecond timestamp so repeated
        uploads of the same file never collide.
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        safe_name = Path(original_name).name or "upload"
        target = self.upload_dir / f"{int(time.time() * 1000)}_{safe_name}"
        target.write_bytes(data)

        logger.info("file_stored", path=str(target), size=len(data))

        return self.store.insert_document(
            file_name=safe_name,
            file_type=guess_media_type(safe_name),
            file_path=str(target),
        )
