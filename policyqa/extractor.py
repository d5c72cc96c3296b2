"""Plain-text extraction from PDF, Word and text files."""
import zipfile
from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import structlog
from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from policyqa.errors import ExtractionError, UnsupportedFormat

logger = structlog.get_logger()

PAGE_SEPARATOR = "\n"


@dataclass
class ExtractedText:
    """Extracted text kept per page so chunks can be mapped back to pages."""

    pages: List[str]
    _offsets: List[int] = field(init=False, repr=False)

    def __post_init__(self):
        self._offsets = []
        position = 0
        for page in self.pages:
            self._offsets.append(position)
            position += len(page) + len(PAGE_SEPARATOR)

    @property
    def text(self) -> str:
        return PAGE_SEPARATOR.join(self.pages)

    def page_at(self, offset: int) -> int:
        """1-based page number containing the character offset of ``text``."""
        if not self.pages:
            return 0
        return max(bisect_right(self._offsets, offset), 1)


class TextExtractor:
    """Chooses an extraction strategy from the document's media type."""

    def extract_pages(self, file_path: Path, media_type: str) -> ExtractedText:
        """Extract text page by page.

        PDFs yield one entry per page; Word and text files a single page.

        Raises:
            UnsupportedFormat: If the media type is not PDF, Word or text
            ExtractionError: If the file cannot be read as its media type
        """
        path = Path(file_path)
        media_type = (media_type or "").lower()

        try:
            if "pdf" in media_type:
                reader = PdfReader(str(path))
                pages = [page.extract_text() or "" for page in reader.pages]
            elif "wordprocessingml" in media_type:
                document = DocxDocument(str(path))
                pages = ["\n".join(paragraph.text for paragraph in document.paragraphs)]
            elif "text" in media_type or "plain" in media_type:
                pages = [path.read_text(encoding="utf-8")]
            else:
                raise UnsupportedFormat(f"Unsupported file type: {media_type or 'unknown'}")

        except (PyPdfError, PackageNotFoundError, zipfile.BadZipFile, ValueError, OSError) as e:
            logger.error(
                "text_extraction_failed",
                path=str(path),
                media_type=media_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ExtractionError(f"Could not read {path.name} as {media_type}: {e}") from e

        logger.info(
            "text_extracted",
            path=str(path),
            media_type=media_type,
            page_count=len(pages),
            char_count=sum(len(p) for p in pages),
        )

        return ExtractedText(pages=pages)

    def extract(self, file_path: Path, media_type: str) -> str:
        return self.extract_pages(file_path, media_type).text
