"""Text extraction from source files."""

import asyncio
import html
import logging
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ragcore.exceptions import ExtractionError

from .document import FormatTag

logger = logging.getLogger(__name__)


class FileFormat(str, Enum):
    """File formats the extractor understands, keyed by extension."""

    SWIFT = "swift"
    MARKDOWN = "md"
    TEXT = "txt"
    PDF = "pdf"
    JSON = "json"
    XML = "xml"
    HTML = "html"
    PYTHON = "py"

    @classmethod
    def from_extension(cls, extension: str) -> Optional["FileFormat"]:
        try:
            return cls(extension.lower().lstrip("."))
        except ValueError:
            return None


_FORMAT_TAGS = {
    FileFormat.SWIFT: FormatTag.SWIFT,
    FileFormat.MARKDOWN: FormatTag.MARKDOWN,
    FileFormat.TEXT: FormatTag.TEXT,
    FileFormat.PDF: FormatTag.PDF,
    FileFormat.JSON: FormatTag.CODE,
    FileFormat.XML: FormatTag.CODE,
    FileFormat.HTML: FormatTag.CODE,
    FileFormat.PYTHON: FormatTag.CODE,
}

_LANGUAGES = {
    FileFormat.SWIFT: "swift",
    FileFormat.JSON: "json",
    FileFormat.XML: "xml",
    FileFormat.HTML: "html",
    FileFormat.PYTHON: "python",
}


class ExtractedText(BaseModel):
    """Text pulled out of a source file, with file metadata."""

    content: str
    source_path: str
    source_name: str
    file_format: FileFormat = FileFormat.TEXT
    size: int = 0
    modified_at: Optional[datetime] = None

    @property
    def format_tag(self) -> FormatTag:
        return _FORMAT_TAGS[self.file_format]

    @property
    def language(self) -> Optional[str]:
        return _LANGUAGES.get(self.file_format)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    @classmethod
    def from_text(
        cls,
        content: str,
        source_path: str,
        source_name: Optional[str] = None,
        file_format: FileFormat = FileFormat.TEXT,
    ) -> "ExtractedText":
        """Wrap in-memory text that did not come from disk."""
        return cls(
            content=content,
            source_path=source_path,
            source_name=source_name or Path(source_path).name,
            file_format=file_format,
            size=len(content.encode("utf-8")),
        )


_SCRIPT_OR_STYLE = re.compile(r"<(script|style)[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def clean_html(raw: str) -> str:
    """Strip scripts, styles and tags from HTML and collapse whitespace."""
    text = _SCRIPT_OR_STYLE.sub("", raw)
    text = _TAG.sub(" ", text)
    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


class TextExtractor:
    """Read source files into plain text.

    Plain-text formats are decoded as UTF-8, HTML is cleaned of markup and
    PDF pages are read with ``pypdf``. File I/O runs in a worker thread.
    """

    async def extract(self, path: str | Path) -> ExtractedText:
        """Extract text from a file.

        Raises:
            ExtractionError: If the file is missing, unsupported or empty
        """
        path = Path(path)

        if not path.is_file():
            raise ExtractionError(str(path), "file not found")

        file_format = FileFormat.from_extension(path.suffix)
        if file_format is None:
            raise ExtractionError(str(path), f"unsupported format '{path.suffix}'")

        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, self._read, path, file_format)

        if not content.strip():
            raise ExtractionError(str(path), "no text content")

        stat = path.stat()
        logger.debug(f"Extracted {len(content)} chars from {path}")

        return ExtractedText(
            content=content,
            source_path=str(path),
            source_name=path.name,
            file_format=file_format,
            size=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime),
        )

    async def extract_many(self, paths: list[str | Path]) -> list[ExtractedText]:
        """Extract several files, skipping those that fail."""
        results = []
        for path in paths:
            try:
                results.append(await self.extract(path))
            except (ExtractionError, OSError) as e:
                logger.warning(f"Failed to extract text from {path}: {e}")
        return results

    def _read(self, path: Path, file_format: FileFormat) -> str:
        if file_format == FileFormat.PDF:
            return self._read_pdf(path)

        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(str(path), str(e)) from e

        if file_format == FileFormat.HTML:
            return clean_html(raw)
        return raw

    def _read_pdf(self, path: Path) -> str:
        try:
            from pypdf import PdfReader
        except ImportError:
            raise ImportError(
                "PDF extraction requires the 'pypdf' package. "
                "Install it with: pip install pypdf"
            )

        try:
            reader = PdfReader(str(path))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise ExtractionError(str(path), f"failed to read PDF: {e}") from e

        return "\n\n".join(pages).strip()
