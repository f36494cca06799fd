"""
NoteMark Backend - Upload Service
===================================

What:  Validates uploaded Markdown files and turns them into text and a title.
How:   Checks size, decodes bytes with the single configured encoding, and
       derives an HTML-escaped title from the filename.
Who:   Called by NoteService for uploads and for file-based grammar checks.
When:  First step of every upload, before any rendering or persistence.

Rules:
    - Only filenames ending in `.md` (case-sensitive) are accepted
    - Bytes are decoded strictly with settings.markdown_encoding (UTF-8 by
      default); there is no detection and no fallback encoding
    - A decoding failure is a DecodeError, never placeholder text
"""

import html
import logging
from typing import Optional, Tuple

from app.config import settings
from app.exceptions import DecodeError, InvalidFileTypeError, ValidationError

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSION = ".md"
UNTITLED_NOTE = "Untitled Note"


class FileService:
    """
    Upload validation and conversion for Markdown files.

    All methods are pure apart from logging; one instance is shared by the
    application.
    """

    def __init__(self, encoding: Optional[str] = None, max_file_size: Optional[int] = None):
        """
        Args:
            encoding: Override the configured encoding (used in tests).
            max_file_size: Override the configured size limit in bytes.
        """
        self.encoding = encoding or settings.markdown_encoding
        self.max_file_size = max_file_size or settings.max_file_size

    def extract_title(self, filename: Optional[str]) -> str:
        """
        Derive a display title from the upload filename.

        Returns:
            The basename without `.md`, HTML-escaped. "Untitled Note" when the
            filename is missing or nothing remains after stripping.

        Raises:
            InvalidFileTypeError if the filename does not end in `.md`.
        """
        if not filename:
            return UNTITLED_NOTE

        if not filename.endswith(MARKDOWN_EXTENSION):
            raise InvalidFileTypeError(filename=filename)

        # Some clients send a full path; keep only the last component
        basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
        stem = basename[: -len(MARKDOWN_EXTENSION)]
        if not stem:
            return UNTITLED_NOTE

        return html.escape(stem, quote=True)

    def validate_size(self, content: bytes) -> None:
        """
        Reject uploads above the configured maximum.

        Raises:
            ValidationError with a human-readable size limit message.
        """
        if len(content) > self.max_file_size:
            max_kb = self.max_file_size / 1024
            raise ValidationError(
                message=f"File size ({len(content) / 1024:.1f}KB) exceeds maximum of {max_kb:.0f}KB.",
                field="file",
                context={"max_size": self.max_file_size, "actual_size": len(content)},
            )

    def decode(self, content: bytes) -> str:
        """
        Decode uploaded bytes into Markdown text using the fixed encoding.

        Raises:
            DecodeError when the bytes are not valid in that encoding
            (e.g. a truncated multi-byte sequence).
        """
        try:
            text = content.decode(self.encoding)
        except UnicodeDecodeError as e:
            logger.warning(
                "Upload is not valid %s: %s at byte %d",
                self.encoding,
                e.reason,
                e.start,
            )
            raise DecodeError(
                encoding=self.encoding,
                context={"position": e.start, "reason": e.reason},
            )

        logger.debug("Decoded %d bytes into %d characters", len(content), len(text))
        return text

    def read_upload(self, filename: Optional[str], content: bytes) -> Tuple[str, str]:
        """
        Full upload check for note creation.

        Validation order:
            1. Filename / title (no content touched)
            2. Size
            3. Decode

        Returns:
            Tuple of (title, markdown_text).
        """
        title = self.extract_title(filename)
        self.validate_size(content)
        text = self.decode(content)
        return title, text
