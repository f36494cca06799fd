"""
NoteMark Backend - File Service Unit Tests
============================================

What:  Tests for FileService title extraction, size limit and decoding.
How:   Pure unit tests; no database and no HTTP.

Test Strategy:
    ✅ .md accepted, anything else rejected (case-sensitive)
    ✅ Title is the basename without extension, HTML-escaped
    ✅ Missing filename / bare ".md" → "Untitled Note"
    ✅ Size limit boundary
    ✅ Strict decoding: invalid bytes raise DecodeError, no placeholder text
"""

import pytest

from app.exceptions import DecodeError, InvalidFileTypeError, ValidationError
from app.services.file_service import UNTITLED_NOTE, FileService


class TestTitleExtraction:

    def setup_method(self):
        self.service = FileService(encoding="utf-8", max_file_size=1024)

    def test_strips_md_extension(self):
        assert self.service.extract_title("notes.md") == "notes"

    def test_keeps_inner_dots(self):
        assert self.service.extract_title("release.v2.md") == "release.v2"

    def test_uses_basename_of_client_path(self):
        assert self.service.extract_title("docs/drafts/plan.md") == "plan"
        assert self.service.extract_title("C:\\Users\\me\\todo.md") == "todo"

    def test_escapes_html_in_title(self):
        title = self.service.extract_title('<img src=x onerror="a">.md')
        assert "<" not in title
        assert '"' not in title
        assert title.startswith("&lt;img")

    def test_missing_filename_gives_untitled(self):
        assert self.service.extract_title(None) == UNTITLED_NOTE
        assert self.service.extract_title("") == UNTITLED_NOTE

    def test_bare_extension_gives_untitled(self):
        assert self.service.extract_title(".md") == UNTITLED_NOTE

    @pytest.mark.parametrize("filename", ["notes.txt", "notes.markdown", "notes.MD", "notes.md.exe"])
    def test_rejects_non_markdown(self, filename):
        with pytest.raises(InvalidFileTypeError) as exc_info:
            self.service.extract_title(filename)
        assert exc_info.value.code == "invalid_file_type"
        assert "Only .md files" in exc_info.value.message

    def test_invalid_file_type_is_validation_error(self):
        with pytest.raises(ValidationError):
            self.service.extract_title("image.png")


class TestSizeLimit:

    def setup_method(self):
        self.service = FileService(encoding="utf-8", max_file_size=1024)

    def test_at_limit_passes(self):
        self.service.validate_size(b"a" * 1024)

    def test_over_limit_rejected(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(b"a" * 1025)

    def test_empty_passes(self):
        self.service.validate_size(b"")


class TestDecoding:

    def setup_method(self):
        self.service = FileService(encoding="utf-8", max_file_size=1024)

    def test_decodes_utf8(self):
        assert self.service.decode("Café ✓".encode("utf-8")) == "Café ✓"

    def test_truncated_multibyte_sequence(self):
        with pytest.raises(DecodeError) as exc_info:
            self.service.decode("é".encode("utf-8")[:1])
        assert exc_info.value.context["position"] == 0
        assert "utf-8" in exc_info.value.message

    def test_utf16_bytes_are_not_valid_utf8(self):
        with pytest.raises(DecodeError):
            self.service.decode("# Hello".encode("utf-16"))

    def test_configured_encoding_is_used(self):
        service = FileService(encoding="utf-16", max_file_size=1024)
        assert service.decode("# Hello".encode("utf-16")) == "# Hello"


class TestReadUpload:

    def setup_method(self):
        self.service = FileService(encoding="utf-8", max_file_size=1024)

    def test_returns_title_and_text(self):
        assert self.service.read_upload("notes.md", b"# Hello\n\nWorld") == (
            "notes",
            "# Hello\n\nWorld",
        )

    def test_file_type_checked_before_content(self):
        # Undecodable and oversized, but the extension is reported first
        with pytest.raises(InvalidFileTypeError):
            self.service.read_upload("notes.txt", b"\xff" * 2048)

    def test_size_checked_before_decode(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.read_upload("notes.md", b"\xff" * 2048)
