"""
NoteMark Backend - Note Service Unit Tests
============================================

What:  Tests for the NoteService pipeline and its Ok / Err results.
How:   Real SQLAlchemy session on in-memory SQLite; fake local engine and a
       mocked Gemini client (see conftest.py).

What we test:
    ✅ Upload: title, raw content, rendered and sanitized HTML
    ✅ Rejected uploads (type, size, encoding) store nothing
    ✅ Retrieval by id (JSON, HTML, raw) and NotFound
    ✅ Listing: newest first, cursor pagination, total count
    ✅ Grammar flows: "no issues" and "failed" are different results
    ✅ Unexpected exceptions become a generic InternalError
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import Text

from app.exceptions import (
    GrammarCheckFailedError,
    InvalidFileTypeError,
    NotFoundError,
    RemoteResponseMalformedError,
)
from app.models.note import Note
from app.repositories.note_repository import NoteRepository
from app.result import Err, Ok
from app.schemas.grammar import GrammarIssue


async def upload(service, db, text, filename="notes.md"):
    return await service.upload_note(db=db, content=text.encode("utf-8"), filename=filename)


class TestUploadNote:

    @pytest.mark.asyncio
    async def test_upload_renders_and_stores(self, note_service, db_session):
        result = await upload(note_service, db_session, "# Hello\n\nWorld")

        assert isinstance(result, Ok)
        note = result.value
        assert note.id is not None
        assert note.title == "notes"
        assert note.content == "# Hello\n\nWorld"
        assert "<h1>Hello</h1>" in note.html_content
        assert "<p>World</p>" in note.html_content
        assert note.created_at is not None

    @pytest.mark.asyncio
    async def test_upload_sanitizes_script(self, note_service, db_session):
        result = await upload(
            note_service,
            db_session,
            '# T\n\n<script>alert(1)</script>\n\n<img src=x onerror="alert(1)">',
        )

        html = result.unwrap().html_content
        assert "<script" not in html
        assert "onerror" not in html
        # Raw content is kept exactly as uploaded
        assert "<script>" in result.unwrap().content

    @pytest.mark.asyncio
    async def test_invalid_file_type_stores_nothing(self, note_service, db_session):
        result = await upload(note_service, db_session, "# Hello", filename="notes.txt")

        assert isinstance(result, Err)
        assert result.kind == "invalid_file_type"
        assert isinstance(result.error, InvalidFileTypeError)
        assert await NoteRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_undecodable_bytes_store_nothing(self, note_service, db_session):
        result = await note_service.upload_note(
            db=db_session, content=b"# Caf\xc3", filename="notes.md"
        )

        assert isinstance(result, Err)
        assert result.kind == "decode_error"
        assert await NoteRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected(self, note_service, db_session):
        note_service.file_service.max_file_size = 1024
        result = await note_service.upload_note(
            db=db_session, content=b"a" * 2048, filename="big.md"
        )

        assert result.kind == "validation_error"
        assert "exceeds maximum" in result.detail

    @pytest.mark.asyncio
    async def test_missing_filename_gives_untitled(self, note_service, db_session):
        result = await upload(note_service, db_session, "text", filename=None)
        assert result.unwrap().title == "Untitled Note"

    @pytest.mark.asyncio
    async def test_escaped_title_longer_than_filename(self, note_service, db_session):
        result = await upload(note_service, db_session, "# Amp", filename="&" * 60 + ".md")

        note = result.unwrap()
        assert note.title == "&amp;" * 60
        assert len(note.title) == 300
        assert isinstance(Note.__table__.c.title.type, Text)

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_internal_error(self, note_service, db_session):
        note_service.markdown_service.to_safe_html = lambda text: 1 / 0

        result = await upload(note_service, db_session, "# Hello")

        assert isinstance(result, Err)
        assert result.kind == "internal_error"
        assert "ZeroDivisionError" not in result.detail
        assert result.error.context["error_type"] == "ZeroDivisionError"

    @pytest.mark.asyncio
    async def test_err_unwrap_raises_error(self, note_service, db_session):
        result = await upload(note_service, db_session, "x", filename="x.doc")
        with pytest.raises(InvalidFileTypeError):
            result.unwrap()


class TestGetNote:

    @pytest.mark.asyncio
    async def test_raw_round_trip(self, note_service, db_session):
        text = "# Über\n\n- [x] done\n- [ ] todo\n\n```\ncode <b>\n```\n"
        note_id = (await upload(note_service, db_session, text)).unwrap().id

        assert (await note_service.get_note_raw(db_session, note_id)).unwrap() == text

    @pytest.mark.asyncio
    async def test_html_matches_creation(self, note_service, db_session):
        created = (await upload(note_service, db_session, "# A\n\n*b*")).unwrap()

        html = (await note_service.get_note_html(db_session, created.id)).unwrap()
        assert html == created.html_content

    @pytest.mark.asyncio
    async def test_get_note(self, note_service, db_session):
        created = (await upload(note_service, db_session, "# A")).unwrap()

        note = (await note_service.get_note(db_session, created.id)).unwrap()
        assert note.id == created.id
        assert note.title == "notes"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get_note", "get_note_html", "get_note_raw"])
    async def test_unknown_id_is_not_found(self, note_service, db_session, operation):
        result = await getattr(note_service, operation)(db_session, 424242)

        assert isinstance(result, Err)
        assert result.kind == "not_found"
        assert isinstance(result.error, NotFoundError)


class TestListNotes:

    @pytest.mark.asyncio
    async def test_empty(self, note_service, db_session):
        page = (await note_service.list_notes(db_session)).unwrap()
        assert page.notes == []
        assert page.total_count == 0
        assert page.has_more is False
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_newest_first_with_cursor(self, note_service, db_session):
        for name in ("a", "b", "c", "d", "e"):
            await upload(note_service, db_session, f"# {name}", filename=f"{name}.md")

        first = (await note_service.list_notes(db_session, limit=2)).unwrap()
        assert [n.title for n in first.notes] == ["e", "d"]
        assert first.total_count == 5
        assert first.has_more is True
        assert first.next_cursor == first.notes[-1].id

        second = (
            await note_service.list_notes(db_session, limit=2, cursor=first.next_cursor)
        ).unwrap()
        assert [n.title for n in second.notes] == ["c", "b"]

        last = (
            await note_service.list_notes(db_session, limit=2, cursor=second.next_cursor)
        ).unwrap()
        assert [n.title for n in last.notes] == ["a"]
        assert last.has_more is False
        assert last.next_cursor is None


class TestGrammarFlows:

    @pytest.mark.asyncio
    async def test_local_no_issues_is_ok_empty(self, note_service, fake_local_engine):
        result = await note_service.check_grammar_local("Fine text.")

        assert isinstance(result, Ok)
        assert result.value == []
        assert fake_local_engine.checked == ["Fine text."]

    @pytest.mark.asyncio
    async def test_local_issues_returned(self, note_service, fake_local_engine):
        fake_local_engine.issues = [
            GrammarIssue(
                line=0, column=0, offset=0, length=3,
                original="teh", suggestion="the", explanation="Spelling",
            )
        ]
        result = await note_service.check_grammar_local("teh")
        assert [i.suggestion for i in result.unwrap()] == ["the"]

    @pytest.mark.asyncio
    async def test_local_failure_is_err(self, note_service, fake_local_engine):
        fake_local_engine.error = GrammarCheckFailedError()

        result = await note_service.check_grammar_local("text")

        assert isinstance(result, Err)
        assert result.kind == "grammar_check_failed"

    @pytest.mark.asyncio
    async def test_remote_check_decodes_file(self, note_service, gemini_client, gemini_reply):
        gemini_client.aio.models.generate_content.return_value = SimpleNamespace(
            text=gemini_reply("Café is open.", [])
        )

        result = await note_service.check_grammar_remote("Café is open.".encode("utf-8"))

        assert result.unwrap() == []
        prompt = gemini_client.aio.models.generate_content.await_args.kwargs["contents"]
        assert "Café is open." in prompt

    @pytest.mark.asyncio
    async def test_remote_check_decode_error_skips_remote(self, note_service, gemini_client):
        result = await note_service.check_grammar_remote(b"\xff\xfe\xfd")

        assert result.kind == "decode_error"
        gemini_client.aio.models.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_malformed_is_err(self, note_service, gemini_client):
        gemini_client.aio.models.generate_content.return_value = SimpleNamespace(
            text="No JSON here."
        )

        result = await note_service.check_grammar_remote(b"Some text")

        assert isinstance(result, Err)
        assert isinstance(result.error, RemoteResponseMalformedError)

    @pytest.mark.asyncio
    async def test_remote_unavailable_is_err(self, note_service, gemini_client):
        gemini_client.aio.models.generate_content.side_effect = ConnectionError("down")

        result = await note_service.correct_text_remote("text")

        assert result.kind == "remote_service_unavailable"

    @pytest.mark.asyncio
    async def test_correct_text_returns_corrected_text(self, note_service, gemini_client, gemini_reply):
        issue = {
            "line": 0, "offset": 0, "length": 3,
            "original": "teh", "suggestion": "the", "explanation": "Spelling",
        }
        gemini_client.aio.models.generate_content.return_value = SimpleNamespace(
            text=gemini_reply("the end", [issue], prefix="Corrected:\n")
        )

        correction = (await note_service.correct_text_remote("teh end")).unwrap()

        assert correction.corrected_text == "the end"
        assert correction.issues[0].original == "teh"
        assert correction.issues[0].column == 0


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_close_closes_engines(self, note_service, fake_local_engine):
        note_service.remote_engine.close = AsyncMock()

        await note_service.close()

        assert fake_local_engine.closed is True
        note_service.remote_engine.close.assert_awaited_once()
