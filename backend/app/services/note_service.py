"""
NoteMark Backend - Note Service (Pipeline Orchestrator)
=========================================================

What:  Composes the upload, rendering, persistence and grammar components into
       the operations exposed by the API.
How:   Receives its collaborators at construction; receives a database
       session per call. Every operation returns a tagged Result.
Who:   Built once by the application factory; called by route handlers.

Ingestion Flow (upload_note):
    ┌──────────┐   ┌──────────────┐   ┌───────────┐   ┌────────────┐   ┌───────┐
    │  Title   │──▶│ Size+Decode  │──▶│  Render   │──▶│  Sanitize  │──▶│ Store │
    │ (.md?)   │   │ (FileServ)   │   │ (Markdown)│   │  (bleach)  │   │ (DB)  │
    └──────────┘   └──────────────┘   └───────────┘   └────────────┘   └───────┘

    Validation happens before any write, so a rejected upload never leaves a
    partial note behind.

Correction Flows:
    check_grammar_remote: Decode → Gemini → issues
    correct_text_remote:  Gemini → corrected text + issues
    check_grammar_local:  LanguageTool → issues

Error Boundary:
    NoteMarkError subclasses become Err(error) as-is. Anything else is logged
    with its stack trace and becomes Err(InternalError) with a generic message.
"""

import logging
from typing import Awaitable, Callable, List, Optional, TypeVar

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    DatabaseError,
    InternalError,
    NoteMarkError,
    NotFoundError,
)
from app.models.note import Note
from app.repositories.note_repository import NoteRepository
from app.result import Err, Ok, Result
from app.schemas.grammar import GrammarCorrection, GrammarIssue
from app.schemas.note import NoteListResponse, NoteResponse, NoteSummary
from app.services.file_service import FileService
from app.services.gemini_service import GeminiService, build_gemini_client
from app.services.grammar_base import GrammarEngine
from app.services.language_tool_service import LanguageToolService
from app.services.markdown_service import MarkdownService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NoteService:
    """
    Business logic for notes and grammar checks.

    Collaborators are injected so the application owns exactly one Gemini
    client and one LanguageTool instance for the process lifetime.
    """

    def __init__(
        self,
        remote_engine: GeminiService,
        local_engine: GrammarEngine,
        file_service: Optional[FileService] = None,
        markdown_service: Optional[MarkdownService] = None,
    ):
        self.remote_engine = remote_engine
        self.local_engine = local_engine
        self.file_service = file_service or FileService()
        self.markdown_service = markdown_service or MarkdownService()

    async def _run(self, operation: str, action: Callable[[], Awaitable[T]]) -> Result[T]:
        """Execute one operation and convert its outcome into Ok / Err."""
        try:
            return Ok(await action())
        except NoteMarkError as e:
            return Err(e)
        except SQLAlchemyError as e:
            logger.error("Database error in %s: %s", operation, str(e), exc_info=True)
            return Err(DatabaseError(context={"operation": operation, "error_type": type(e).__name__}))
        except Exception as e:
            logger.error("Unexpected error in %s: %s", operation, str(e), exc_info=True)
            return Err(InternalError(context={"operation": operation, "error_type": type(e).__name__}))

    # ── Ingestion ─────────────────────────────────────────────────────────

    async def upload_note(
        self,
        db: AsyncSession,
        content: bytes,
        filename: Optional[str],
    ) -> Result[NoteResponse]:
        """
        Validate, render, sanitize and persist an uploaded Markdown file.

        Errors:
            InvalidFileTypeError: filename does not end in .md
            ValidationError: upload larger than the configured maximum
            DecodeError: bytes not valid in the configured encoding
        """

        async def action() -> NoteResponse:
            title, text = self.file_service.read_upload(filename, content)
            html_content = self.markdown_service.to_safe_html(text)

            note = await NoteRepository(db).save(
                Note(title=title, content=text, html_content=html_content)
            )
            logger.info("Note %s created: title=%s, %d chars", note.id, note.title, len(text))
            return NoteResponse.model_validate(note)

        return await self._run("upload_note", action)

    # ── Retrieval ─────────────────────────────────────────────────────────

    async def _require_note(self, db: AsyncSession, note_id: int) -> Note:
        note = await NoteRepository(db).find_by_id(note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def get_note(self, db: AsyncSession, note_id: int) -> Result[NoteResponse]:
        async def action() -> NoteResponse:
            return NoteResponse.model_validate(await self._require_note(db, note_id))

        return await self._run("get_note", action)

    async def get_note_html(self, db: AsyncSession, note_id: int) -> Result[str]:
        """Stored sanitized HTML of a note, exactly as rendered at creation."""

        async def action() -> str:
            return (await self._require_note(db, note_id)).html_content

        return await self._run("get_note_html", action)

    async def get_note_raw(self, db: AsyncSession, note_id: int) -> Result[str]:
        """Stored Markdown of a note, exactly as decoded at upload."""

        async def action() -> str:
            return (await self._require_note(db, note_id)).content

        return await self._run("get_note_raw", action)

    async def list_notes(
        self,
        db: AsyncSession,
        limit: int = 50,
        cursor: Optional[int] = None,
    ) -> Result[NoteListResponse]:
        """
        Note summaries, newest first, with id-based cursor pagination.

        How:
            - Fetch limit + 1 rows to learn whether another page exists
            - next_cursor is the id of the last returned note
        """

        async def action() -> NoteListResponse:
            repository = NoteRepository(db)
            notes = await repository.find_all(limit=limit + 1, before_id=cursor)
            total_count = await repository.count()

            has_more = len(notes) > limit
            if has_more:
                notes = notes[:limit]

            return NoteListResponse(
                notes=[NoteSummary.model_validate(note) for note in notes],
                total_count=total_count,
                next_cursor=notes[-1].id if has_more and notes else None,
                has_more=has_more,
            )

        return await self._run("list_notes", action)

    # ── Grammar ───────────────────────────────────────────────────────────

    async def check_grammar_remote(self, content: bytes) -> Result[List[GrammarIssue]]:
        """
        Decode an uploaded file and return Gemini's issues for it.

        Errors:
            DecodeError, RemoteServiceUnavailableError, RemoteResponseMalformedError
        """

        async def action() -> List[GrammarIssue]:
            self.file_service.validate_size(content)
            text = self.file_service.decode(content)
            return await self.remote_engine.check(text)

        return await self._run("check_grammar_remote", action)

    async def correct_text_remote(self, text: str) -> Result[GrammarCorrection]:
        """Gemini correction of raw Markdown text, including the corrected text."""

        async def action() -> GrammarCorrection:
            return await self.remote_engine.correct(text)

        return await self._run("correct_text_remote", action)

    async def check_grammar_local(self, text: str) -> Result[List[GrammarIssue]]:
        """
        LanguageTool issues for raw Markdown text.

        Errors:
            GrammarCheckFailedError
        """

        async def action() -> List[GrammarIssue]:
            return await self.local_engine.check(text)

        return await self._run("check_grammar_local", action)

    async def close(self) -> None:
        await self.local_engine.close()
        await self.remote_engine.close()


def build_note_service() -> NoteService:
    """Wire the production engines. Called once by create_app()."""
    return NoteService(
        remote_engine=GeminiService(client=build_gemini_client()),
        local_engine=LanguageToolService(),
    )


def get_note_service(request: Request) -> NoteService:
    """FastAPI dependency returning the application's NoteService."""
    return request.app.state.note_service
