"""
NoteMark Backend - Notes Route Handlers
=========================================

What:  Upload, list and fetch notes.
How:   Extracts request data, delegates to NoteService, unwraps the Result.
Who:   Called by the frontend note list, editor and preview panes.

Caching Strategy:
    - POST /api/notes: No caching (mutation)
    - GET /api/notes: No cache headers (list changes on every upload)
    - GET /api/notes/{id}, /html, /raw: private, 1 hour (notes are immutable)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.note import ErrorResponse, NoteListResponse, NoteResponse
from app.services.note_service import NoteService, get_note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

NOTE_CACHE_CONTROL = "private, max-age=3600"


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={
        201: {"description": "Note created", "model": NoteResponse},
        400: {"description": "Not a .md file, too large, or not decodable", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Upload a Markdown note",
    description=(
        "Upload a .md file. The file name (without extension) becomes the title; "
        "the content is rendered to sanitized HTML and stored with the raw Markdown."
    ),
)
async def upload_note(
    file: UploadFile = File(..., description="Markdown file (.md)"),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    """
    Error responses (handled by global exception handlers):
        HTTP 400: InvalidFileTypeError, ValidationError (size), DecodeError
        HTTP 500: DatabaseError, InternalError
    """
    try:
        content = await file.read()
        logger.info(
            "Received note upload: filename=%s, size=%d bytes",
            file.filename or "unknown",
            len(content),
        )
        result = await service.upload_note(db=db, content=content, filename=file.filename)
        return result.unwrap()
    finally:
        await file.close()


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={
        200: {"description": "Page of note summaries", "model": NoteListResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List notes with pagination",
    description=(
        "Returns note summaries newest first. Pass next_cursor from the previous "
        "response as cursor to fetch the following page."
    ),
)
async def list_notes(
    response: Response,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    cursor: Optional[int] = Query(
        default=None,
        ge=1,
        description="Return notes with an id lower than this value. Omit for the first page.",
    ),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    """
    Example client usage:
        Page 1: GET /api/notes?limit=20
        Page 2: GET /api/notes?limit=20&cursor=81
    """
    page = (await service.list_notes(db=db, limit=limit, cursor=cursor)).unwrap()
    response.headers["X-Total-Count"] = str(page.total_count)
    return page


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={
        200: {"description": "Full note", "model": NoteResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Get a single note by ID",
)
async def get_note(
    note_id: int,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    note = (await service.get_note(db=db, note_id=note_id)).unwrap()
    response.headers["Cache-Control"] = NOTE_CACHE_CONTROL
    return note


@router.get(
    "/notes/{note_id}/html",
    response_class=HTMLResponse,
    responses={
        200: {"description": "Sanitized HTML", "content": {"text/html": {}}},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Get the rendered HTML of a note",
)
async def get_note_html(
    note_id: int,
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> HTMLResponse:
    html = (await service.get_note_html(db=db, note_id=note_id)).unwrap()
    return HTMLResponse(content=html, headers={"Cache-Control": NOTE_CACHE_CONTROL})


@router.get(
    "/notes/{note_id}/raw",
    response_class=PlainTextResponse,
    responses={
        200: {"description": "Original Markdown", "content": {"text/markdown": {}}},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Get the original Markdown of a note",
)
async def get_note_raw(
    note_id: int,
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> PlainTextResponse:
    text = (await service.get_note_raw(db=db, note_id=note_id)).unwrap()
    return PlainTextResponse(
        content=text,
        media_type="text/markdown",
        headers={"Cache-Control": NOTE_CACHE_CONTROL},
    )
