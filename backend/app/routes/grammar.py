"""
NoteMark Backend - Grammar Route Handlers
===========================================

What:  Grammar checking and correction endpoints.
Who:   Called by the frontend editor (live hints) and the "Check with AI" action.

Endpoints:
    POST /api/grammar/check    multipart file → remote issues
    POST /api/grammar/correct  text/plain body → corrected text + remote issues
    POST /api/grammar/live     text/plain body → local (LanguageTool) issues

Raw text bodies are decoded with the configured Markdown encoding and are
subject to the same size limit as uploaded files.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.schemas.grammar import GrammarCorrection, GrammarIssue
from app.schemas.note import ErrorResponse
from app.services.note_service import NoteService, get_note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/grammar", tags=["Grammar"])

TEXT_BODY = {
    "requestBody": {
        "required": True,
        "content": {"text/plain": {"schema": {"type": "string"}}},
    }
}


async def read_text_body(request: Request, service: NoteService) -> str:
    """Read and decode a raw text request body (raises ValidationError / DecodeError)."""
    body = await request.body()
    service.file_service.validate_size(body)
    return service.file_service.decode(body)


@router.post(
    "/check",
    response_model=List[GrammarIssue],
    responses={
        400: {"description": "File too large or not decodable", "model": ErrorResponse},
        502: {"description": "AI service returned an unusable reply", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    summary="Check an uploaded Markdown file with the AI engine",
)
async def check_grammar(
    file: UploadFile = File(..., description="Markdown file to check"),
    service: NoteService = Depends(get_note_service),
) -> List[GrammarIssue]:
    try:
        content = await file.read()
        logger.info("Grammar check request: %d bytes", len(content))
        return (await service.check_grammar_remote(content)).unwrap()
    finally:
        await file.close()


@router.post(
    "/correct",
    response_model=GrammarCorrection,
    responses={
        400: {"description": "Body too large or not decodable", "model": ErrorResponse},
        502: {"description": "AI service returned an unusable reply", "model": ErrorResponse},
        503: {"description": "AI service unavailable", "model": ErrorResponse},
    },
    openapi_extra=TEXT_BODY,
    summary="Correct raw Markdown text with the AI engine",
)
async def correct_text(
    request: Request,
    service: NoteService = Depends(get_note_service),
) -> GrammarCorrection:
    text = await read_text_body(request, service)
    return (await service.correct_text_remote(text)).unwrap()


@router.post(
    "/live",
    response_model=List[GrammarIssue],
    responses={
        400: {"description": "Body too large or not decodable", "model": ErrorResponse},
        500: {"description": "Local grammar engine failed", "model": ErrorResponse},
    },
    openapi_extra=TEXT_BODY,
    summary="Check raw Markdown text with the local engine",
    description="Fast rule-based check used for suggestions while typing.",
)
async def live_check(
    request: Request,
    service: NoteService = Depends(get_note_service),
) -> List[GrammarIssue]:
    text = await read_text_body(request, service)
    return (await service.check_grammar_local(text)).unwrap()
