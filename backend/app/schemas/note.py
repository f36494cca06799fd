"""
NoteMark Backend - Note Request/Response Schemas
==================================================

What:  Pydantic models defining the notes API contract.
How:   FastAPI validates and serializes these and generates OpenAPI docs from them.

Schemas are separate from the SQLAlchemy model so the API controls exactly
which fields are exposed (e.g. list items never carry content).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class NoteResponse(BaseModel):
    """
    Full representation of a stored note.

    Returned by POST /api/notes (201) and GET /api/notes/{id}.
    """
    id: int = Field(description="Note identifier assigned by the store")
    title: str = Field(description="HTML-escaped title derived from the upload filename")
    content: str = Field(description="Raw Markdown as uploaded")
    html_content: str = Field(description="Sanitized HTML rendered from the Markdown")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteSummary(BaseModel):
    """Compact note representation for list views (no content)."""
    id: int = Field(description="Note identifier")
    title: str = Field(description="Note title")
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    """
    Paginated wrapper for GET /api/notes.

    How the cursor works:
        - Notes are ordered newest first by id
        - next_cursor is the id of the last item in the page
        - Clients send it back as `cursor` to fetch older notes
    """
    notes: List[NoteSummary] = Field(description="Note summaries, newest first")
    total_count: int = Field(description="Total number of stored notes")
    next_cursor: Optional[int] = Field(
        default=None,
        description="Cursor for the next page. Null if no more pages.",
    )
    has_more: bool = Field(description="Whether more pages are available")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "invalid_file_type",
            "message": "Invalid file type. Only .md files are supported.",
            "details": {"field": "file", "filename": "notes.txt"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    gemini: str = Field(
        description="Remote grammar engine: available, unavailable, circuit_open, not_configured"
    )
    languagetool: str = Field(description="Local grammar engine: ready, not_loaded")
    uptime_seconds: float = Field(description="Seconds since service started")
