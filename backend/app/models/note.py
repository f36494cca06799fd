"""
NoteMark Backend - Note SQLAlchemy Model
==========================================

What:  ORM model representing the `notes` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Used by NoteRepository for inserts and lookups.

Table Design:
    - id: Integer identity assigned by the database on insert
    - title: Escaped display title derived from the upload filename
    - content: Raw Markdown exactly as decoded from the upload
    - html_content: Sanitized render of `content`, computed once at creation
    - created_at: UTC creation timestamp

    Rows are written once and never updated: html_content is never
    re-rendered on read.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Note(Base):
    """
    A Markdown note as stored in the database.

    Query Patterns:
        - Get single note: SELECT ... WHERE id = :id (primary key)
        - List notes: SELECT ... ORDER BY id DESC LIMIT :n
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Identifier assigned by the store on creation",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="HTML-escaped title derived from the upload filename",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Raw Markdown decoded from the uploaded bytes",
    )

    html_content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Sanitized HTML rendered from content at creation time",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        comment="When this note was created (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', created_at='{self.created_at}')>"
