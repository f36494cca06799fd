"""
NoteMark Backend - Note Repository
====================================

What:  Persistence operations for Note records: save, find by id, list, count.
How:   Thin wrapper over an AsyncSession. `save` flushes so the database
       assigns the id; committing is left to the session dependency.
Who:   Used by NoteService; one repository per request-scoped session.

No update or delete: notes are immutable once created.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.note import Note


class NoteRepository:
    """Repository for Note rows bound to a single session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, note: Note) -> Note:
        """Insert a new note and return it with its id and created_at populated."""
        self.session.add(note)
        await self.session.flush()
        return note

    async def find_by_id(self, note_id: int) -> Optional[Note]:
        return await self.session.get(Note, note_id)

    async def find_all(
        self,
        limit: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> List[Note]:
        """
        Notes ordered newest first by id.

        Args:
            limit: Maximum rows to return (None for all)
            before_id: Only return notes with an id lower than this (cursor)
        """
        query = select(Note).order_by(Note.id.desc())
        if before_id is not None:
            query = query.where(Note.id < before_id)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Note.id)))
        return result.scalar() or 0
