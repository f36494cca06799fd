"""
NoteMark Backend - Abstract Grammar Engine Interface
======================================================

What:  Contract shared by the local (LanguageTool) and remote (Gemini)
       grammar engines.
How:   Concrete engines inherit from GrammarEngine and implement check()
       and health_check(). NoteService only talks to this interface, which
       also makes engines easy to replace with fakes in tests.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from app.schemas.grammar import GrammarIssue


def line_and_column(text: str, offset: int) -> Tuple[int, int]:
    """
    Zero-based (line, column) of a character offset.

    The line is the number of newline characters before the offset.
    """
    line = text.count("\n", 0, offset)
    column = offset - (text.rfind("\n", 0, offset) + 1)
    return line, column


class GrammarEngine(ABC):
    """
    Abstract interface for grammar/style checkers.

    Contract:
        - check() returns every issue found, in text order or in the order the
          engine reported them; an empty list means "no issues"
        - An engine that fails raises one of the NoteMarkError subclasses and
          never returns a partial or empty list in its place
    """

    name: str = "grammar"

    @abstractmethod
    async def check(self, text: str) -> List[GrammarIssue]:
        """
        Check Markdown source text and return positioned issues.

        Raises:
            GrammarCheckFailedError: Local engine failure.
            RemoteServiceUnavailableError: Remote engine unreachable.
            RemoteResponseMalformedError: Remote engine replied with unusable data.
        """
        ...

    @abstractmethod
    async def health_check(self) -> Optional[bool]:
        """
        Lightweight status probe for the /health endpoint.

        Returns True if operational, False if not, None if the engine has not
        been initialized yet.
        """
        ...

    async def close(self) -> None:
        """Release engine resources at shutdown. No-op by default."""
        return None
