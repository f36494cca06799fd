"""
NoteMark Backend - LanguageTool Grammar Service
=================================================

What:  Local, rule-based grammar/spelling/style checker.
How:   Wraps `language_tool_python.LanguageTool` for one language variant
       (settings.languagetool_language, American English by default) and
       converts each rule match into a positioned GrammarIssue.
Who:   Constructed once by the application factory; used by NoteService for
       live suggestions while a note is being edited.

Lifecycle:
    The LanguageTool instance (a local Java server) is expensive to start, so
    it is created on the first check and reused afterwards. close() stops it
    at application shutdown. Checks are blocking and run in a worker thread.

Failure Policy:
    If the engine fails to start or to check, the whole call raises
    GrammarCheckFailedError. An empty list always means "no issues found".
"""

import asyncio
import logging
import threading
from typing import Any, Callable, List, Optional

import language_tool_python

from app.config import settings
from app.exceptions import GrammarCheckFailedError
from app.schemas.grammar import GrammarIssue
from app.services.grammar_base import GrammarEngine, line_and_column

logger = logging.getLogger(__name__)


def match_to_issue(text: str, match: Any) -> GrammarIssue:
    """
    Convert a LanguageTool match into a GrammarIssue.

    offset is the match start; line counts the newlines before it.
    """
    start = match.offset
    length = match.error_length
    line, column = line_and_column(text, start)
    return GrammarIssue(
        line=line,
        column=column,
        offset=start,
        length=length,
        original=text[start:start + length],
        suggestion=", ".join(match.replacements or []),
        explanation=match.message or "",
    )


class LanguageToolService(GrammarEngine):
    """LanguageTool implementation of the local grammar engine."""

    name = "languagetool"

    def __init__(
        self,
        language: Optional[str] = None,
        tool_factory: Optional[Callable[[str], Any]] = None,
    ):
        """
        Args:
            language: LanguageTool language code, defaults to settings.
            tool_factory: Builds the tool for a language code; defaults to
                language_tool_python.LanguageTool (overridden in tests).
        """
        self.language = language or settings.languagetool_language
        self._tool_factory = tool_factory or language_tool_python.LanguageTool
        self._tool: Optional[Any] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._tool is not None

    def _get_tool(self) -> Any:
        with self._lock:
            if self._tool is None:
                logger.info("Starting LanguageTool for language=%s", self.language)
                self._tool = self._tool_factory(self.language)
            return self._tool

    def check_sync(self, text: str) -> List[GrammarIssue]:
        """
        Blocking check. Runs inside a worker thread via check().

        Raises:
            GrammarCheckFailedError on any engine failure (no partial results).
        """
        try:
            tool = self._get_tool()
            matches = tool.check(text)
            issues = [match_to_issue(text, match) for match in matches]
        except Exception as e:
            logger.error(
                "LanguageTool check failed for %d chars: %s",
                len(text),
                str(e),
                exc_info=True,
            )
            raise GrammarCheckFailedError(
                context={"language": self.language, "error_type": type(e).__name__}
            )

        for issue in issues:
            logger.debug(
                "Issue at line %d, column %s: %s",
                issue.line,
                issue.column,
                issue.explanation,
            )
        logger.info("LanguageTool found %d issues in %d chars", len(issues), len(text))
        return issues

    async def check(self, text: str) -> List[GrammarIssue]:
        return await asyncio.to_thread(self.check_sync, text)

    async def health_check(self) -> Optional[bool]:
        """True once the tool is running; None before the first check."""
        return True if self.loaded else None

    async def close(self) -> None:
        with self._lock:
            tool, self._tool = self._tool, None
        if tool is not None:
            try:
                await asyncio.to_thread(tool.close)
                logger.info("LanguageTool stopped")
            except Exception as e:
                logger.warning("Failed to stop LanguageTool cleanly: %s", str(e))
