"""
NoteMark Backend - LanguageTool Service Unit Tests
====================================================

What:  Tests match → issue conversion and the failure policy of the local
       grammar engine.
How:   A fake tool factory replaces language_tool_python.LanguageTool, so no
       Java server is started. Matches are real language_tool_python Match
       objects built from server-style JSON.
"""

from unittest.mock import MagicMock

import pytest
from language_tool_python.match import Match

from app.exceptions import GrammarCheckFailedError
from app.services.grammar_base import line_and_column
from app.services.language_tool_service import LanguageToolService, match_to_issue


def make_match(text, offset, length, message="Possible error", replacements=None):
    """Build a Match the way LanguageTool's JSON API reports it."""
    attrib = {
        "message": message,
        "replacements": [{"value": value} for value in replacements or []],
        "offset": offset,
        "length": length,
        "context": {"text": text, "offset": offset, "length": length},
        "sentence": text,
        "rule": {
            "id": "MORFOLOGIK_RULE_EN_US",
            "description": "Possible spelling mistake",
            "issueType": "misspelling",
            "category": {"id": "TYPOS", "name": "Possible Typo"},
        },
    }
    return Match(attrib, text)


class TestLineAndColumn:

    def test_first_line(self):
        assert line_and_column("hello world", 6) == (0, 6)

    def test_after_newlines(self):
        text = "one\ntwo\nthree"
        assert line_and_column(text, text.index("three")) == (2, 0)
        assert line_and_column(text, text.index("wo")) == (1, 1)

    def test_offset_zero(self):
        assert line_and_column("\nabc", 0) == (0, 0)


class TestMatchToIssue:

    def test_positions_and_text(self):
        text = "# Title\n\nThis are wrong."
        offset = text.index("are")
        issue = match_to_issue(text, make_match(text, offset, 3, "Agreement", ["is"]))

        assert issue.line == 2
        assert issue.column == 5
        assert issue.offset == offset
        assert issue.length == 3
        assert issue.original == "are"
        assert issue.suggestion == "is"
        assert issue.explanation == "Agreement"

    def test_multiple_replacements_joined(self):
        issue = match_to_issue("teh cat", make_match("teh cat", 0, 3, replacements=["the", "tea"]))
        assert issue.suggestion == "the, tea"

    def test_no_replacements(self):
        assert match_to_issue("abc", make_match("abc", 0, 1)).suggestion == ""


class TestLanguageToolService:

    def _service(self, tool):
        factory = MagicMock(return_value=tool)
        return LanguageToolService(language="en-US", tool_factory=factory), factory

    @pytest.mark.asyncio
    async def test_check_returns_issues_in_order(self):
        text = "teh cat\nis hapy"
        tool = MagicMock()
        tool.check.return_value = [
            make_match(text, 0, 3, "Spelling", ["the"]),
            make_match(text, text.index("hapy"), 4, "Spelling", ["happy"]),
        ]
        service, _ = self._service(tool)

        issues = await service.check(text)

        assert [i.original for i in issues] == ["teh", "hapy"]
        assert issues[1].line == 1
        assert issues[1].column == 3

    def test_check_sync_reports_misspelling(self):
        text = "This is noot okay."
        tool = MagicMock()
        tool.check.return_value = [make_match(text, 8, 4, "Spelling", ["not", "newt"])]
        service, _ = self._service(tool)

        issues = service.check_sync(text)

        assert len(issues) == 1
        assert issues[0].offset == 8
        assert issues[0].length == 4
        assert issues[0].original == "noot"
        assert issues[0].suggestion == "not, newt"

    @pytest.mark.asyncio
    async def test_no_matches_is_empty_list(self):
        tool = MagicMock()
        tool.check.return_value = []
        service, _ = self._service(tool)
        assert await service.check("Fine text.") == []

    @pytest.mark.asyncio
    async def test_tool_created_once_and_lazily(self):
        tool = MagicMock()
        tool.check.return_value = []
        service, factory = self._service(tool)

        assert service.loaded is False
        assert await service.health_check() is None

        await service.check("a")
        await service.check("b")

        factory.assert_called_once_with("en-US")
        assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_engine_failure_raises_grammar_check_failed(self):
        tool = MagicMock()
        tool.check.side_effect = RuntimeError("java crashed")
        service, _ = self._service(tool)

        with pytest.raises(GrammarCheckFailedError) as exc_info:
            await service.check("text")
        assert exc_info.value.context["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_startup_failure_raises_grammar_check_failed(self):
        service = LanguageToolService(
            language="en-US",
            tool_factory=MagicMock(side_effect=OSError("no java")),
        )
        with pytest.raises(GrammarCheckFailedError):
            await service.check("text")

    @pytest.mark.asyncio
    async def test_close_stops_tool(self):
        tool = MagicMock()
        tool.check.return_value = []
        service, _ = self._service(tool)
        await service.check("a")

        await service.close()

        tool.close.assert_called_once()
        assert service.loaded is False
