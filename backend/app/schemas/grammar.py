"""
NoteMark Backend - Grammar Schemas
====================================

What:  Issue and correction models shared by both grammar engines, plus the
       strict payload model used to validate Gemini's JSON reply.

Positional scheme (identical for both engines):
    line    zero-based line of the span start
    column  zero-based column of the span start within that line
    offset  zero-based character offset of the span start
    length  span length in characters
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GrammarIssue(BaseModel):
    """A single flagged span with a suggested correction."""
    line: int = Field(description="Zero-based line number of the span start")
    column: Optional[int] = Field(
        default=None,
        description="Zero-based column within the line (null if the offset is out of range)",
    )
    offset: int = Field(description="Zero-based character offset of the span start")
    length: int = Field(description="Length of the flagged span in characters")
    original: str = Field(description="The exact flagged text")
    suggestion: str = Field(description="Comma-joined replacements or corrected text")
    explanation: str = Field(description="Why the span was flagged")


class GrammarCorrection(BaseModel):
    """Full AI correction: the corrected Markdown and the issues found."""
    corrected_text: str = Field(description="The fully corrected Markdown text")
    issues: List[GrammarIssue] = Field(description="Issues in the order reported")


# ── Gemini reply payload ──────────────────────────────────────────────────
# Field names follow the JSON schema embedded in the prompt.


class RemoteIssuePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    line: int
    offset: int
    length: int
    original: str
    suggestion: str
    explanation: str


class RemoteCorrectionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    corrected_text: str = Field(alias="correctedText")
    issues: List[RemoteIssuePayload]
