"""
NoteMark Backend - Markdown Rendering & Sanitization
======================================================

What:  Converts Markdown text into HTML and filters it through an allow-list.
How:   Python-Markdown renders (fenced code, tables, sane lists); bleach keeps
       only formatting, block, table and link markup and strips the rest.
Who:   Called by NoteService while creating a note.
When:  Once per upload. Stored notes are never re-rendered.

Security Model:
    The allow-list below is the only defense against script injection from
    uploaded Markdown (raw HTML passes straight through the renderer). It is
    module-level and not configurable by callers.

    Kept:      formatting, paragraphs, headings, lists, quotes, code, tables, links
    Links:     href limited to http, https and mailto; title allowed
    Dropped:   every other element and attribute, inline event handlers,
               style attributes, comments
"""

import logging

import bleach
import markdown

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]

FORMATTING_TAGS = {
    "b", "i", "u", "s", "strong", "em", "del", "ins", "sub", "sup",
    "code", "small", "big", "tt", "strike", "br", "span",
}
BLOCK_TAGS = {
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "pre", "hr",
}
TABLE_TAGS = {"table", "thead", "tbody", "tfoot", "tr", "th", "td", "caption"}
LINK_TAGS = {"a"}

ALLOWED_TAGS = frozenset(FORMATTING_TAGS | BLOCK_TAGS | TABLE_TAGS | LINK_TAGS)
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})


def _allowed_attribute(tag: str, name: str, value: str) -> bool:
    if tag == "a":
        return name in ("href", "title")
    if tag == "code":
        # fenced_code marks the block language as class="language-xyz"
        return name == "class" and value.startswith("language-") and " " not in value
    return False


_cleaner = bleach.Cleaner(
    tags=ALLOWED_TAGS,
    attributes=_allowed_attribute,
    protocols=ALLOWED_PROTOCOLS,
    strip=True,
    strip_comments=True,
)


class MarkdownService:
    """Markdown → HTML → sanitized HTML."""

    def render(self, text: str) -> str:
        """
        Render Markdown to HTML.

        A new Markdown instance is built per call: instances keep parse state
        and are not safe to share across concurrent requests. Output depends
        only on the input text.
        """
        md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS, output_format="html")
        return md.convert(text)

    def sanitize(self, html: str) -> str:
        """Filter HTML through the allow-list. Never raises on malformed markup."""
        return _cleaner.clean(html)

    def to_safe_html(self, text: str) -> str:
        html = self.render(text)
        safe = self.sanitize(html)
        logger.info("Rendered markdown: %d chars → %d chars of sanitized HTML", len(text), len(safe))
        return safe
