# Services package init
"""
NoteMark Backend - Services Layer
===================================

What:  Business logic between routes (HTTP) and the note store (persistence).
How:   Services accept plain values, apply the pipeline, and return results.
       NoteService is built once by the application factory and handed to
       routes through FastAPI's dependency injection.

Service Inventory:
    - FileService: Title extraction, size check and decoding of uploads
    - MarkdownService: Markdown rendering and allow-list HTML sanitization
    - GrammarEngine (abstract): Interface shared by the grammar checkers
    - LanguageToolService: Local rule-based checker (language_tool_python)
    - GeminiService: Remote LLM corrector (google-genai) with retry and
      circuit breaker
    - NoteService: Orchestrates upload → render → sanitize → persist and the
      grammar flows, returning Ok / Err results
"""
