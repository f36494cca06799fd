"""
NoteMark Backend - Application Package
========================================

What: Markdown note service: upload, render, sanitize, store, grammar-check.
Who:  Imported by uvicorn (app.main:app), Alembic, and pytest.

Architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   NoteService (Pipeline, Results)   │  ← Orchestration, Ok / Err
    ├──────────────┬──────────────────────┤
    │ File/Markdown│  Grammar engines     │  ← Decode, render, sanitize;
    │  services    │  (LanguageTool,      │    local and remote checks
    │              │   Gemini)            │
    ├──────────────┴──────────────────────┤
    │     Repository, Models & Schemas    │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
