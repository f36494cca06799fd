# Routes package init
"""
NoteMark Backend - API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - notes.py:    POST /api/notes              (upload a Markdown note)
                   GET  /api/notes              (list notes with pagination)
                   GET  /api/notes/{id}         (note as JSON)
                   GET  /api/notes/{id}/html    (sanitized HTML)
                   GET  /api/notes/{id}/raw     (original Markdown)
    - grammar.py:  POST /api/grammar/check      (AI check of an uploaded file)
                   POST /api/grammar/correct    (AI correction of raw text)
                   POST /api/grammar/live       (local check of raw text)
    - health.py:   GET  /health                 (service health check)

Routes stay thin: they read the request, call NoteService, and unwrap the
Result. An Err raises its NoteMarkError, which the handlers registered in
main.py turn into the JSON error format.
"""
