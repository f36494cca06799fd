# Middleware package init
"""
NoteMark Backend - Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error response carry
    the correlation ID. Responses travel back through the chain in reverse,
    which is where Logging measures the duration.
"""
