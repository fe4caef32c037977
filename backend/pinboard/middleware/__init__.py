"""
Pinboard Backend: Middleware Package
=====================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Rate limiting runs first so abusive clients are rejected before any
    work. The request ID is set before logging so every access log line
    carries it.
"""
