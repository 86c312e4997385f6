# Middleware package init
"""
PetProject Backend - Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Responses pass back through in reverse, so the logging middleware sees
    the final status code and the request ID header is set last.
"""
