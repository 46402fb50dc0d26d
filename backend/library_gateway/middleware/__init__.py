# Middleware package init
"""
Library Gateway — Middleware Package
=====================================

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Body Size] → [GZip] → Route

    1. CORS: preflight handling and allow-origin headers (Starlette)
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: access line with status and duration
    4. Body Size: refuse oversized uploads before anything reads them

Every reply, including the 413/400 short-circuits from Body Size, passes back
out through Request ID and CORS.
"""
