# Middleware package init
"""
Client Records Backend — Middleware Package
=============================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    - Request ID first, so every log line of the request can carry it
    - Logging measures the full handler duration and final status
"""
