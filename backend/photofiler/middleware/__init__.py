# Middleware package init
"""
PhotoFiler Backend: Middleware Package
========================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for every log line of the request
    2. Logging: method, path, status and duration, tagged with the request ID
"""
