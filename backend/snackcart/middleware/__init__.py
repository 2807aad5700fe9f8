# Middleware package init
"""
SnackCart Backend — Middleware Package
=======================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients before any processing
    2. Request ID: correlation id for every later log line
    3. Logging: method, path, status and duration with the request id
    4. CORS: the admin frontend is served from a different origin
"""
