# Middleware package init
"""
Chirp Backend — Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Rate Limit] → [Logging] → [Session] → [CORS] → Route

    1. Request ID: correlation ID for logs, error envelopes and 429 bodies
    2. Rate Limit: reject abusive clients before any other work
    3. Logging: one access line with status and duration
    4. Session: verify the jwt cookie, attach the identity to request.state
    5. CORS: FastAPI's CORSMiddleware (credentials allowed for the cookie)
"""
