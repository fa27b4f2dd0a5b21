"""
Chirp Backend — Application Package
=====================================

Layered like this:

    ┌─────────────────────────────────────┐
    │     Middleware + Routes (HTTP)      │  ← cookies, status codes, envelopes
    ├─────────────────────────────────────┤
    │        Services (Business Logic)    │  ← follow/like toggles, feeds, inbox
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← one AsyncSession per request
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
