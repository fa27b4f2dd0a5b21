# Routes package init
"""
Chirp Backend — API Routes Package
====================================

Route Inventory (prefix /api/v1 unless noted):
    - auth.py:          signup, login, logout, me
    - users.py:         profiles, followers/following, suggestions, follow, update
    - posts.py:         feeds, create, like, comment, delete
    - notifications.py: list (marks read), delete one, delete all
    - media.py:         GET /api/v1/media/{path} (local media host only)
    - health.py:        GET /health

Routes stay thin: parse the request, call one service, shape the response.
Authentication comes from the dependencies in deps.py.
"""

API_PREFIX = "/api/v1"
