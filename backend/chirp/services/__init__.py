# Services package init
"""
Chirp Backend — Services Layer
================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless service objects; every call receives the request's
       AsyncSession and returns ORM rows or response schemas.

Service Inventory:
    - AuthService: signup, login, session tokens, password hashing
    - UserService: profiles, follow graph, profile updates, suggestions
    - PostService: posts, likes, comments, feeds
    - NotificationService: inbox listing, read marking, deletion
    - MediaHost (abstract): image storage
        - CloudinaryMediaHost: Cloudinary REST API
        - LocalMediaHost: local disk, served by /api/v1/media
"""
