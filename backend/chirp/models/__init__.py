# Models package init
"""
Chirp Backend — ORM Models
============================

Importing this package registers all three collections with Base.metadata
(used by Alembic and by the test suite's create_all()).
"""

from chirp.models.notification import NOTIFICATION_TYPES, Notification
from chirp.models.post import Post
from chirp.models.user import User

__all__ = ["NOTIFICATION_TYPES", "Notification", "Post", "User"]
