# Schemas package init
"""
Chirp Backend — Pydantic Schemas
==================================

    - user.py:         signup/login/update bodies, UserResponse, UserSummary
    - post.py:         CreatePostRequest, CommentRequest, PostResponse, LikesResponse
    - notification.py: NotificationCreate (internal), NotificationResponse
    - common.py:       MessageResponse, ErrorResponse, HealthResponse

Responses never carry the password hash: UserResponse and UserSummary list
their fields explicitly.
"""
