"""
Chirp Backend — Session Middleware
====================================

What:  Reads the session cookie and attaches the verified identity to
       request.state before any route runs.
How:   AuthService.validate_token() on the cookie value. A failure is not
       answered here: it is parked on request.state.session_error and only
       turned into a 401 by get_current_user, so public routes keep working
       with a stale cookie.
Who:   Every request; consumed by chirp.routes.deps.

request.state after this middleware:
    user_id        UUID of the session user, or None
    session_error  UnauthorizedError explaining why user_id is None, or None
                   when no cookie was sent at all
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from chirp.exceptions import UnauthorizedError
from chirp.services.auth_service import auth_service

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """Verifies the jwt cookie once per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.user_id = None
        request.state.session_error = None

        token = request.cookies.get(auth_service.config.cookie_name)
        if token:
            try:
                claims = auth_service.validate_token(token)
                request.state.user_id = claims["user_id"]
            except UnauthorizedError as e:
                logger.debug("Rejected session cookie on %s: %s", request.url.path, e.message)
                request.state.session_error = e

        return await call_next(request)
