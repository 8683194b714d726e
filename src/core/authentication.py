"""Bridge the user attached by ``JWTAuthMiddleware`` into DRF.

Token verification happens once, in the middleware. DRF only needs to see
the resulting user, and a ``WWW-Authenticate`` value so that unauthenticated
requests are answered with 401 rather than 403.
"""

from typing import Any, Optional, Tuple

from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Expose ``request._request.user`` (set by middleware) to DRF."""

    www_authenticate_realm = "api"

    def authenticate(self, request) -> Optional[Tuple[Any, None]]:
        django_request = getattr(request, "_request", None)
        user = getattr(django_request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        return user, None

    def authenticate_header(self, request) -> str:
        return f'Bearer realm="{self.www_authenticate_realm}"'


__all__ = ["MiddlewareUserAuthentication"]
