"""Middleware to authenticate requests via JWT and the Redis blocklist."""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.services import BlocklistUnavailable, TokenService

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = (
    "Authentication credentials were not provided or are invalid, token revoked, or user is inactive."
)


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode the bearer access token and attach ``request.user``.

    A token is rejected when its ``jti`` is blocklisted or its ``ver`` no
    longer matches the user's ``token_version``.
    """

    def process_request(self, request):  # type: ignore[override]
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        if not auth_header or not auth_header.startswith("Bearer "):
            request.user = AnonymousUser()
            return None

        token = auth_header.split(" ", 1)[1]
        try:
            payload = TokenService.decode_token(token, expected_type="access")
            jti = payload.get("jti")
            if not jti or TokenService.is_token_blocked(jti):
                return _unauthorized()

            user = self._get_user(payload.get("sub"))
            if not user or not user.is_active or not TokenService.is_current_version(payload, user):
                return _unauthorized()

            request.user = user
            return None
        except AuthenticationFailed as exc:
            logger.debug("Rejected bearer token: %s", exc.detail)
            return _unauthorized()
        except BlocklistUnavailable:
            return _service_unavailable()

    @staticmethod
    def _get_user(user_id: Optional[str]):
        if not user_id:
            return None
        return get_user_model().objects.filter(id=user_id).first()


def _unauthorized() -> JsonResponse:
    return JsonResponse({"data": None, "errors": [UNAUTHORIZED_MESSAGE]}, status=status.HTTP_401_UNAUTHORIZED)


def _service_unavailable() -> JsonResponse:
    return JsonResponse(
        {"data": None, "errors": ["Authentication service unavailable (blocklist)."]},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["JWTAuthMiddleware", "UNAUTHORIZED_MESSAGE"]
