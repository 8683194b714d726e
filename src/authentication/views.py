"""Authentication endpoints: register, login, refresh, logout, and profile."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response

from core.response import BaseAPIView, api_response
from .serializers import (
    LoginSerializer,
    RefreshSerializer,
    RegisterSerializer,
    TokenPairSerializer,
    UserDetailSerializer,
)
from .services import TokenService

User = get_user_model()
logger = logging.getLogger(__name__)


class RegisterView(BaseAPIView):
    permission_classes: list[Any] = []

    @extend_schema(request=RegisterSerializer, responses={201: UserDetailSerializer})
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s", user.id)
        return api_response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(BaseAPIView):
    permission_classes: list[Any] = []

    @extend_schema(request=LoginSerializer, responses=TokenPairSerializer)
    def post(self, request):
        """Authenticate and issue access + refresh tokens."""
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        access, refresh = TokenService.generate_tokens(serializer.validated_data["user"])
        return api_response({"access": access, "refresh": refresh})


class RefreshView(BaseAPIView):
    permission_classes: list[Any] = []

    @extend_schema(request=RefreshSerializer, responses=TokenPairSerializer)
    def post(self, request):
        """Exchange a valid refresh token for a new token pair."""
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            raise AuthenticationFailed("Refresh token required")

        payload = TokenService.decode_token(refresh_token, expected_type="refresh")
        user = _get_active_user(payload.get("sub"))
        if not user:
            raise AuthenticationFailed("User not found or inactive")
        if not TokenService.is_current_version(payload, user) or TokenService.is_token_blocked(payload["jti"]):
            raise AuthenticationFailed("Invalid or revoked refresh token")

        # Refresh tokens are single use.
        TokenService.block_token(payload["jti"], payload["exp"])
        access, new_refresh = TokenService.generate_tokens(user)
        return api_response({"access": access, "refresh": new_refresh})


class LogoutView(BaseAPIView):
    """Invalidate the current access token by blocklisting its jti."""

    permission_classes: list[Any] = []

    @extend_schema(request=None, responses={204: None})
    def post(self, request):
        token = _get_bearer_token(request)
        if not token:
            raise NotAuthenticated("Missing token.")
        payload = TokenService.decode_token(token, expected_type="access")
        TokenService.block_token(payload["jti"], payload["exp"])
        return Response(status=status.HTTP_204_NO_CONTENT)


class LogoutAllView(BaseAPIView):
    """Invalidate every token of the current user across devices."""

    permission_classes: list[Any] = []

    @extend_schema(request=None, responses={204: None})
    def post(self, request):
        if not request.user.is_authenticated:
            raise NotAuthenticated("Authentication required")

        version = request.user.bump_token_version()
        token = _get_bearer_token(request)
        if token:
            payload = TokenService.decode_token(token, expected_type="access")
            TokenService.block_token(payload["jti"], payload["exp"])
        logger.info("User %s logged out of all sessions (token_version=%s)", request.user.id, version)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(BaseAPIView):
    permission_classes: list[Any] = []

    @extend_schema(responses=UserDetailSerializer)
    def get(self, request):
        if not request.user.is_authenticated:
            raise NotAuthenticated("Authentication required")
        return api_response(UserDetailSerializer(request.user).data)


def _get_active_user(user_id):
    if not user_id:
        return None
    user = User.objects.filter(id=user_id).first()
    if user is None or not user.is_active:
        return None
    return user


def _get_bearer_token(request) -> str | None:
    auth_header = request.META.get("HTTP_AUTHORIZATION", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None
