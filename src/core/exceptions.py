"""Custom exception handling to enforce the API error envelope."""

import logging
from typing import Any

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from authentication.services import BlocklistUnavailable
from .errors import AppError
from .middleware import UNAUTHORIZED_MESSAGE

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = "You do not have permission to perform this action on this resource."
INTERNAL_ERROR_MESSAGE = "Internal server error."


def _normalize_errors(payload: Any) -> list[Any]:
    """Convert DRF's response.data into a list for the envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "detail" in payload:
        return [payload["detail"]]
    return [payload]


def _app_error_response(exc: AppError, context: dict[str, Any]) -> Response:
    view = context.get("view")
    logger.warning(
        "%s rejected with %s: %s",
        type(view).__name__ if view is not None else "request",
        exc.code,
        exc.message,
    )
    body: dict[str, Any] = {"data": None, "errors": [exc.message], "code": exc.code}
    violations = exc.violations()
    if violations:
        body["violations"] = violations
    headers = {}
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = 'Bearer realm="api"'
    return Response(body, status=exc.status_code, headers=headers)


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap every error in the `{ "data": null, "errors": [...] }` shape.

    - Domain errors (``AppError``) carry a stable ``code`` and optional violations.
    - DRF's own errors go through its default handler and get normalized messages.
    - Anything else is logged with its traceback and reported as a generic 500.
    """
    if isinstance(exc, AppError):
        return _app_error_response(exc, context)

    # The blocklist is security critical; fail closed.
    if isinstance(exc, BlocklistUnavailable):
        return Response(
            {"data": None, "errors": ["Authentication service unavailable (blocklist)."]},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        logger.exception("Unhandled error while processing request", exc_info=exc)
        return Response(
            {"data": None, "errors": [INTERNAL_ERROR_MESSAGE]},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code >= 400:
        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            if getattr(settings, "DEBUG_AUTH_ERRORS", False):
                errors = _normalize_errors(response.data)
            else:
                errors = [UNAUTHORIZED_MESSAGE]
        elif response.status_code == status.HTTP_403_FORBIDDEN:
            errors = [FORBIDDEN_MESSAGE]
        else:
            errors = _normalize_errors(response.data)
        response.data = {"data": None, "errors": errors}

    return response
