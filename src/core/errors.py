"""User-facing error taxonomy shared by the access control and entity apps.

Every error here is a DRF ``APIException`` so the transport layer renders it
directly. Anything that is *not* an ``AppError`` (database failures, timeouts)
is treated as an internal failure by ``core.exceptions``.
"""

from typing import Any

from rest_framework import status
from rest_framework.exceptions import APIException


class AppError(APIException):
    """Base class for errors that are safe to show to API callers."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request."
    default_code = "core/bad_request"

    # Optional violation description (which field broke which rule).
    field: str | None = None
    rule: str | None = None

    def __init__(self, detail: str | None = None, *, params: dict[str, Any] | None = None):
        super().__init__(detail=detail, code=self.default_code)
        self.params = params or {}

    @property
    def code(self) -> str:
        return self.default_code

    @property
    def message(self) -> str:
        return str(self.detail)

    def violations(self) -> list[dict[str, Any]]:
        if not self.field:
            return []
        violation: dict[str, Any] = {"field": self.field, "rule": self.rule}
        if self.params:
            violation["params"] = self.params
        return [violation]


class ValidationFailed(AppError):
    default_detail = "Validation failed."
    default_code = "core/validation_failed"

    def __init__(
        self,
        detail: str | None = None,
        *,
        field: str | None = None,
        rule: str | None = None,
        params: dict[str, Any] | None = None,
    ):
        super().__init__(detail, params=params)
        self.field = field
        self.rule = rule


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "core/not_found"


class EntityNotFound(NotFound):
    default_detail = "Entity not found."
    default_code = "entity/not_found"


class ParentNotFound(NotFound):
    default_detail = "Parent entity not found."
    default_code = "entity/parent_not_found"
    field = "parent_id"
    rule = "exists"


class ParentRequired(AppError):
    default_detail = "Article must have a parent entity."
    default_code = "entity/parent_required"
    field = "parent_id"
    rule = "required"


class ParentCycle(AppError):
    default_detail = "Parent cycle detected."
    default_code = "entity/parent_cycle"
    field = "parent_id"
    rule = "cycle"


class ParentTypeIncompatible(AppError):
    default_detail = "Invalid parent type."
    default_code = "entity/parent_type_incompatible"
    field = "parent_id"
    rule = "type_compatibility"


class MaxDepthExceeded(AppError):
    default_detail = "Maximum hierarchy depth exceeded."
    default_code = "entity/max_depth_exceeded"
    field = "parent_id"
    rule = "max_hierarchy"

    def __init__(self, max_depth: int, detail: str | None = None):
        super().__init__(detail, params={"max_depth": max_depth})


class CannotDraftEntityWithChildren(AppError):
    default_detail = "An entity with children cannot be turned into a draft."
    default_code = "entity/cannot_draft_with_children"
    field = "is_draft"
    rule = "has_children"


class ParentIsDraft(AppError):
    default_detail = "Cannot attach an entity under a draft."
    default_code = "entity/parent_is_draft"
    field = "parent_id"
    rule = "draft_parent"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You do not have permission to perform this action on this resource."
    default_code = "core/forbidden"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication credentials were not provided or are invalid."
    default_code = "core/unauthorized"


__all__ = [
    "AppError",
    "ValidationFailed",
    "NotFound",
    "EntityNotFound",
    "ParentNotFound",
    "ParentRequired",
    "ParentCycle",
    "ParentTypeIncompatible",
    "MaxDepthExceeded",
    "CannotDraftEntityWithChildren",
    "ParentIsDraft",
    "Forbidden",
    "Unauthenticated",
]
