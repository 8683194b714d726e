"""RoleService: grant, revoke and list a user's roles."""

import logging
import uuid
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.context import ExecutionContext
from core.errors import EntityNotFound, Forbidden, NotFound, ValidationFailed
from entities.models import Entity
from .models import Role, UserRole
from .permissions import PermissionResolver

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, resolver: Optional[PermissionResolver] = None):
        self.resolver = resolver or PermissionResolver()

    def _require_admin(self, ctx: ExecutionContext) -> None:
        if not self.resolver.is_admin(ctx):
            raise Forbidden()

    @staticmethod
    def _validate_scope(role, entity_id: Optional[uuid.UUID]) -> Role:
        try:
            role = Role(role)
        except ValueError:
            raise ValidationFailed("unknown role", field="role", rule="invalid_format")
        if role.requires_entity and entity_id is None:
            raise ValidationFailed(
                "entity_id is required for read and write roles", field="entity_id", rule="required"
            )
        if not role.requires_entity and entity_id is not None:
            raise ValidationFailed(
                "the admin role cannot be scoped to an entity", field="entity_id", rule="not_allowed"
            )
        return role

    def add_user_role(
        self, ctx: ExecutionContext, user_id: uuid.UUID, role, entity_id: Optional[uuid.UUID] = None
    ) -> UserRole:
        self._require_admin(ctx)
        role = self._validate_scope(role, entity_id)
        if not get_user_model().objects.filter(id=user_id).exists():
            raise ValidationFailed("user does not exist", field="user_id", rule="exists")
        if entity_id is not None and not Entity.objects.filter(id=entity_id).exists():
            raise EntityNotFound()

        if UserRole.objects.filter(user_id=user_id, role=role, entity_id=entity_id).exists():
            raise ValidationFailed("role is already granted", field="role", rule="unique")
        try:
            with transaction.atomic():
                grant = UserRole.objects.create(user_id=user_id, role=role, entity_id=entity_id)
        except IntegrityError:
            raise ValidationFailed("role is already granted", field="role", rule="unique")

        logger.info("Granted %s on %s to user %s by %s", role.value, entity_id or "*", user_id, ctx.actor_id)
        return grant

    def delete_user_role(
        self, ctx: ExecutionContext, user_id: uuid.UUID, role, entity_id: Optional[uuid.UUID] = None
    ) -> None:
        self._require_admin(ctx)
        role = self._validate_scope(role, entity_id)
        deleted, _ = UserRole.objects.filter(user_id=user_id, role=role, entity_id=entity_id).delete()
        if not deleted:
            raise NotFound("Role grant not found.")
        logger.info("Revoked %s on %s from user %s by %s", role.value, entity_id or "*", user_id, ctx.actor_id)

    def list_user_roles(self, ctx: ExecutionContext, user_id: uuid.UUID) -> list[UserRole]:
        actor_id = ctx.require_actor()
        if actor_id != user_id:
            self._require_admin(ctx)
        return list(UserRole.objects.filter(user_id=user_id).order_by("role", "entity_id"))


__all__ = ["RoleService"]
