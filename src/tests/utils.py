"""Shared helpers for tests (users, grants, entities, fake Redis)."""

from __future__ import annotations

from typing import Dict, Optional

from django.contrib.auth import get_user_model

from access_control.models import Role, UserRole
from authentication.managers import UserManager
from core.context import ExecutionContext
from entities.lifecycle import CreateEntityRequest, EntityLifecycle
from entities.models import Entity, EntityType

User = get_user_model()


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests."""
        self._store[key] = value

    def get(self, key: str):
        return self._store.get(key)


def create_user(email: str, password: str = "Password123", **extra):
    """Create a user with a bcrypt-hashed password and no grants."""
    return User.objects.create(email=email, password=UserManager.hash_password(password), **extra)


def grant(user, role: Role, entity: Optional[Entity] = None) -> UserRole:
    return UserRole.objects.create(user=user, role=role, entity=entity)


def ctx_for(user, timeout: Optional[float] = None) -> ExecutionContext:
    return ExecutionContext.for_actor(user.id, timeout=timeout)


def make_entity(
    author,
    entity_type: EntityType,
    name: str,
    parent: Optional[Entity] = None,
    is_draft: bool = False,
    lifecycle: Optional[EntityLifecycle] = None,
    content: str = "",
) -> Entity:
    """Create an entity through the lifecycle so every rule applies."""
    lifecycle = lifecycle or EntityLifecycle()
    entity_id = lifecycle.create(
        ctx_for(author),
        CreateEntityRequest(
            type=entity_type,
            name=name,
            content=content,
            parent_id=parent.id if parent else None,
            is_draft=is_draft,
            user_id=author.id,
        ),
    )
    return Entity.objects.get(id=entity_id)
