"""EntityService: authorize against the effective permission set, then act."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from access_control.models import Role
from access_control.permissions import (
    EffectivePermissionSet,
    PermissionResolver,
    resolve_effective_permissions,
)
from core.context import ExecutionContext
from core.errors import ValidationFailed
from .lifecycle import CreateEntityRequest, EntityLifecycle, UpdateEntityRequest
from .models import Entity, EntityVersion
from .store import HierarchyMode, HierarchyStore
from .tree import TreeNode, build_tree

logger = logging.getLogger(__name__)


@dataclass
class CreateEntityCommand:
    type: str
    name: str
    content: str = ""
    parent_id: Optional[uuid.UUID] = None
    is_draft: bool = False


@dataclass
class UpdateEntityCommand:
    id: uuid.UUID
    name: str
    content: str = ""
    parent_id: Optional[uuid.UUID] = None
    is_draft: bool = False


class EntityService:
    def __init__(
        self,
        store: Optional[HierarchyStore] = None,
        lifecycle: Optional[EntityLifecycle] = None,
        resolver: Optional[PermissionResolver] = None,
    ):
        self.store = store or HierarchyStore()
        self.lifecycle = lifecycle or EntityLifecycle(store=self.store)
        self.resolver = resolver or PermissionResolver()

    def _permissions(self, ctx: ExecutionContext, level: Role) -> EffectivePermissionSet:
        return resolve_effective_permissions(ctx, level, resolver=self.resolver, store=self.store)

    # Reads

    def get_tree(self, ctx: ExecutionContext) -> list[TreeNode]:
        """Return the forest of every entity the actor may read."""
        direct = self.resolver.get_direct_permissions(ctx, Role.READ)
        if direct.is_admin:
            items = self.store.get_all(ctx)
        elif not direct.entity_ids:
            return []
        else:
            items = self.store.get_hierarchy(
                ctx,
                direct.entity_ids,
                self.lifecycle.max_depth,
                HierarchyMode.CHILDREN_AND_PARENTS,
            )
        return build_tree(items)

    def get(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> Entity:
        self._permissions(ctx, Role.READ).ensure_id(entity_id)
        return self.store.get(ctx, entity_id)

    def list_versions(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> list[EntityVersion]:
        self._permissions(ctx, Role.READ).ensure_id(entity_id)
        self.store.get_list_item(ctx, entity_id)
        return self.store.list_versions(ctx, entity_id)

    def get_version(self, ctx: ExecutionContext, entity_id: uuid.UUID, version: int) -> EntityVersion:
        if version <= 0:
            raise ValidationFailed("version must be positive", field="version", rule="min", params={"min": 1})
        self._permissions(ctx, Role.READ).ensure_id(entity_id)
        return self.store.get_version(ctx, entity_id, version)

    # Mutations

    def create(self, ctx: ExecutionContext, cmd: CreateEntityCommand) -> uuid.UUID:
        actor_id = ctx.require_actor()
        self._permissions(ctx, Role.WRITE).ensure_parent_ids([cmd.parent_id])
        return self.lifecycle.create(
            ctx,
            CreateEntityRequest(
                type=cmd.type,
                name=cmd.name,
                content=cmd.content,
                parent_id=cmd.parent_id,
                is_draft=cmd.is_draft,
                user_id=actor_id,
            ),
        )

    def update(self, ctx: ExecutionContext, cmd: UpdateEntityCommand) -> None:
        actor_id = ctx.require_actor()
        permissions = self._permissions(ctx, Role.WRITE)
        permissions.ensure_id(cmd.id)

        current = self.store.get_list_item(ctx, cmd.id)
        parent_changed = current.parent_id != cmd.parent_id
        if parent_changed:
            permissions.ensure_parent_ids([cmd.parent_id, current.parent_id])

        self.lifecycle.update(
            ctx,
            UpdateEntityRequest(
                id=cmd.id,
                name=cmd.name,
                content=cmd.content,
                parent_id=cmd.parent_id,
                parent_changed=parent_changed,
                is_draft=cmd.is_draft,
                user_id=actor_id,
            ),
        )

    def delete(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> None:
        self._permissions(ctx, Role.WRITE).ensure_id(entity_id)
        self.lifecycle.delete(ctx, entity_id)


__all__ = ["EntityService", "CreateEntityCommand", "UpdateEntityCommand"]
