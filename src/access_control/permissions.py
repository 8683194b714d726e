"""Permission resolution with hierarchy-aware inheritance.

``PermissionResolver`` answers "which entities did this actor get a role on
directly". ``EffectivePermissionSet`` widens those direct grants through the
hierarchy: a grant on a node covers its whole subtree, and Read grants are
also visible on the ancestors so the tree above a granted node can be
navigated. Nothing is cached; every call reads the current store state.
"""

import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from django.conf import settings
from rest_framework import permissions

from core.context import ExecutionContext
from core.errors import Forbidden, ValidationFailed
from entities.store import HierarchyMode, HierarchyStore
from .models import Role, UserRole


@dataclass(frozen=True)
class DirectPermissions:
    entity_ids: frozenset[uuid.UUID] = frozenset()
    is_admin: bool = False


class PermissionResolver:
    """Load the actor's direct grants satisfying a required level."""

    @staticmethod
    def parse_level(required_level) -> Role:
        try:
            return Role(required_level)
        except ValueError:
            raise ValidationFailed("unknown role", field="role", rule="invalid_format")

    def get_direct_permissions(self, ctx: ExecutionContext, required_level) -> DirectPermissions:
        actor_id = ctx.require_actor()
        level = self.parse_level(required_level)
        ctx.check()

        rows = UserRole.objects.filter(user_id=actor_id, role__in=list(level.hierarchy()))
        entity_ids = set()
        for entity_id in rows.values_list("entity_id", flat=True):
            if entity_id is None:
                return DirectPermissions(is_admin=True)
            entity_ids.add(entity_id)
        return DirectPermissions(entity_ids=frozenset(entity_ids))

    def is_admin(self, ctx: ExecutionContext) -> bool:
        return self.get_direct_permissions(ctx, Role.ADMIN).is_admin


@dataclass(frozen=True)
class EffectivePermissionSet:
    entity_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)
    unrestricted: bool = False

    @classmethod
    def expand(
        cls,
        ctx: ExecutionContext,
        direct: DirectPermissions,
        expand_ancestors: bool,
        store: Optional[HierarchyStore] = None,
        max_depth: Optional[int] = None,
    ) -> "EffectivePermissionSet":
        """Close ``direct`` over the hierarchy with a single store traversal."""
        if direct.is_admin:
            return cls(unrestricted=True)
        if not direct.entity_ids:
            return cls()

        store = store or HierarchyStore()
        if max_depth is None:
            max_depth = settings.MAX_HIERARCHY_DEPTH
        mode = HierarchyMode.CHILDREN_AND_PARENTS if expand_ancestors else HierarchyMode.CHILDREN_ONLY
        items = store.get_hierarchy(ctx, direct.entity_ids, max_depth, mode)
        return cls(entity_ids=frozenset(item.id for item in items))

    def check_id(self, entity_id: uuid.UUID) -> bool:
        return self.unrestricted or entity_id in self.entity_ids

    def check_parent_ids(self, parent_ids: Iterable[Optional[uuid.UUID]]) -> bool:
        """Only an unrestricted actor may work at the root (a null parent)."""
        for parent_id in parent_ids:
            if parent_id is None:
                if not self.unrestricted:
                    return False
            elif not self.check_id(parent_id):
                return False
        return True

    def ensure_id(self, entity_id: uuid.UUID) -> None:
        if not self.check_id(entity_id):
            raise Forbidden()

    def ensure_parent_ids(self, parent_ids: Iterable[Optional[uuid.UUID]]) -> None:
        if not self.check_parent_ids(parent_ids):
            raise Forbidden()


def resolve_effective_permissions(
    ctx: ExecutionContext,
    level,
    resolver: Optional[PermissionResolver] = None,
    store: Optional[HierarchyStore] = None,
) -> EffectivePermissionSet:
    resolver = resolver or PermissionResolver()
    role = PermissionResolver.parse_level(level)
    direct = resolver.get_direct_permissions(ctx, role)
    return EffectivePermissionSet.expand(ctx, direct, role.expands_ancestors, store=store)


class IsAuthenticatedActor(permissions.BasePermission):
    """DRF gate: only authenticated users reach the hierarchy endpoints.

    Per-entity decisions are made by the services against the effective
    permission set, not here.
    """

    message = "Authentication credentials were not provided or are invalid."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        return bool(user and getattr(user, "is_authenticated", False))


__all__ = [
    "DirectPermissions",
    "PermissionResolver",
    "EffectivePermissionSet",
    "resolve_effective_permissions",
    "IsAuthenticatedActor",
]
