"""HierarchyStore: ORM-backed traversal and persistence of entities.

Traversal is breadth-first, one query per level, so it behaves the same on
PostgreSQL and SQLite. Every level checks the execution context so a
pathological tree cannot run past the caller's deadline.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from django.db import transaction
from django.db.models import Max

from core.context import ExecutionContext
from core.errors import EntityNotFound
from .models import Entity, EntityStatus, EntityType, EntityVersion

_LIST_FIELDS = ("id", "type", "name", "parent_id")


class HierarchyMode(enum.Enum):
    CHILDREN_AND_PARENTS = "children_and_parents"
    CHILDREN_ONLY = "children_only"
    PARENTS_ONLY = "parents_only"

    @property
    def includes_children(self) -> bool:
        return self is not HierarchyMode.PARENTS_ONLY

    @property
    def includes_parents(self) -> bool:
        return self is not HierarchyMode.CHILDREN_ONLY


@dataclass(frozen=True)
class ListItem:
    """Lightweight projection of an entity used by traversal and tree code."""

    id: uuid.UUID
    type: EntityType
    name: str
    parent_id: Optional[uuid.UUID] = None
    depth: int = 0

    @classmethod
    def from_row(cls, row: dict, depth: int = 0) -> "ListItem":
        return cls(
            id=row["id"],
            type=EntityType(row["type"]),
            name=row["name"],
            parent_id=row["parent_id"],
            depth=depth,
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "type": self.type.value,
            "name": self.name,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "depth": self.depth,
        }


@dataclass(frozen=True)
class EntityDraft:
    """Field values written by create/update operations."""

    id: uuid.UUID
    name: str
    content: str
    parent_id: Optional[uuid.UUID]
    user_id: uuid.UUID
    type: Optional[EntityType] = None


class HierarchyStore:
    """Traversal contract plus CRUD of Entity / EntityVersion rows."""

    # Traversal

    def get_hierarchy(
        self,
        ctx: ExecutionContext,
        root_ids: Iterable[uuid.UUID],
        max_depth: int,
        mode: HierarchyMode,
    ) -> list[ListItem]:
        """Return every live node within ``max_depth`` hops of any root.

        Each item carries its hop distance from the nearest root. Roots that do
        not exist (or are soft-deleted) contribute nothing.
        """
        root_ids = set(root_ids)
        if not root_ids:
            return []
        ctx.check()
        roots = {
            row["id"]: ListItem.from_row(row)
            for row in Entity.objects.filter(id__in=root_ids).values(*_LIST_FIELDS)
        }
        if not roots:
            return []

        found: dict[uuid.UUID, ListItem] = {}
        if mode.includes_children:
            _merge(found, self._walk(ctx, roots, max_depth, self._children_of))
        if mode.includes_parents:
            _merge(found, self._walk(ctx, roots, max_depth, self._parents_of))
        return list(found.values())

    def get_all(self, ctx: ExecutionContext) -> list[ListItem]:
        ctx.check()
        return [ListItem.from_row(row) for row in Entity.objects.values(*_LIST_FIELDS)]

    def get_list_item(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> ListItem:
        ctx.check()
        row = Entity.objects.filter(id=entity_id).values(*_LIST_FIELDS).first()
        if row is None:
            raise EntityNotFound()
        return ListItem.from_row(row)

    @staticmethod
    def _walk(
        ctx: ExecutionContext,
        roots: dict[uuid.UUID, ListItem],
        max_depth: int,
        step: Callable[[list[ListItem]], list[dict]],
    ) -> dict[uuid.UUID, ListItem]:
        found = dict(roots)
        frontier = list(roots.values())
        depth = 0
        while frontier and depth < max_depth:
            ctx.check()
            depth += 1
            next_frontier = []
            for row in step(frontier):
                if row["id"] in found:
                    continue
                item = ListItem.from_row(row, depth=depth)
                found[item.id] = item
                next_frontier.append(item)
            frontier = next_frontier
        return found

    @staticmethod
    def _children_of(frontier: list[ListItem]) -> list[dict]:
        ids = [item.id for item in frontier]
        return list(Entity.objects.filter(parent_id__in=ids).values(*_LIST_FIELDS))

    @staticmethod
    def _parents_of(frontier: list[ListItem]) -> list[dict]:
        ids = {item.parent_id for item in frontier if item.parent_id is not None}
        if not ids:
            return []
        return list(Entity.objects.filter(id__in=ids).values(*_LIST_FIELDS))

    # Locking

    def lock(self, ctx: ExecutionContext, entity_ids: Iterable[uuid.UUID]) -> set[uuid.UUID]:
        """Row-lock the given live entities for the rest of the transaction.

        Rows are locked in id order to keep concurrent writers from
        deadlocking each other. Returns the ids that were actually locked.
        """
        ctx.check()
        ids = sorted(set(entity_ids), key=str)
        if not ids:
            return set()
        locked = (
            Entity.objects.select_for_update()
            .filter(id__in=ids)
            .order_by("id")
            .values_list("id", flat=True)
        )
        return set(locked)

    # Reads

    def get(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> Entity:
        ctx.check()
        try:
            return Entity.objects.get(id=entity_id)
        except Entity.DoesNotExist:
            raise EntityNotFound()

    def get_version(self, ctx: ExecutionContext, entity_id: uuid.UUID, version: int) -> EntityVersion:
        ctx.check()
        try:
            return EntityVersion.objects.get(
                entity_id=entity_id, version=version, entity__deleted_at__isnull=True
            )
        except EntityVersion.DoesNotExist:
            raise EntityNotFound()

    def list_versions(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> list[EntityVersion]:
        ctx.check()
        return list(
            EntityVersion.objects.filter(entity_id=entity_id, entity__deleted_at__isnull=True).order_by("-version")
        )

    # Writes

    def create_draft(self, ctx: ExecutionContext, draft: EntityDraft, created_at: datetime) -> None:
        ctx.check()
        Entity.objects.create(
            id=draft.id,
            type=draft.type,
            name=draft.name,
            content=draft.content,
            parent_id=draft.parent_id,
            created_by_id=draft.user_id,
            updated_by_id=draft.user_id,
            status=EntityStatus.DRAFT,
            current_version=None,
            created_at=created_at,
            updated_at=created_at,
        )

    def create_published(self, ctx: ExecutionContext, draft: EntityDraft, created_at: datetime) -> None:
        ctx.check()
        with transaction.atomic():
            entity = Entity.objects.create(
                id=draft.id,
                type=draft.type,
                name=draft.name,
                content=draft.content,
                parent_id=draft.parent_id,
                created_by_id=draft.user_id,
                updated_by_id=draft.user_id,
                status=EntityStatus.PUBLISHED,
                current_version=1,
                created_at=created_at,
                updated_at=created_at,
            )
            EntityVersion.objects.create(
                entity=entity,
                version=1,
                name=draft.name,
                content=draft.content,
                parent_id=draft.parent_id,
                created_by_id=draft.user_id,
                created_at=created_at,
            )

    def update_draft(self, ctx: ExecutionContext, draft: EntityDraft, updated_at: datetime) -> None:
        """Rewrite the entity row in place and mark it as a draft."""
        ctx.check()
        updated = Entity.objects.filter(id=draft.id).update(
            name=draft.name,
            content=draft.content,
            parent_id=draft.parent_id,
            updated_by_id=draft.user_id,
            updated_at=updated_at,
            status=EntityStatus.DRAFT,
            current_version=None,
        )
        if not updated:
            raise EntityNotFound()

    def update_published(self, ctx: ExecutionContext, draft: EntityDraft, updated_at: datetime) -> int:
        """Append the next version snapshot and point the entity at it.

        The next number follows the highest stored version, so a draft that is
        published again continues the existing sequence without gaps.
        """
        ctx.check()
        with transaction.atomic():
            entity = Entity.objects.select_for_update().filter(id=draft.id).first()
            if entity is None:
                raise EntityNotFound()
            latest = EntityVersion.objects.filter(entity=entity).aggregate(latest=Max("version"))["latest"]
            next_version = (latest or 0) + 1
            EntityVersion.objects.create(
                entity=entity,
                version=next_version,
                name=draft.name,
                content=draft.content,
                parent_id=draft.parent_id,
                created_by_id=draft.user_id,
                created_at=updated_at,
            )
            entity.name = draft.name
            entity.content = draft.content
            entity.parent_id = draft.parent_id
            entity.updated_by_id = draft.user_id
            entity.updated_at = updated_at
            entity.status = EntityStatus.PUBLISHED
            entity.current_version = next_version
            entity.save(
                update_fields=[
                    "name",
                    "content",
                    "parent",
                    "updated_by",
                    "updated_at",
                    "status",
                    "current_version",
                ]
            )
        return next_version

    def soft_delete(self, ctx: ExecutionContext, entity_ids: Iterable[uuid.UUID], deleted_at: datetime) -> int:
        """Mark every id as deleted with one UPDATE statement."""
        ctx.check()
        return Entity.objects.filter(id__in=list(entity_ids)).update(deleted_at=deleted_at)


def _merge(target: dict[uuid.UUID, ListItem], items: dict[uuid.UUID, ListItem]) -> None:
    """Merge traversal results keeping the smallest depth per id."""
    for entity_id, item in items.items():
        existing = target.get(entity_id)
        if existing is None or item.depth < existing.depth:
            target[entity_id] = item


__all__ = ["HierarchyMode", "HierarchyStore", "ListItem", "EntityDraft"]
