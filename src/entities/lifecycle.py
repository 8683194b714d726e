"""EntityLifecycle: create, update and delete while keeping the tree valid.

Rules enforced on every mutation:

- no entity is its own ancestor;
- the ancestor chain never grows past ``max_hierarchy_depth``;
- a department never attaches under an article, and articles always have a parent;
- an entity with living children cannot be a draft, so nothing attaches under a draft.

Checks run in a fixed order: existence, self-parent, parent existence, type
compatibility, descendant cycle, depth, then the draft rules.

Validation reads and the final write share one transaction. Every row the
checks read (the entity, its subtree and the new parent's ancestor chain) is
locked in a single id-ordered statement before validating, so two
concurrent moves that would only form a cycle together queue on the same
rows and the second one sees the first one's result.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from core.context import ExecutionContext
from core.errors import (
    CannotDraftEntityWithChildren,
    EntityNotFound,
    MaxDepthExceeded,
    ParentCycle,
    ParentIsDraft,
    ParentNotFound,
    ParentRequired,
    ParentTypeIncompatible,
    ValidationFailed,
)
from .models import EntityType
from .store import EntityDraft, HierarchyMode, HierarchyStore, ListItem

logger = logging.getLogger(__name__)


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class HierarchyConfig:
    max_hierarchy_depth: int
    max_name_length: int

    def __post_init__(self):
        if not is_positive_int(self.max_hierarchy_depth):
            raise ImproperlyConfigured("MAX_HIERARCHY_DEPTH must be a positive integer")
        if not is_positive_int(self.max_name_length):
            raise ImproperlyConfigured("MAX_NAME_LENGTH must be a positive integer")

    @classmethod
    def from_settings(cls) -> "HierarchyConfig":
        return cls(
            max_hierarchy_depth=getattr(settings, "MAX_HIERARCHY_DEPTH", 0),
            max_name_length=getattr(settings, "MAX_NAME_LENGTH", 0),
        )


class NameValidator:
    def __init__(self, max_length: int):
        self.max_length = max_length

    @staticmethod
    def normalize(name: Optional[str]) -> str:
        return (name or "").strip()

    def validate(self, name: str) -> None:
        if not name:
            raise ValidationFailed("name is required", field="name", rule="required")
        if len(name) > self.max_length:
            raise ValidationFailed(
                "name is too long", field="name", rule="too_long", params={"max": self.max_length}
            )


@dataclass
class CreateEntityRequest:
    type: str
    name: str
    user_id: Optional[uuid.UUID]
    content: str = ""
    parent_id: Optional[uuid.UUID] = None
    is_draft: bool = False


@dataclass
class UpdateEntityRequest:
    id: uuid.UUID
    name: str
    user_id: Optional[uuid.UUID]
    content: str = ""
    parent_id: Optional[uuid.UUID] = None
    parent_changed: bool = False
    is_draft: bool = False


class EntityLifecycle:
    """Mutation engine for the content hierarchy."""

    def __init__(
        self,
        store: Optional[HierarchyStore] = None,
        config: Optional[HierarchyConfig] = None,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.store = store or HierarchyStore()
        self.config = config or HierarchyConfig.from_settings()
        self.validator = NameValidator(self.config.max_name_length)
        self._new_id = id_factory
        self._now = clock

    @property
    def max_depth(self) -> int:
        return self.config.max_hierarchy_depth

    def create(self, ctx: ExecutionContext, req: CreateEntityRequest) -> uuid.UUID:
        if req.user_id is None:
            raise ValidationFailed("user_id is required", field="user_id", rule="required")
        try:
            entity_type = EntityType(req.type)
        except ValueError:
            raise ValidationFailed("invalid entity type", field="type", rule="invalid_format")
        name = self.validator.normalize(req.name)
        self.validator.validate(name)

        with transaction.atomic():
            if req.parent_id is not None:
                (chain,) = self._locked_traversal(ctx, (req.parent_id, HierarchyMode.PARENTS_ONLY))
                parent = _find(chain, req.parent_id)
                if parent is None:
                    raise ParentNotFound()
                if not entity_type.accepts_parent(parent.type):
                    raise ParentTypeIncompatible()
                if len(chain) >= self.max_depth:
                    raise MaxDepthExceeded(self.max_depth)
                self._ensure_parent_published(ctx, parent.id)
            elif not entity_type.may_be_root:
                raise ParentRequired()

            entity_id = self._new_id()
            now = self._now()
            draft = EntityDraft(
                id=entity_id,
                type=entity_type,
                name=name,
                content=req.content or "",
                parent_id=req.parent_id,
                user_id=req.user_id,
            )
            if req.is_draft:
                self.store.create_draft(ctx, draft, now)
            else:
                self.store.create_published(ctx, draft, now)

        logger.info(
            "Created %s %s (parent=%s, draft=%s) by user %s",
            entity_type.value, entity_id, req.parent_id, req.is_draft, req.user_id,
        )
        return entity_id

    def update(self, ctx: ExecutionContext, req: UpdateEntityRequest) -> None:
        if req.id is None:
            raise ValidationFailed("entity_id is required", field="entity_id", rule="required")
        if req.user_id is None:
            raise ValidationFailed("user_id is required", field="user_id", rule="required")
        name = self.validator.normalize(req.name)
        self.validator.validate(name)

        walks = [(req.id, HierarchyMode.CHILDREN_ONLY)]
        if req.parent_changed and req.parent_id is not None:
            walks.append((req.parent_id, HierarchyMode.PARENTS_ONLY))

        with transaction.atomic():
            subtree, *rest = self._locked_traversal(ctx, *walks)
            current = _find(subtree, req.id)
            if current is None:
                raise EntityNotFound()

            if req.parent_changed:
                self._validate_move(ctx, current, req.parent_id, rest[0] if rest else [], subtree)

            if req.is_draft and len(subtree) > 1:
                raise CannotDraftEntityWithChildren()

            draft = EntityDraft(
                id=req.id,
                name=name,
                content=req.content or "",
                parent_id=req.parent_id if req.parent_changed else current.parent_id,
                user_id=req.user_id,
            )
            now = self._now()
            if req.is_draft:
                self.store.update_draft(ctx, draft, now)
                version = None
            else:
                version = self.store.update_published(ctx, draft, now)

        logger.info(
            "Updated entity %s (parent_changed=%s, draft=%s, version=%s) by user %s",
            req.id, req.parent_changed, req.is_draft, version, req.user_id,
        )

    def delete(self, ctx: ExecutionContext, entity_id: uuid.UUID) -> list[uuid.UUID]:
        """Soft-delete ``entity_id`` together with its whole subtree."""
        with transaction.atomic():
            (subtree,) = self._locked_traversal(ctx, (entity_id, HierarchyMode.CHILDREN_ONLY))
            if not subtree:
                raise EntityNotFound()
            if max(item.depth for item in subtree) > self.max_depth:
                raise MaxDepthExceeded(self.max_depth)
            ids = [item.id for item in subtree]
            self.store.soft_delete(ctx, ids, self._now())

        logger.info("Deleted entity %s with %d descendant(s)", entity_id, len(ids) - 1)
        return ids

    def _validate_move(
        self,
        ctx: ExecutionContext,
        current: ListItem,
        parent_id: Optional[uuid.UUID],
        chain: list[ListItem],
        subtree: list[ListItem],
    ) -> None:
        """Validate attaching ``current`` under ``parent_id`` against locked state."""
        if parent_id is None:
            if not current.type.may_be_root:
                raise ParentRequired()
            return

        if parent_id == current.id:
            raise ParentCycle()
        parent = _find(chain, parent_id)
        if parent is None:
            raise ParentNotFound()
        if not current.type.accepts_parent(parent.type):
            raise ParentTypeIncompatible()
        if _find(chain, current.id) is not None:
            # The prospective parent is a descendant of the entity being moved.
            raise ParentCycle()

        max_child_depth = max((item.depth for item in subtree), default=0)
        if len(chain) + max_child_depth > self.max_depth:
            raise MaxDepthExceeded(self.max_depth)
        self._ensure_parent_published(ctx, parent.id)

    def _ensure_parent_published(self, ctx: ExecutionContext, parent_id: uuid.UUID) -> None:
        if self.store.get(ctx, parent_id).is_draft:
            raise ParentIsDraft()

    def _locked_traversal(
        self, ctx: ExecutionContext, *walks: tuple[uuid.UUID, HierarchyMode]
    ) -> list[list[ListItem]]:
        """Run every ``(root_id, mode)`` traversal and lock all rows they return.

        The union of the results is locked in one id-ordered statement. The
        traversals are then repeated until they return nothing new, so the
        results reflect state no concurrent writer can change before this
        transaction commits.
        """
        locked: set[uuid.UUID] = set()
        while True:
            results = [
                self.store.get_hierarchy(ctx, [root_id], self.max_depth + 1, mode) for root_id, mode in walks
            ]
            found = {item.id for items in results for item in items}
            if found <= locked:
                return results
            locked |= found
            self.store.lock(ctx, locked)


def _find(items: list[ListItem], entity_id: uuid.UUID) -> Optional[ListItem]:
    for item in items:
        if item.id == entity_id:
            return item
    return None


__all__ = [
    "HierarchyConfig",
    "NameValidator",
    "CreateEntityRequest",
    "UpdateEntityRequest",
    "EntityLifecycle",
]
