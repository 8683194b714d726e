"""Content hierarchy models: Entity and its immutable EntityVersion snapshots."""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class EntityType(models.TextChoices):
    """Closed set of node types in the content hierarchy."""

    ARTICLE = "article", "Article"
    DEPARTMENT = "department", "Department"

    def accepts_parent(self, parent_type: "EntityType") -> bool:
        """Return True if an entity of this type may attach under ``parent_type``."""
        return EntityType(parent_type) in ALLOWED_PARENT_TYPES[self]

    @property
    def may_be_root(self) -> bool:
        return self in ROOT_TYPES


# Child type -> parent types it may attach under.
ALLOWED_PARENT_TYPES: dict[EntityType, frozenset[EntityType]] = {
    EntityType.ARTICLE: frozenset({EntityType.ARTICLE, EntityType.DEPARTMENT}),
    EntityType.DEPARTMENT: frozenset({EntityType.DEPARTMENT}),
}
ROOT_TYPES = frozenset({EntityType.DEPARTMENT})


class EntityStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class LiveEntityManager(models.Manager):
    """Default manager hiding soft-deleted entities."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class Entity(models.Model):
    """A node in the content hierarchy (article or department)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=20, choices=EntityType.choices)
    name = models.TextField()
    content = models.TextField(blank=True, default="")
    parent = models.ForeignKey(
        "self", null=True, blank=True, on_delete=models.CASCADE, related_name="children"
    )
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    status = models.CharField(max_length=20, choices=EntityStatus.choices, default=EntityStatus.DRAFT)
    current_version = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = LiveEntityManager()
    all_objects = models.Manager()

    class Meta:
        base_manager_name = "all_objects"
        indexes = [models.Index(fields=["parent"], name="entities_parent_idx")]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status=EntityStatus.DRAFT, current_version__isnull=True)
                    | Q(status=EntityStatus.PUBLISHED, current_version__gte=1)
                ),
                name="entities_status_matches_version",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.type}:{self.name}"

    @property
    def is_draft(self) -> bool:
        return self.status == EntityStatus.DRAFT


class EntityVersion(models.Model):
    """Immutable snapshot written each time an entity is published."""

    entity = models.ForeignKey(Entity, on_delete=models.CASCADE, related_name="versions")
    version = models.PositiveIntegerField()
    name = models.TextField()
    content = models.TextField(blank=True, default="")
    parent = models.ForeignKey(Entity, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    created_at = models.DateTimeField()

    class Meta:
        ordering = ["-version"]
        constraints = [
            models.UniqueConstraint(fields=["entity", "version"], name="entity_versions_unique_version"),
            models.CheckConstraint(condition=Q(version__gte=1), name="entity_versions_positive_version"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.entity_id} v{self.version}"


__all__ = ["EntityType", "EntityStatus", "Entity", "EntityVersion", "ALLOWED_PARENT_TYPES", "ROOT_TYPES"]
