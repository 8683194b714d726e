"""RBAC models: the Role levels and per-user UserRole grants."""

from django.conf import settings
from django.db import models
from django.db.models import Q


class Role(models.TextChoices):
    """Access levels, ordered from least to most privileged."""

    READ = "read", "Read"
    WRITE = "write", "Write"
    ADMIN = "admin", "Admin"

    def hierarchy(self) -> frozenset["Role"]:
        """Return every role that satisfies a requirement of this level."""
        return ROLE_HIERARCHY[self]

    @property
    def requires_entity(self) -> bool:
        return self is not Role.ADMIN

    @property
    def expands_ancestors(self) -> bool:
        """Read access is inherited by ancestors; write access is not."""
        return self is Role.READ


ROLE_HIERARCHY: dict[Role, frozenset[Role]] = {
    Role.READ: frozenset({Role.ADMIN, Role.WRITE, Role.READ}),
    Role.WRITE: frozenset({Role.ADMIN, Role.WRITE}),
    Role.ADMIN: frozenset({Role.ADMIN}),
}


class UserRole(models.Model):
    """A role granted to a user, optionally scoped to one entity subtree.

    A grant without ``entity`` is the unrestricted Admin grant.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="roles")
    role = models.CharField(max_length=20, choices=Role.choices)
    entity = models.ForeignKey(
        "entities.Entity", null=True, blank=True, on_delete=models.CASCADE, related_name="grants"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "role", "entity"], name="user_roles_unique_scoped_grant"
            ),
            models.UniqueConstraint(
                fields=["user", "role"],
                condition=Q(entity__isnull=True),
                name="user_roles_unique_global_grant",
            ),
            models.CheckConstraint(
                condition=(
                    Q(role=Role.ADMIN, entity__isnull=True)
                    | (Q(role__in=[Role.READ, Role.WRITE]) & Q(entity__isnull=False))
                ),
                name="user_roles_scope_matches_role",
            ),
        ]
        indexes = [models.Index(fields=["user", "role"], name="user_roles_user_role_idx")]

    def __str__(self) -> str:  # pragma: no cover - trivial
        scope = self.entity_id or "*"
        return f"{self.user_id}:{self.role}@{scope}"


__all__ = ["Role", "ROLE_HIERARCHY", "UserRole"]
