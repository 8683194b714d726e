"""Serializers for role grant resources."""

from rest_framework import serializers

from .models import Role, UserRole


class UserRoleSerializer(serializers.ModelSerializer):
    """Read representation of a grant; ``entity_id`` is null for Admin."""

    user_id = serializers.UUIDField(read_only=True)
    entity_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = UserRole
        fields = ["id", "user_id", "role", "entity_id", "created_at"]
        read_only_fields = fields


class UserRoleRequestSerializer(serializers.Serializer):
    """Body of grant and revoke requests.

    Scope rules (entity required for read/write, forbidden for admin) are
    enforced by ``RoleService`` so every caller gets the same errors.
    """

    role = serializers.ChoiceField(choices=Role.choices)
    entity_id = serializers.UUIDField(required=False, allow_null=True, default=None)


__all__ = ["UserRoleSerializer", "UserRoleRequestSerializer"]
