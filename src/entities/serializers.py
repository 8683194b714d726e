"""Serializers for entity requests and responses."""

from rest_framework import serializers

from .models import Entity, EntityType, EntityVersion


class EntitySerializer(serializers.ModelSerializer):
    parent_id = serializers.UUIDField(read_only=True, allow_null=True)
    created_by = serializers.UUIDField(source="created_by_id", read_only=True)
    updated_by = serializers.UUIDField(source="updated_by_id", read_only=True)
    is_draft = serializers.BooleanField(read_only=True)

    class Meta:
        model = Entity
        fields = [
            "id",
            "type",
            "name",
            "content",
            "parent_id",
            "status",
            "is_draft",
            "current_version",
            "created_by",
            "updated_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class EntityVersionSerializer(serializers.ModelSerializer):
    entity_id = serializers.UUIDField(read_only=True)
    parent_id = serializers.UUIDField(read_only=True, allow_null=True)
    created_by = serializers.UUIDField(source="created_by_id", read_only=True)

    class Meta:
        model = EntityVersion
        fields = ["entity_id", "version", "name", "content", "parent_id", "created_by", "created_at"]
        read_only_fields = fields


class EntityCreateSerializer(serializers.Serializer):
    """Shape-level validation only; name length and hierarchy rules live in the lifecycle."""

    type = serializers.ChoiceField(choices=EntityType.choices)
    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    content = serializers.CharField(required=False, allow_blank=True, default="")
    parent_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    is_draft = serializers.BooleanField(required=False, default=False)


class EntityUpdateSerializer(serializers.Serializer):
    """Full replacement; ``parent_id`` must be sent explicitly, null meaning root."""

    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    content = serializers.CharField(required=False, allow_blank=True, default="")
    parent_id = serializers.UUIDField(allow_null=True)
    is_draft = serializers.BooleanField(required=False, default=False)


class EntityCreatedSerializer(serializers.Serializer):
    id = serializers.UUIDField()


class TreeNodeSerializer(serializers.Serializer):
    """Schema-only description of one node of the ``GET /entities/`` forest."""

    id = serializers.UUIDField()
    type = serializers.ChoiceField(choices=EntityType.choices)
    name = serializers.CharField()
    parent_id = serializers.UUIDField(allow_null=True)
    depth = serializers.IntegerField()
    children = serializers.ListField(child=serializers.DictField())


__all__ = [
    "EntitySerializer",
    "EntityVersionSerializer",
    "EntityCreateSerializer",
    "EntityUpdateSerializer",
    "EntityCreatedSerializer",
    "TreeNodeSerializer",
]
