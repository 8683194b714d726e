"""Entity endpoints: the readable tree, CRUD and version history."""

import uuid

from django.urls import reverse
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from access_control.permissions import IsAuthenticatedActor
from core.context import ExecutionContext
from core.response import BaseViewSet, api_response
from .serializers import (
    EntityCreatedSerializer,
    EntityCreateSerializer,
    EntitySerializer,
    EntityUpdateSerializer,
    EntityVersionSerializer,
    TreeNodeSerializer,
)
from .services import CreateEntityCommand, EntityService, UpdateEntityCommand

_UUID_REGEX = r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


class EntityViewSet(BaseViewSet):
    """Hierarchy endpoints; every decision is delegated to ``EntityService``."""

    permission_classes = [IsAuthenticatedActor]
    lookup_field = "id"
    lookup_value_regex = _UUID_REGEX
    service_class = EntityService

    def get_service(self) -> EntityService:
        return self.service_class()

    def get_execution_context(self) -> ExecutionContext:
        return ExecutionContext.from_request(self.request)

    @extend_schema(responses=TreeNodeSerializer(many=True))
    def list(self, request):
        forest = self.get_service().get_tree(self.get_execution_context())
        return api_response([node.to_dict() for node in forest])

    @extend_schema(request=EntityCreateSerializer, responses={201: EntityCreatedSerializer})
    def create(self, request):
        serializer = EntityCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entity_id = self.get_service().create(
            self.get_execution_context(), CreateEntityCommand(**serializer.validated_data)
        )
        location = request.build_absolute_uri(reverse("entity-detail", kwargs={"id": entity_id}))
        return api_response({"id": str(entity_id)}, status=status.HTTP_201_CREATED, headers={"Location": location})

    @extend_schema(responses=EntitySerializer)
    def retrieve(self, request, id=None):
        entity = self.get_service().get(self.get_execution_context(), self._entity_id(id))
        return api_response(EntitySerializer(entity).data)

    @extend_schema(request=EntityUpdateSerializer, responses={204: None})
    def update(self, request, id=None):
        serializer = EntityUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_service().update(
            self.get_execution_context(), UpdateEntityCommand(id=self._entity_id(id), **serializer.validated_data)
        )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={204: None})
    def destroy(self, request, id=None):
        self.get_service().delete(self.get_execution_context(), self._entity_id(id))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses=EntityVersionSerializer(many=True))
    @action(detail=True, methods=["get"], url_path="versions")
    def versions(self, request, id=None):
        versions = self.get_service().list_versions(self.get_execution_context(), self._entity_id(id))
        return api_response(EntityVersionSerializer(versions, many=True).data)

    @extend_schema(
        parameters=[OpenApiParameter("version", int, OpenApiParameter.PATH)],
        responses=EntityVersionSerializer,
    )
    @action(detail=True, methods=["get"], url_path=r"versions/(?P<version>-?\d+)", url_name="version-detail")
    def version_detail(self, request, id=None, version=None):
        snapshot = self.get_service().get_version(self.get_execution_context(), self._entity_id(id), int(version))
        return api_response(EntityVersionSerializer(snapshot).data)

    @staticmethod
    def _entity_id(value) -> uuid.UUID:
        return uuid.UUID(str(value))


__all__ = ["EntityViewSet"]
