"""Views for managing a user's role grants."""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response

from core.context import ExecutionContext
from core.response import BaseAPIView, api_response
from .permissions import IsAuthenticatedActor
from .serializers import UserRoleRequestSerializer, UserRoleSerializer
from .services import RoleService


class UserRolesView(BaseAPIView):
    """List, grant and revoke roles of one user.

    Granting and revoking are admin-only; listing is allowed to the user
    themself and to admins.
    """

    permission_classes = [IsAuthenticatedActor]
    service_class = RoleService

    def get_service(self) -> RoleService:
        return self.service_class()

    @extend_schema(responses=UserRoleSerializer(many=True))
    def get(self, request, user_id):
        grants = self.get_service().list_user_roles(ExecutionContext.from_request(request), user_id)
        return api_response(UserRoleSerializer(grants, many=True).data)

    @extend_schema(request=UserRoleRequestSerializer, responses={201: UserRoleSerializer})
    def post(self, request, user_id):
        serializer = UserRoleRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grant = self.get_service().add_user_role(
            ExecutionContext.from_request(request),
            user_id,
            serializer.validated_data["role"],
            serializer.validated_data.get("entity_id"),
        )
        return api_response(UserRoleSerializer(grant).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=UserRoleRequestSerializer, responses={204: None})
    def delete(self, request, user_id):
        serializer = UserRoleRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.get_service().delete_user_role(
            ExecutionContext.from_request(request),
            user_id,
            serializer.validated_data["role"],
            serializer.validated_data.get("entity_id"),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


__all__ = ["UserRolesView"]
