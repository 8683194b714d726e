"""Routing for role management endpoints."""

from django.urls import path

from .views import UserRolesView

urlpatterns = [
    path("users/<uuid:user_id>/roles/", UserRolesView.as_view(), name="user-roles"),
]
