"""App configuration for the access_control Django application."""

from django.apps import AppConfig


class AccessControlConfig(AppConfig):
    """Role grants and permission resolution."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "access_control"
