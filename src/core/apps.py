"""App configuration for the core project utilities."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Shared settings, errors, execution context, URLs and middleware."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
