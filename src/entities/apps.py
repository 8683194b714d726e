"""App configuration for the entities Django application.

Registers the hierarchy configuration system checks when Django starts.
"""

from django.apps import AppConfig


class EntitiesConfig(AppConfig):
    """Content hierarchy: entities, versions and the mutation engine."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "entities"

    def ready(self) -> None:
        from . import checks  # noqa: F401
