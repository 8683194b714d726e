"""System checks for hierarchy configuration."""

from django.conf import settings
from django.core.checks import Error, register

from .lifecycle import is_positive_int


@register()
def hierarchy_limits_are_positive(app_configs, **kwargs):
    """Refuse to start with a non-positive depth or name length limit."""
    errors: list[Error] = []

    if not is_positive_int(getattr(settings, "MAX_HIERARCHY_DEPTH", None)):
        errors.append(
            Error(
                "MAX_HIERARCHY_DEPTH must be a positive integer.",
                hint="Set the MAX_HIERARCHY_DEPTH environment variable, e.g. 10.",
                id="entities.E001",
            )
        )
    if not is_positive_int(getattr(settings, "MAX_NAME_LENGTH", None)):
        errors.append(
            Error(
                "MAX_NAME_LENGTH must be a positive integer.",
                hint="Set the MAX_NAME_LENGTH environment variable, e.g. 255.",
                id="entities.E002",
            )
        )

    return errors
