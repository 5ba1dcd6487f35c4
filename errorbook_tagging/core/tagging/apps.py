"""
tagging Django application initialization.
"""

from django.apps import AppConfig


class TaggingConfig(AppConfig):
    """
    Configuration for the knowledge tagging Django application.
    """

    name = "errorbook_tagging.core.tagging"
    verbose_name = "Knowledge Tagging"
    default_auto_field = "django.db.models.BigAutoField"
    label = "eb_tagging"
