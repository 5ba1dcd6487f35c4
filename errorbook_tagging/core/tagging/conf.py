"""
App settings, read from the ``ERRORBOOK_TAGGING`` dict in Django settings.

Example::

    ERRORBOOK_TAGGING = {
        "REBUILD_TIMEOUT": 300,
        "CURRICULUM_DIR": "/etc/errorbook/curriculum",
    }
"""
from __future__ import annotations

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    # Seconds a system tag rebuild may run before it is aborted and rolled back.
    "REBUILD_TIMEOUT": 120,
    # Upper bound on store operations (reads and writes) in a single rebuild.
    "REBUILD_MAX_OPERATIONS": 200_000,
    # How many levels below a tag the descendant resolver will walk.
    "MAX_TAG_DEPTH": 20,
    # Directory with <subject>.yaml curriculum files. None uses the bundled ones.
    "CURRICULUM_DIR": None,
}


def get_setting(name: str) -> Any:
    """
    Returns the configured value of `name`, or its default.
    """
    if name not in DEFAULTS:
        raise KeyError(f"Unknown ERRORBOOK_TAGGING setting: {name}")
    overrides = getattr(settings, "ERRORBOOK_TAGGING", None) or {}
    return overrides.get(name, DEFAULTS[name])
