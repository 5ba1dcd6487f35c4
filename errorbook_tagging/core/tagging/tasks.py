"""
Knowledge tagging celery tasks
"""
from __future__ import annotations

from celery import shared_task  # type: ignore[import]
from django.contrib.auth import get_user_model

import errorbook_tagging.core.tagging.rebuild.api as rebuild_api


@shared_task
def rebuild_system_tags_task(user_id: int | None, subjects: list[str] | None = None) -> dict[str, int]:
    """
    Runs a system tag rebuild on a celery task, as the user with the given ID.

    Returns the counts of the rebuild; failures are raised and recorded on the
    TagRebuildTask.
    """
    user = get_user_model().objects.get(pk=user_id) if user_id is not None else None
    _task, result = rebuild_api.start_rebuild(user, subjects)
    return result.as_dict()
