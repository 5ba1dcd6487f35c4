"""
System tag rebuild API

    rebuild_system_tags()   the rebuild itself, in one transaction
    start_rebuild()         the same, tracked by a TagRebuildTask, one at a time

No permissions are enforced here; only tag admins should be able to reach
these functions (see ``rules.py``).
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping

from django.db import transaction
from django.utils.translation import gettext as _

from ..conf import get_setting
from ..curriculum import CurriculumDefinition, get_curriculum, get_curriculum_subjects
from ..data import RebuildResult
from ..models import Subject, TagRebuildTask, TagRebuildTaskState
from .budget import RebuildBudget
from .exceptions import RebuildInProgress
from .restore import restore_associations
from .seeding import delete_system_tags, seed_subject
from .snapshot import take_snapshot

log = logging.getLogger(__name__)


def _noop(_message: str) -> None:
    pass


def prepare_curricula(
    subjects: Iterable[str] | None = None,
    curricula: Mapping[str, CurriculumDefinition] | None = None,
) -> dict[str, CurriculumDefinition]:
    """
    Work out which subjects to rebuild and load their curricula, without
    touching the database.

    `subjects` defaults to every subject with a curriculum. `curricula` replaces
    the curriculum files, e.g. in tests.

    Raises ValueError for unknown subjects and subjects without a curriculum,
    and CurriculumError for malformed curriculum files.
    """
    available = list(curricula) if curricula is not None else get_curriculum_subjects()
    if subjects is None:
        targets = available
    else:
        targets = list(dict.fromkeys(subjects))
        for subject in targets:
            if subject not in Subject.values:
                raise ValueError(_("Unknown subject: {subject}").format(subject=subject))
            if subject not in available:
                raise ValueError(_("Subject {subject} has no curriculum definition").format(subject=subject))

    if curricula is not None:
        return {subject: curricula[subject] for subject in targets}
    return {subject: get_curriculum(subject) for subject in targets}


def rebuild_system_tags(
    subjects: Iterable[str] | None = None,
    acting_user=None,
    curricula: Mapping[str, CurriculumDefinition] | None = None,
    budget: RebuildBudget | None = None,
    progress: Callable[[str], None] | None = None,
) -> RebuildResult:
    """
    Delete and recreate the system tags of the given subjects from their
    curricula, keeping every error item's links.

    Steps, all in one transaction:

    1. take a snapshot of all system tag links, in every subject;
    2. for each subject, delete its system tags and seed them again;
    3. restore the links of the rebuilt subjects from the snapshot, promoting
       the ones whose tag is gone to custom tags owned by `acting_user`.

    If anything fails, including running out of time or operations (see
    RebuildBudget), everything is rolled back and the error is raised.
    `progress` is called with a short message after each step.
    """
    definitions = prepare_curricula(subjects, curricula)
    budget = budget or RebuildBudget.from_settings()
    progress = progress or _noop
    if acting_user is not None and not acting_user.is_authenticated:
        acting_user = None

    with transaction.atomic():
        snapshot = take_snapshot(budget)
        progress(
            _("Snapshot taken: {links} links on {items} error items").format(
                links=len(snapshot), items=snapshot.item_count,
            )
        )

        tags_created = 0
        for subject, curriculum in definitions.items():
            deleted = delete_system_tags(subject, budget)
            created = seed_subject(subject, curriculum, budget)
            tags_created += created
            progress(
                _("{subject}: {deleted} system tags deleted, {created} created").format(
                    subject=subject, deleted=deleted, created=created,
                )
            )

        restored = restore_associations(snapshot, acting_user, budget, subjects=list(definitions))
        progress(
            _("Associations restored: {restored}, custom tags created: {custom}").format(
                restored=restored.restored, custom=restored.custom_tags_created,
            )
        )

    result = RebuildResult(
        tags_created=tags_created,
        associations_restored=restored.restored,
        custom_tags_created=restored.custom_tags_created,
        custom_tags_reparented=restored.custom_tags_reparented,
    )
    log.info(
        "Rebuilt system tags of %s in %.1fs: %s",
        ", ".join(definitions), budget.elapsed, result.as_dict(),
    )
    return result


def start_rebuild(
    user,
    subjects: Iterable[str] | None = None,
    curricula: Mapping[str, CurriculumDefinition] | None = None,
) -> tuple[TagRebuildTask, RebuildResult]:
    """
    Run rebuild_system_tags() as `user`, recording it in a TagRebuildTask.

    Only one rebuild can run at a time. A task left running for longer than
    twice REBUILD_TIMEOUT (e.g. the server crashed mid-rebuild) is marked as
    failed and no longer blocks new rebuilds.

    The task is saved outside of the rebuild's transaction, so it keeps the log
    of failed rebuilds too. Errors are logged on the task and raised again.
    """
    definitions = prepare_curricula(subjects, curricula)
    _check_no_rebuild_running()

    task = TagRebuildTask.create(user, list(definitions))
    try:
        result = rebuild_system_tags(
            list(definitions),
            acting_user=user,
            curricula=definitions,
            progress=lambda message: task.add_log(message, save=False),
        )
    except Exception as exception:
        log.exception("System tag rebuild %s failed", task.pk)
        task.log_exception(exception)
        raise
    task.end_success(result)
    return task, result


def get_last_rebuild_task() -> TagRebuildTask | None:
    """
    Get the most recent rebuild task
    """
    return TagRebuildTask.objects.order_by("-creation_date", "-id").first()


def _check_no_rebuild_running() -> None:
    """
    Raises RebuildInProgress if another rebuild is running.
    """
    timeout = get_setting("REBUILD_TIMEOUT")
    running = TagRebuildTask.objects.filter(status=TagRebuildTaskState.RUNNING).order_by("-creation_date")
    for task in running:
        if not task.is_stale(timeout):
            raise RebuildInProgress(task.pk)
        log.warning("Rebuild task %s never finished; marking it as failed", task.pk)
        task.add_log(_("Task abandoned: it did not finish in time"), save=False)
        task.status = TagRebuildTaskState.ERROR.value
        task.save()
