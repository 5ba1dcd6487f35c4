"""
Exceptions for system tag rebuilds
"""
from __future__ import annotations

from django.utils.translation import gettext as _


class TagRebuildError(Exception):
    """
    Base exception for rebuilds.

    Every rebuild error knows which phase it happened in and, where it applies,
    which subject was being processed, so the operator can log it and re-run
    the rebuild with a narrower scope.
    """

    phase = "rebuild"

    def __init__(self, message: str = "", subject: str | None = None, phase: str | None = None):
        super().__init__()
        self.message = message
        self.subject = subject
        if phase:
            self.phase = phase

    def __str__(self):
        if self.subject:
            return f"[{self.phase}:{self.subject}] {self.message}"
        return f"[{self.phase}] {self.message}"

    def __repr__(self):
        return f"{self.__class__.__name__}({str(self)})"


class CurriculumError(TagRebuildError):
    """
    Exception used when a curriculum definition is missing or malformed
    """

    phase = "curriculum"


class SnapshotError(TagRebuildError):
    """
    Exception used when the existing links could not be read before a rebuild
    """

    phase = "snapshot"


class SeedingError(TagRebuildError):
    """
    Exception used when the tag tree of a subject could not be written
    """

    phase = "seed"


class RestorationError(TagRebuildError):
    """
    Exception used when an error item association could not be restored.

    A single failing association aborts the whole rebuild: skipping it would
    look exactly like losing the user's data.
    """

    phase = "restore"

    def __init__(
        self,
        message: str,
        subject: str | None = None,
        error_item_id: int | None = None,
        tag_name: str | None = None,
    ):
        super().__init__(message, subject=subject)
        self.error_item_id = error_item_id
        self.tag_name = tag_name
        if error_item_id is not None:
            self.message = _("Error item {item} / tag '{tag}': {message}").format(
                item=error_item_id, tag=tag_name, message=message,
            )


class RebuildTimeout(TagRebuildError):
    """
    Exception used when a rebuild runs longer than REBUILD_TIMEOUT.

    Kept apart from the logic errors above: the fix is to retry with fewer
    subjects, not to debug anything.
    """

    def __init__(self, elapsed: float, timeout: float, phase: str | None = None, subject: str | None = None):
        super().__init__(
            _("Rebuild exceeded its time limit ({elapsed:.1f}s > {timeout}s)").format(
                elapsed=elapsed, timeout=timeout,
            ),
            subject=subject,
            phase=phase,
        )
        self.elapsed = elapsed
        self.timeout = timeout


class RebuildOperationLimitExceeded(TagRebuildError):
    """
    Exception used when a rebuild needs more store operations than REBUILD_MAX_OPERATIONS
    """

    def __init__(self, limit: int, phase: str | None = None, subject: str | None = None):
        super().__init__(
            _("Rebuild exceeded the maximum of {limit} store operations").format(limit=limit),
            subject=subject,
            phase=phase,
        )
        self.limit = limit


class RebuildInProgress(TagRebuildError):
    """
    Exception used when a rebuild is requested while another one is running
    """

    def __init__(self, task_id: int):
        super().__init__(
            _("Rebuild task {task_id} is still running. Only one rebuild can run at a time.").format(
                task_id=task_id,
            ),
        )
        self.task_id = task_id
