"""
Models used to track system tag rebuilds.
"""
from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext as _
from django.utils.translation import gettext_lazy


class TagRebuildTaskState(models.TextChoices):
    """
    Enumerates the states that a TagRebuildTask can be in.
    """
    RUNNING = "running", gettext_lazy("Running")
    SUCCESS = "success", gettext_lazy("Success")
    ERROR = "error", gettext_lazy("Error")


class TagRebuildTask(models.Model):
    """
    Stores the outcome and logs of one system tag rebuild.

    Tasks are saved outside of the rebuild's own transaction, so a failed
    rebuild still leaves a record of what happened.
    """

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        help_text=gettext_lazy("User who started the rebuild"),
    )
    subjects = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text=gettext_lazy("Comma-separated subjects that were rebuilt; empty means all of them"),
    )
    log = models.TextField(
        blank=True, default="", help_text=gettext_lazy("Rebuild execution logs")
    )
    status = models.CharField(
        max_length=20,
        choices=TagRebuildTaskState.choices,
        help_text=gettext_lazy("Task status"),
    )
    tags_created = models.PositiveIntegerField(default=0)
    associations_restored = models.PositiveIntegerField(default=0)
    custom_tags_created = models.PositiveIntegerField(default=0)
    custom_tags_reparented = models.PositiveIntegerField(default=0)
    creation_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "-creation_date"], name="eb_tagging_rebuild_status_idx"),
        ]

    def __str__(self):
        return f"<{self.__class__.__name__}> ({self.id}) {self.status}"

    @classmethod
    def create(cls, user, subjects: list[str] | None = None) -> TagRebuildTask:
        """
        Creates and logs a new running TagRebuildTask.
        """
        task = cls(
            user=user if user is not None and user.is_authenticated else None,
            subjects=",".join(subjects or []),
            status=TagRebuildTaskState.RUNNING.value,
            log="",
        )
        task.add_log(_("Rebuild task created"), save=False)
        task.save()
        return task

    def add_log(self, message: str, save=True):
        """
        Appends a timestamped log message to the task.
        """
        timestamp = timezone.now().strftime("%Y-%m-%d %H:%M:%S")
        self.log += f"[{timestamp}] {message}\n"
        if save:
            self.save()

    def log_exception(self, exception: Exception):
        """
        Logs an exception and moves the task status to ERROR.
        """
        self.add_log(repr(exception), save=False)
        self.status = TagRebuildTaskState.ERROR.value
        self.save()

    def end_success(self, result):
        """
        Stores the counts of a successful rebuild and moves the task status to SUCCESS.
        """
        self.tags_created = result.tags_created
        self.associations_restored = result.associations_restored
        self.custom_tags_created = result.custom_tags_created
        self.custom_tags_reparented = result.custom_tags_reparented
        self.add_log(
            _(
                "Rebuild finished: {tags} tags created, {restored} associations restored, "
                "{custom} custom tags created"
            ).format(
                tags=result.tags_created,
                restored=result.associations_restored,
                custom=result.custom_tags_created,
            ),
            save=False,
        )
        self.status = TagRebuildTaskState.SUCCESS.value
        self.save()

    def is_stale(self, timeout_seconds: float) -> bool:
        """
        A task still marked as running long after any rebuild transaction could
        have lived (e.g. the server crashed mid-rebuild) no longer blocks new ones.
        """
        if self.status != TagRebuildTaskState.RUNNING.value:
            return False
        return timezone.now() - self.creation_date > timedelta(seconds=2 * timeout_seconds)
