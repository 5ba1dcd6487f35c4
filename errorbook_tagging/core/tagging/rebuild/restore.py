"""
Putting the links recorded by a snapshot back onto the rebuilt tag tree.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable

from django.db import DatabaseError
from django.utils.translation import gettext as _

from .. import api
from ..data import AssociationRecord, AssociationSnapshot, RestoreResult
from ..models import ErrorItem, KnowledgeTag
from .budget import RebuildBudget
from .exceptions import RestorationError

log = logging.getLogger(__name__)

PHASE_RESTORE = "restore"

GradeContext = Callable[[ErrorItem], "str | None"]
Placement = Callable[["str | None", str], "KnowledgeTag | None"]


def default_grade_context(item: ErrorItem) -> str:
    """
    The grade/semester label an error item was recorded under.
    """
    return item.grade_semester


class AssociationRestorer:
    """
    Re-links error items to tags by (name, subject).

    When the rebuilt tree no longer has a system tag of that name (the
    curriculum renamed or dropped it), the link goes to a custom tag of the
    same name owned by the acting user instead, created if needed. The item
    keeps the knowledge point; only its standing as a curriculum entry is lost.

    Links are only ever added. Whatever else an item is tagged with stays.

    With `subjects` set, only records and placements of those subjects are
    replayed. Links in the other subjects were never detached; they are
    counted as restored and left alone.
    """

    def __init__(
        self,
        acting_user,
        budget: RebuildBudget | None = None,
        grade_context: GradeContext | None = None,
        placement: Placement | None = None,
        subjects: Iterable[str] | None = None,
    ):
        self.acting_user = acting_user
        self.budget = budget or RebuildBudget.unbounded()
        self.grade_context = grade_context or default_grade_context
        self.placement = placement or api.find_parent_tag_for_grade
        self.subjects = frozenset(subjects) if subjects is not None else None
        self.result = RestoreResult()
        self._system_tags: dict[tuple[str, str], int | None] = {}
        self._custom_tags: dict[tuple[str, str], int] = {}

    def _was_rebuilt(self, subject: str) -> bool:
        return self.subjects is None or subject in self.subjects

    def restore(self, snapshot: AssociationSnapshot) -> RestoreResult:
        grouped = {}
        for item_id, records in snapshot.by_item().items():
            pending = [record for record in records if self._was_rebuilt(record.subject)]
            self.result.restored += len(records) - len(pending)
            if pending:
                grouped[item_id] = pending
        self.budget.charge(PHASE_RESTORE)
        items = ErrorItem.objects.in_bulk(list(grouped))

        for item_id, records in grouped.items():
            item = items.get(item_id)
            if item is None:
                first = records[0]
                raise RestorationError(
                    _("The error item no longer exists"),
                    subject=first.subject,
                    error_item_id=item_id,
                    tag_name=first.tag_name,
                )
            tag_ids = [self._resolve(item, record) for record in records]
            self.budget.charge(PHASE_RESTORE)
            try:
                item.tags.add(*tag_ids)
            except DatabaseError as exc:
                raise RestorationError(str(exc), subject=records[0].subject, error_item_id=item_id) from exc

        self._reattach(snapshot)
        log.info(
            "Restored %s associations, created %s custom tags, re-attached %s custom tags",
            self.result.restored, self.result.custom_tags_created, self.result.custom_tags_reparented,
        )
        return self.result

    def _resolve(self, item: ErrorItem, record: AssociationRecord) -> int:
        """
        The ID of the tag that `record` should be linked to now.
        """
        try:
            tag_id = self._system_tag_id(record.tag_name, record.subject)
            if tag_id is None:
                tag_id = self._fallback_tag_id(item, record)
        except DatabaseError as exc:
            raise RestorationError(
                str(exc), subject=record.subject, error_item_id=item.pk, tag_name=record.tag_name,
            ) from exc
        self.result.restored += 1
        return tag_id

    def _system_tag_id(self, name: str, subject: str) -> int | None:
        key = (name, subject)
        if key not in self._system_tags:
            self.budget.charge(PHASE_RESTORE, subject)
            self._system_tags[key] = (
                KnowledgeTag.objects
                .filter(name=name, subject=subject, is_system=True)
                .order_by("id")
                .values_list("id", flat=True)
                .first()
            )
        return self._system_tags[key]

    def _fallback_tag_id(self, item: ErrorItem, record: AssociationRecord) -> int:
        key = (record.tag_name, record.subject)
        if key in self._custom_tags:
            return self._custom_tags[key]

        if self.acting_user is None:
            raise RestorationError(
                _("No system tag has this name any more, and there is no acting user to own a custom tag"),
                subject=record.subject,
                error_item_id=item.pk,
                tag_name=record.tag_name,
            )

        self.budget.charge(PHASE_RESTORE, record.subject)
        tag = KnowledgeTag.objects.filter(
            name=record.tag_name,
            subject=record.subject,
            owner=self.acting_user,
            is_system=False,
        ).first()
        if tag is None:
            self.budget.charge(PHASE_RESTORE, record.subject, count=2)
            parent = self.placement(self.grade_context(item), record.subject)
            tag = KnowledgeTag.objects.create(
                name=record.tag_name,
                subject=record.subject,
                owner=self.acting_user,
                parent=parent,
                is_system=False,
            )
            self.result.custom_tags_created += 1
            log.warning(
                "System tag %r (%s) is gone; created custom tag %s under %r",
                record.tag_name, record.subject, tag.pk, parent,
            )
        else:
            log.warning(
                "System tag %r (%s) is gone; reusing custom tag %s",
                record.tag_name, record.subject, tag.pk,
            )
        self._custom_tags[key] = tag.pk
        return tag.pk

    def _reattach(self, snapshot: AssociationSnapshot) -> None:
        """
        Put custom tags back under the system tag they were below before the rebuild.

        Only custom tags that lost their parent are touched: the rest were either
        not affected or moved by their owner in the meantime.
        """
        for placement in snapshot.placements:
            if not self._was_rebuilt(placement.subject):
                continue
            try:
                parent_id = self._system_tag_id(placement.parent_name, placement.subject)
                if parent_id is None:
                    log.info(
                        "Custom tag %s stays a root: %r (%s) is not in the curriculum any more",
                        placement.tag_id, placement.parent_name, placement.subject,
                    )
                    continue
                self.budget.charge(PHASE_RESTORE, placement.subject)
                self.result.custom_tags_reparented += KnowledgeTag.objects.filter(
                    pk=placement.tag_id, parent=None,
                ).update(parent_id=parent_id)
            except DatabaseError as exc:
                raise RestorationError(str(exc), subject=placement.subject, tag_name=placement.parent_name) from exc


def restore_associations(
    snapshot: AssociationSnapshot,
    acting_user,
    budget: RebuildBudget | None = None,
    grade_context: GradeContext | None = None,
    placement: Placement | None = None,
    subjects: Iterable[str] | None = None,
) -> RestoreResult:
    """
    Re-link the records of the snapshot in `subjects` (default: all), see
    AssociationRestorer.

    Raises RestorationError if any single record cannot be restored.
    """
    restorer = AssociationRestorer(
        acting_user,
        budget=budget,
        grade_context=grade_context,
        placement=placement,
        subjects=subjects,
    )
    return restorer.restore(snapshot)
