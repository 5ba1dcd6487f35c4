"""
Remembering which error items use which system tags, before the tags are deleted.
"""
from __future__ import annotations

import logging

from django.db import DatabaseError
from django.utils.translation import gettext as _

from ..data import AssociationRecord, AssociationSnapshot, CustomTagPlacement
from ..models import ErrorItem, KnowledgeTag
from .budget import RebuildBudget
from .exceptions import SnapshotError

log = logging.getLogger(__name__)

PHASE_SNAPSHOT = "snapshot"


def take_snapshot(budget: RebuildBudget | None = None) -> AssociationSnapshot:
    """
    Record every link between an error item and a system tag, in all subjects.

    Links are recorded by the tag's (name, subject) rather than its ID, since
    the IDs are about to disappear. All subjects are always included: an item
    may be tagged in several of them.

    Custom tags that hang below a system tag are recorded too, by the parent's
    (name, subject), so they can be put back in place afterwards.
    """
    budget = budget or RebuildBudget.unbounded()
    through = ErrorItem.tags.through

    budget.charge(PHASE_SNAPSHOT)
    try:
        links = (
            through.objects
            .filter(knowledgetag__is_system=True)
            .order_by("erroritem_id", "id")
            .values_list("erroritem_id", "knowledgetag__name", "knowledgetag__subject")
        )
        records = [
            AssociationRecord(error_item_id=item_id, tag_name=name, subject=subject)
            for item_id, name, subject in links
        ]
    except DatabaseError as exc:
        raise SnapshotError(_("Could not read the error item links: {error}").format(error=exc)) from exc

    budget.charge(PHASE_SNAPSHOT)
    try:
        placed_custom_tags = (
            KnowledgeTag.objects
            .filter(is_system=False, parent__is_system=True)
            .order_by("id")
            .values_list("id", "parent__name", "parent__subject")
        )
        placements = [
            CustomTagPlacement(tag_id=tag_id, parent_name=parent_name, subject=subject)
            for tag_id, parent_name, subject in placed_custom_tags
        ]
    except DatabaseError as exc:
        raise SnapshotError(_("Could not read the custom tag placements: {error}").format(error=exc)) from exc

    snapshot = AssociationSnapshot(records=records, placements=placements)
    log.info(
        "Snapshot: %s system tag links on %s error items, %s placed custom tags",
        len(snapshot), snapshot.item_count, len(placements),
    )
    return snapshot
