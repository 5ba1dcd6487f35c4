"""
Writing a subject's curriculum into the database as system tags.
"""
from __future__ import annotations

import logging

from django.db import DatabaseError
from django.utils.translation import gettext as _

from ..curriculum import CurriculumDefinition
from ..models import KnowledgeTag
from .budget import RebuildBudget
from .exceptions import SeedingError

log = logging.getLogger(__name__)

PHASE_DELETE = "delete"
PHASE_SEED = "seed"


def delete_system_tags(subject: str, budget: RebuildBudget | None = None) -> int:
    """
    Delete every system tag of the subject and returns how many were deleted.

    Their links to error items go with them. Custom tags and error items are
    kept; custom tags that were below a system tag become roots.
    """
    budget = budget or RebuildBudget.unbounded()
    budget.charge(PHASE_DELETE, subject)
    try:
        _total, per_model = KnowledgeTag.objects.filter(is_system=True, subject=subject).delete()
    except DatabaseError as exc:
        raise SeedingError(str(exc), subject=subject, phase=PHASE_DELETE) from exc
    deleted = per_model.get(KnowledgeTag._meta.label, 0)
    log.info("Deleted %s system tags of %s", deleted, subject)
    return deleted


class _TreeWriter:
    """
    Creates system tags one by one, charging each write to the budget.
    """

    def __init__(self, subject: str, budget: RebuildBudget):
        self.subject = subject
        self.budget = budget
        self.created = 0

    def create(self, name: str, parent: KnowledgeTag | None, order: int) -> KnowledgeTag:
        self.budget.charge(PHASE_SEED, self.subject)
        try:
            tag = KnowledgeTag.objects.create(
                name=name,
                subject=self.subject,
                parent=parent,
                is_system=True,
                order=order,
            )
        except DatabaseError as exc:
            raise SeedingError(
                _("Could not create tag '{name}': {error}").format(name=name, error=exc),
                subject=self.subject,
            ) from exc
        self.created += 1
        return tag

    def create_leaves(self, names, parent: KnowledgeTag) -> None:
        for position, name in enumerate(names, start=1):
            self.create(name, parent, position)


def seed_subject(subject: str, curriculum: CurriculumDefinition, budget: RebuildBudget | None = None) -> int:
    """
    Create the system tag tree of `subject` from its curriculum, and return the
    number of tags created.

    Grade roots are ordered by the curriculum's grade order (unranked grades
    last); chapters, sections and knowledge points by their 1-based position.

    Nothing is deduplicated: delete the subject's system tags first.
    """
    writer = _TreeWriter(subject, budget or RebuildBudget.unbounded())
    for grade in curriculum.grades:
        grade_tag = writer.create(grade.name, None, curriculum.rank(grade.name))
        for chapter_position, chapter in enumerate(grade.chapters, start=1):
            chapter_tag = writer.create(chapter.name, grade_tag, chapter_position)
            for section_position, section in enumerate(chapter.sections, start=1):
                section_tag = writer.create(section.name, chapter_tag, section_position)
                writer.create_leaves(section.tags, section_tag)
            writer.create_leaves(chapter.tags, chapter_tag)
    log.info("Seeded %s system tags for %s", writer.created, subject)
    return writer.created
