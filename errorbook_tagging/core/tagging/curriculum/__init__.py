"""
Curriculum definitions: the standard knowledge points of each subject.

Each subject with a curriculum has a ``<subject>.yaml`` file in the ``data``
directory (or in ``ERRORBOOK_TAGGING["CURRICULUM_DIR"]``). Files look like::

    grade_order:
      七年级上: 1
      七年级下: 2
    grades:
      七年级上:
        - chapter: 有理数
          sections:                 # four-level subjects (math)
            - section: 正数和负数
              tags: [正数和负数的概念]
        - chapter: 整式的加减
          tags: [单项式, 多项式]     # three-level subjects

Grade and chapter order in the file is the order the tags are created in.
These definitions ship with the application and are versioned with it; the
system tags in the database are rebuilt from them (see ``rebuild``).
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml
from attrs import field, frozen
from django.utils.translation import gettext as _

from errorbook_tagging.lib.cache import lru_cache

from ..conf import get_setting
from ..models import UNRANKED_GRADE_ORDER, Subject
from ..rebuild.exceptions import CurriculumError

BUNDLED_CURRICULUM_DIR = Path(__file__).parent / "data"


@frozen
class SectionEntry:
    name: str
    tags: tuple[str, ...] = ()


@frozen
class ChapterEntry:
    """
    A chapter holds either sections (four-level subjects) or tags directly.
    """
    name: str
    sections: tuple[SectionEntry, ...] = ()
    tags: tuple[str, ...] = ()


@frozen
class GradeEntry:
    name: str
    chapters: tuple[ChapterEntry, ...] = ()


@frozen
class CurriculumDefinition:
    """
    The parsed curriculum of one subject.
    """

    subject: str
    grades: tuple[GradeEntry, ...]
    grade_order: Mapping[str, int] = field(factory=dict, hash=False)

    def rank(self, grade_name: str) -> int:
        """
        Sort key of a grade root; grades missing from grade_order go last.
        """
        return self.grade_order.get(grade_name) or UNRANKED_GRADE_ORDER

    @property
    def has_sections(self) -> bool:
        return any(chapter.sections for grade in self.grades for chapter in grade.chapters)

    def node_count(self) -> int:
        """
        How many tags seeding this curriculum creates.
        """
        count = 0
        for grade in self.grades:
            count += 1
            for chapter in grade.chapters:
                count += 1 + len(chapter.tags)
                for section in chapter.sections:
                    count += 1 + len(section.tags)
        return count

    @classmethod
    def from_dict(cls, subject: str, data: Mapping[str, Any]) -> CurriculumDefinition:
        """
        Build a definition from the structure described in the module docstring.

        Raises CurriculumError if the structure is not valid.
        """
        if not isinstance(data, Mapping):
            raise CurriculumError(_("Curriculum must be a mapping"), subject=subject)
        grades_data = data.get("grades") or {}
        if not isinstance(grades_data, Mapping):
            raise CurriculumError(_("'grades' must map grade names to chapter lists"), subject=subject)
        grade_order = data.get("grade_order") or {}
        if not isinstance(grade_order, Mapping):
            raise CurriculumError(_("'grade_order' must map grade names to numbers"), subject=subject)

        grades = tuple(
            GradeEntry(
                name=_clean_name(subject, grade_name),
                chapters=tuple(_parse_chapter(subject, grade_name, chapter) for chapter in (chapters or [])),
            )
            for grade_name, chapters in grades_data.items()
        )
        return cls(
            subject=subject,
            grades=grades,
            grade_order={str(name): int(rank) for name, rank in grade_order.items()},
        )


def _clean_name(subject: str, value: Any) -> str:
    """
    Curriculum names are non-empty strings; surrounding whitespace is dropped.
    """
    if value is None or isinstance(value, (list, dict)):
        raise CurriculumError(_("Invalid name: {value!r}").format(value=value), subject=subject)
    name = str(value).strip()
    if not name:
        raise CurriculumError(_("Empty name in curriculum"), subject=subject)
    return name


def _parse_chapter(subject: str, grade_name: str, data: Any) -> ChapterEntry:
    if not isinstance(data, Mapping) or "chapter" not in data:
        raise CurriculumError(
            _("Chapter entries under '{grade}' need a 'chapter' key: {data!r}").format(grade=grade_name, data=data),
            subject=subject,
        )
    name = _clean_name(subject, data["chapter"])
    sections = data.get("sections")
    tags = data.get("tags")
    if sections and tags:
        raise CurriculumError(
            _("Chapter '{chapter}' has both sections and tags").format(chapter=name),
            subject=subject,
        )
    return ChapterEntry(
        name=name,
        sections=tuple(_parse_section(subject, name, section) for section in (sections or [])),
        tags=tuple(_clean_name(subject, tag) for tag in (tags or [])),
    )


def _parse_section(subject: str, chapter_name: str, data: Any) -> SectionEntry:
    if not isinstance(data, Mapping) or "section" not in data:
        raise CurriculumError(
            _("Section entries under '{chapter}' need a 'section' key: {data!r}").format(
                chapter=chapter_name, data=data,
            ),
            subject=subject,
        )
    return SectionEntry(
        name=_clean_name(subject, data["section"]),
        tags=tuple(_clean_name(subject, tag) for tag in (data.get("tags") or [])),
    )


def get_curriculum_dir() -> Path:
    configured = get_setting("CURRICULUM_DIR")
    return Path(configured) if configured else BUNDLED_CURRICULUM_DIR


def get_curriculum_subjects() -> list[str]:
    """
    Subjects that have a curriculum definition, in Subject declaration order.
    """
    directory = get_curriculum_dir()
    return [subject.value for subject in Subject if (directory / f"{subject.value}.yaml").is_file()]


def get_curriculum(subject: str) -> CurriculumDefinition:
    """
    Returns the curriculum definition of `subject`.

    Raises CurriculumError if the subject has no definition or it is malformed.
    """
    return _load_curriculum(subject, str(get_curriculum_dir() / f"{subject}.yaml"))


@lru_cache(maxsize=None)
def _load_curriculum(subject: str, path: str) -> CurriculumDefinition:
    try:
        with open(path, encoding="utf-8") as curriculum_file:
            data = yaml.safe_load(curriculum_file)
    except FileNotFoundError as exc:
        raise CurriculumError(_("No curriculum definition found at {path}").format(path=path), subject=subject) from exc
    except yaml.YAMLError as exc:
        raise CurriculumError(_("Invalid YAML in {path}: {error}").format(path=path, error=exc), subject=subject) from exc
    return CurriculumDefinition.from_dict(subject, data or {})
