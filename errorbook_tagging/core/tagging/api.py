"""
Tagging API

Anyone using the errorbook_tagging app should use these APIs instead of creating
or modifying the models directly, since there might be other related model
changes that you may not know about.

No permissions/rules are enforced by these methods -- these must be enforced in the views.

System tags are rebuilt from the curriculum from time to time (see the
``rebuild`` package), so never keep a system tag's ID around for longer than a
request. Refer to system tags by ``(name, subject)`` instead.
"""
from __future__ import annotations

import logging
from typing import Iterable

from django.db import transaction
from django.db.models import Q, QuerySet

from .conf import get_setting
from .data import TagData
from .grades import build_grade_filter, parse_grade_label
from .models import ErrorItem, KnowledgeTag, Subject

log = logging.getLogger(__name__)

# Export this as part of the API
TagDoesNotExist = KnowledgeTag.DoesNotExist

# Keywords that identify the subject of a notebook from its name.
SUBJECT_KEYWORDS = [
    (Subject.MATH, ("math", "数学")),
    (Subject.PHYSICS, ("physics", "物理")),
    (Subject.CHEMISTRY, ("chemistry", "化学")),
    (Subject.BIOLOGY, ("biology", "生物")),
    (Subject.ENGLISH, ("english", "英语")),
    (Subject.CHINESE, ("chinese", "语文")),
    (Subject.HISTORY, ("history", "历史")),
    (Subject.GEOGRAPHY, ("geography", "地理")),
    (Subject.POLITICS, ("politics", "政治")),
]


def infer_subject_from_name(notebook_name: str | None) -> str | None:
    """
    Guess the subject of a notebook from its name, e.g. "数学错题本" -> "math".

    Returns None if the name does not mention any known subject.
    """
    if not notebook_name:
        return None
    lower_name = notebook_name.lower()
    for subject, keywords in SUBJECT_KEYWORDS:
        if any(keyword in lower_name for keyword in keywords):
            return subject.value
    return None


def get_descendant_tag_ids(tag_id: int, max_depth: int | None = None) -> set[int]:
    """
    Returns the IDs of the given tag and of every tag below it.

    The tree is walked breadth-first, one query per level. Tags already seen
    are never visited again, and the walk stops after `max_depth` levels
    (``MAX_TAG_DEPTH`` by default) even if there is more below.

    Raises KnowledgeTag.DoesNotExist if there is no tag with the given ID.
    """
    if max_depth is None:
        max_depth = get_setting("MAX_TAG_DEPTH")
    if not KnowledgeTag.objects.filter(pk=tag_id).exists():
        raise KnowledgeTag.DoesNotExist(f"KnowledgeTag {tag_id} does not exist")

    visited = {tag_id}
    frontier = [tag_id]
    depth = 0
    while frontier:
        children = KnowledgeTag.objects.filter(parent_id__in=frontier).values_list("id", flat=True)
        frontier = [child_id for child_id in children if child_id not in visited]
        if frontier and depth >= max_depth:
            log.warning(
                "Tag %s has descendants more than %s levels down; they were left out",
                tag_id, max_depth,
            )
            break
        visited.update(frontier)
        depth += 1
    return visited


def filter_error_items_by_tag(queryset: QuerySet[ErrorItem], tag_id: int) -> QuerySet[ErrorItem]:
    """
    Narrow `queryset` down to the error items tagged with the given tag or any tag below it.
    """
    return queryset.filter(tags__in=get_descendant_tag_ids(tag_id)).distinct()


def get_error_items(
    user,
    subject: str | None = None,
    tag_id: int | None = None,
    grade: str | None = None,
    query: str | None = None,
) -> QuerySet[ErrorItem]:
    """
    Returns the user's error items, newest first.

    subject: only items of this subject.
    tag_id: only items tagged with this tag or one of its descendants.
    grade: only items whose grade/semester label matches any spelling of this one.
    query: only items whose question, analysis or knowledge points contain this text.
    """
    queryset = ErrorItem.objects.filter(user=user)
    if subject:
        queryset = queryset.filter(subject=subject)
    if grade:
        queryset = queryset.filter(build_grade_filter(grade))
    if query:
        queryset = queryset.filter(
            Q(question_text__contains=query)
            | Q(analysis__contains=query)
            | Q(knowledge_points__contains=query)
        )
    if tag_id is not None:
        queryset = filter_error_items_by_tag(queryset, tag_id)
    return queryset.order_by("-created", "-id")


def _visible_tags(subject: str, user=None) -> QuerySet[KnowledgeTag]:
    """
    The system tags of `subject`, plus the user's own custom tags.
    """
    visible = Q(is_system=True)
    if user is not None and user.is_authenticated:
        visible |= Q(owner=user)
    return KnowledgeTag.objects.filter(visible, subject=subject)


def get_tags(subject: str, user=None) -> list[TagData]:
    """
    Returns the tag tree of a subject as a flat list, in tree order: each tag is
    followed by its children, siblings sorted by ``order``.

    Custom tags of `user` are included. A custom tag whose parent is not visible
    (or was removed) is listed as a root.
    """
    tags = list(_visible_tags(subject, user).values("id", "name", "parent_id", "order", "is_system"))
    ids = {tag["id"] for tag in tags}
    children: dict[int | None, list[dict]] = {}
    for tag in tags:
        parent_id = tag["parent_id"] if tag["parent_id"] in ids else None
        children.setdefault(parent_id, []).append(tag)
    for siblings in children.values():
        siblings.sort(key=lambda tag: (tag["order"], tag["id"]))

    result: list[TagData] = []
    stack = [(tag, 0) for tag in reversed(children.get(None, []))]
    while stack:
        tag, depth = stack.pop()
        below = children.get(tag["id"], [])
        result.append(TagData(
            id=tag["id"],
            name=tag["name"],
            parent_id=tag["parent_id"] if tag["parent_id"] in ids else None,
            depth=depth,
            order=tag["order"],
            is_system=tag["is_system"],
            child_count=len(below),
        ))
        stack.extend((child, depth + 1) for child in reversed(below))
    return result


def get_root_tags(subject: str, user=None) -> QuerySet[KnowledgeTag]:
    """
    Returns the grade-level root tags of a subject.
    """
    return _visible_tags(subject, user).filter(parent=None).order_by("order", "id")


def get_children_tags(tag: KnowledgeTag, user=None) -> QuerySet[KnowledgeTag]:
    """
    Returns the direct children of the given tag.
    """
    return _visible_tags(tag.subject, user).filter(parent=tag).order_by("order", "id")


def find_parent_tag_for_grade(grade_label: str | None, subject: str) -> KnowledgeTag | None:
    """
    Find the system tag that new custom tags for an item of this grade should go under.

    Tags named after the grade with its semester ("七年级上") are preferred over
    tags named after the grade alone ("七年级"). Among equally good matches the
    deepest tag wins, then the lowest ``order``, then the lowest ID.

    Returns None if no system tag matches the grade.
    """
    grade = parse_grade_label(grade_label)
    if grade is not None:
        candidate_groups = grade.tag_name_candidates()
    elif grade_label and grade_label.strip():
        candidate_groups = [[grade_label.strip()]]
    else:
        return None

    for names in candidate_groups:
        if not names:
            continue
        candidates = KnowledgeTag.objects.filter(subject=subject, is_system=True, name__in=names)
        match = KnowledgeTag.annotate_depth(candidates).order_by("-depth", "order", "id").first()
        if match is not None:
            return match
    return None


def create_custom_tag(
    name: str,
    subject: str,
    owner,
    parent: KnowledgeTag | None = None,
) -> KnowledgeTag:
    """
    Creates, saves, and returns a new custom tag owned by `owner`.

    Raises ValidationError if the tag is invalid, e.g. the owner already has a
    tag with this name in this subject.
    """
    tag = KnowledgeTag(
        name=name,
        subject=subject,
        owner=owner,
        parent=parent,
        is_system=False,
    )
    tag.full_clean()
    tag.save()
    return tag


def delete_custom_tag(tag: KnowledgeTag) -> None:
    """
    Deletes a custom tag. Its children move up to the root, and error items
    simply lose the tag.

    System tags can only be removed by a rebuild.
    """
    if tag.is_system:
        raise ValueError(f"{tag} is a system tag and cannot be deleted")
    tag.delete()


def resolve_tags_for_error_item(
    names: Iterable[str],
    subject: str,
    user,
    grade_semester: str | None = None,
) -> list[KnowledgeTag]:
    """
    Find the tag for each of the given knowledge point names (e.g. from the AI
    analysis of a question), creating custom tags for names that are unknown.

    A system tag of the subject is preferred, then a custom tag of `user`. New
    custom tags are placed under the system tag matching `grade_semester`.
    Blank and repeated names are skipped.
    """
    tags: list[KnowledgeTag] = []
    seen: set[str] = set()
    for raw_name in names:
        name = (raw_name or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        tag = (
            _visible_tags(subject, user)
            .filter(name=name)
            .order_by("-is_system", "id")
            .first()
        )
        if tag is None:
            parent = find_parent_tag_for_grade(grade_semester, subject)
            tag = create_custom_tag(name, subject, user, parent=parent)
            log.debug("Created custom tag %r under %r for user %s", tag, parent, user.pk)
        tags.append(tag)
    return tags


def tag_error_item(item: ErrorItem, names: Iterable[str], user) -> list[KnowledgeTag]:
    """
    Add the tags named `names` to the error item, keeping the tags it already has.

    Returns the tags that were added.
    """
    with transaction.atomic():
        tags = resolve_tags_for_error_item(names, item.subject, user, item.grade_semester)
        if tags:
            item.tags.add(*tags)
    return tags
