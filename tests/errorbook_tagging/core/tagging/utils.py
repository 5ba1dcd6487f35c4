"""
Useful utilities for testing knowledge tagging code.
"""
from __future__ import annotations

from pathlib import Path

from django.contrib.auth import get_user_model

from errorbook_tagging.core.tagging.curriculum import CurriculumDefinition
from errorbook_tagging.core.tagging.models import ErrorItem, KnowledgeTag

User = get_user_model()

FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"
FIXTURE_CURRICULUM_DIR = str(FIXTURES_DIR / "curriculum")
BROKEN_CURRICULUM_DIR = str(FIXTURES_DIR / "broken_curriculum")

# Grade -> chapter -> section -> knowledge point, a single path.
ABSOLUTE_VALUE_MATH = {
    "grade_order": {"七年级上": 1},
    "grades": {
        "七年级上": [
            {"chapter": "有理数", "sections": [{"section": "绝对值", "tags": ["绝对值的意义"]}]},
        ],
    },
}

SMALL_MATH = {
    "grade_order": {"七年级上": 1, "七年级下": 2},
    "grades": {
        "七年级上": [
            {
                "chapter": "有理数",
                "sections": [
                    {"section": "正数和负数", "tags": ["正数和负数的概念"]},
                    {"section": "绝对值", "tags": ["绝对值的意义", "有理数的大小比较"]},
                ],
            },
            {
                "chapter": "一元一次方程",
                "sections": [{"section": "解一元一次方程", "tags": ["移项", "去分母"]}],
            },
        ],
        "七年级下": [
            {"chapter": "实数", "sections": [{"section": "平方根", "tags": ["算术平方根"]}]},
        ],
        # Not in grade_order, so sorted last.
        "综合复习": [],
    },
}

SMALL_PHYSICS = {
    "grade_order": {"八年级上": 1},
    "grades": {
        "八年级上": [
            {"chapter": "机械运动", "tags": ["运动的描述", "运动的快慢"]},
            {"chapter": "声现象", "tags": ["声音的特性"]},
        ],
    },
}


def make_curriculum(subject: str, data: dict) -> CurriculumDefinition:
    return CurriculumDefinition.from_dict(subject, data)


def small_curricula() -> dict[str, CurriculumDefinition]:
    """
    Math (four levels) and physics (three levels) curricula small enough to count by hand.
    """
    return {
        "math": make_curriculum("math", SMALL_MATH),
        "physics": make_curriculum("physics", SMALL_PHYSICS),
    }


def system_tag(name: str, subject: str = "math") -> KnowledgeTag:
    """
    Fetches the system tag with the given name.
    """
    return KnowledgeTag.objects.get(name=name, subject=subject, is_system=True)


def create_error_item(user, subject="math", grade_semester="", tags=(), **kwargs) -> ErrorItem:
    item = ErrorItem.objects.create(user=user, subject=subject, grade_semester=grade_semester, **kwargs)
    if tags:
        item.tags.add(*tags)
    return item


def tag_names(item: ErrorItem) -> list[str]:
    """
    The names of the item's tags, sorted.
    """
    return sorted(item.tags.values_list("name", flat=True))


def pretty_format_tags(result) -> list[str]:
    """
    Format the result of api.get_tags() to be more human readable.

    Also works with serialized TagData from the REST API.
    """
    pretty_results = []
    for t in result:
        kind = "" if t["is_system"] else " [custom]"
        pretty_results.append(f"{t['depth'] * '  '}{t['name']}{kind} (children: {t['child_count']})")
    return pretty_results
