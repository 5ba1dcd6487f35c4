"""
Grade and semester labels.

Error items store their grade/semester as free text, and the application has
written it in many ways over time: "初一上", "初一，上期", "七年级,上", "7年级 上",
"Junior High Grade 1, 1st Semester"... The helpers here recognize the six
secondary school grades under all of their spellings, so that filtering on one
spelling finds items stored under any other.
"""
from __future__ import annotations

import re
from datetime import date

from attrs import frozen
from django.db.models import Q

UPPER = "上"
LOWER = "下"

# Every spelling of each grade bucket. The first entry is the bucket's canonical name.
GRADE_ALIASES: dict[str, tuple[str, ...]] = {
    "初一": ("初一", "七年级", "7年级", "七", "Junior High Grade 1"),
    "初二": ("初二", "八年级", "8年级", "八", "Junior High Grade 2"),
    "初三": ("初三", "九年级", "9年级", "九", "Junior High Grade 3"),
    "高一": ("高一", "十年级", "10年级", "Senior High Grade 1"),
    "高二": ("高二", "十一年级", "11年级", "Senior High Grade 2"),
    "高三": ("高三", "十二年级", "12年级", "Senior High Grade 3"),
}

SEMESTER_KEYWORDS: dict[str, tuple[str, ...]] = {
    UPPER: (UPPER, "1st Semester"),
    LOWER: (LOWER, "2nd Semester"),
}

# What has been seen between the grade and the semester marker in stored labels.
SEPARATORS = ("", "，", ",", " ", "、")

GENERIC_GRADE_RE = re.compile(r"([一二三四五六七八九十\d]+年级)")

# Longest first, so "十一年级" is tried before anything it contains.
_ALIASES_BY_LENGTH = sorted(
    ((alias, bucket) for bucket, aliases in GRADE_ALIASES.items() for alias in aliases),
    key=lambda pair: len(pair[0]),
    reverse=True,
)


@frozen
class GradeLabel:
    """
    A parsed grade label: the grade bucket, the semester (UPPER, LOWER or None)
    and every spelling of the bucket.
    """
    bucket: str
    semester: str | None
    aliases: tuple[str, ...]

    def tag_name_candidates(self) -> list[list[str]]:
        """
        Names a curriculum could give this grade's root tag, in groups from most
        to least specific: with the semester ("七年级上") first, then without.
        """
        names = [alias for alias in self.aliases if len(alias) > 1 and not alias.isascii()]
        if self.semester:
            return [[f"{name}{self.semester}" for name in names], names]
        return [names]


def _find_semester(text: str) -> str | None:
    for semester, keywords in SEMESTER_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return semester
    return None


def parse_grade_label(raw_label: str | None) -> GradeLabel | None:
    """
    Recognize the grade bucket and semester in a free-text label.

    Returns None when the label names no grade at all.
    """
    label = (raw_label or "").strip()
    if not label:
        return None

    for alias, bucket in _ALIASES_BY_LENGTH:
        if len(alias) == 1:
            # "七" on its own is too short to search for anywhere in the label.
            if not label.startswith(alias):
                continue
            position = 0
        else:
            position = label.find(alias)
            if position < 0:
                continue
        remainder = label[position + len(alias):]
        return GradeLabel(bucket=bucket, semester=_find_semester(remainder), aliases=GRADE_ALIASES[bucket])

    match = GENERIC_GRADE_RE.search(label)
    if match:
        bucket = match.group(1)
        return GradeLabel(bucket=bucket, semester=_find_semester(label[match.end():]), aliases=(bucket,))
    return None


def grade_label_patterns(grade: GradeLabel) -> list[str]:
    """
    Substrings that any stored spelling of `grade` contains.
    """
    patterns: list[str] = []
    for alias in grade.aliases:
        if alias.isascii():
            if grade.semester:
                patterns.append(f"{alias}, {SEMESTER_KEYWORDS[grade.semester][1]}")
            else:
                patterns.append(alias)
        elif grade.semester:
            patterns.extend(f"{alias}{separator}{grade.semester}" for separator in SEPARATORS)
        elif len(alias) > 1:
            patterns.append(alias)
    # Keep the order stable but drop repeats.
    return list(dict.fromkeys(patterns))


def build_grade_filter(raw_label: str | None, field: str = "grade_semester") -> Q:
    """
    Build a filter matching `field` against every spelling of `raw_label`.

    A blank label filters nothing. A label without any recognizable grade is
    matched as a plain substring.
    """
    label = (raw_label or "").strip()
    if not label:
        return Q()
    grade = parse_grade_label(label)
    if grade is None:
        return Q(**{f"{field}__contains": label})

    query = Q()
    for pattern in grade_label_patterns(grade):
        query |= Q(**{f"{field}__contains": pattern})
    return query


STAGE_GRADES = {
    "zh": {
        "primary": ["一年级", "二年级", "三年级", "四年级", "五年级", "六年级"],
        "junior_high": ["初一", "初二", "初三"],
        "senior_high": ["高一", "高二", "高三"],
        "university": ["大一", "大二", "大三", "大四"],
    },
    "en": {
        "primary": ["Grade 1", "Grade 2", "Grade 3", "Grade 4", "Grade 5", "Grade 6"],
        "junior_high": ["Junior High Grade 1", "Junior High Grade 2", "Junior High Grade 3"],
        "senior_high": ["Senior High Grade 1", "Senior High Grade 2", "Senior High Grade 3"],
        "university": ["Freshman", "Sophomore", "Junior", "Senior"],
    },
}


def calculate_grade(
    education_stage: str,
    enrollment_year: int,
    current_date: date | None = None,
    language: str = "en",
) -> str:
    """
    The grade/semester label of a student who enrolled in `enrollment_year`.

    The school year starts in September; January still belongs to the first
    semester, February through August to the second. Chinese labels look like
    "初一上", English ones like "Junior High Grade 1, 1st Semester".
    """
    current_date = current_date or date.today()
    grade_level = current_date.year - enrollment_year
    if current_date.month >= 9:
        grade_level += 1
        first_semester = True
    else:
        first_semester = current_date.month < 2

    is_zh = language == "zh"
    grades = STAGE_GRADES["zh" if is_zh else "en"].get(education_stage, [])
    if 0 < grade_level <= len(grades):
        grade = grades[grade_level - 1]
    elif grade_level > len(grades):
        grade = "已毕业" if is_zh else "Graduated"
    else:
        grade = "学前" if is_zh else "Pre-school"

    if is_zh:
        return f"{grade}{UPPER if first_semester else LOWER}"
    return f"{grade}, {'1st Semester' if first_semester else '2nd Semester'}"
