"""
Test the knowledge tagging models
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import ddt  # type: ignore[import]
import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.utils import IntegrityError
from django.test.testcases import TestCase
from freezegun import freeze_time

from errorbook_tagging.core.tagging.data import RebuildResult
from errorbook_tagging.core.tagging.models import ErrorItem, KnowledgeTag, TagRebuildTask, TagRebuildTaskState

User = get_user_model()


class TestKnowledgeTagMixin:
    """
    Base class that creates a small math tag tree and two users.

        七年级上
          有理数
            绝对值
              绝对值的意义
              有理数的大小比较
    """

    def setUp(self):
        super().setUp()
        self.user_1 = User.objects.create(username="test_user_1")
        self.user_2 = User.objects.create(username="test_user_2")

        self.grade = KnowledgeTag.objects.create(name="七年级上", subject="math", is_system=True, order=1)
        self.chapter = KnowledgeTag.objects.create(
            name="有理数", subject="math", is_system=True, parent=self.grade, order=1,
        )
        self.section = KnowledgeTag.objects.create(
            name="绝对值", subject="math", is_system=True, parent=self.chapter, order=1,
        )
        self.point_1 = KnowledgeTag.objects.create(
            name="绝对值的意义", subject="math", is_system=True, parent=self.section, order=1,
        )
        self.point_2 = KnowledgeTag.objects.create(
            name="有理数的大小比较", subject="math", is_system=True, parent=self.section, order=2,
        )


@ddt.ddt
class TestKnowledgeTag(TestKnowledgeTagMixin, TestCase):
    """
    Test the KnowledgeTag model
    """

    def test_representations(self):
        assert str(self.point_1) == f"<KnowledgeTag> ({self.point_1.id}) math/绝对值的意义 [system]"
        assert repr(self.point_1) == str(self.point_1)
        custom = KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.user_1)
        assert str(custom).endswith("math/易错题 [custom]")

    def test_lineage_and_depth(self):
        assert self.point_1.get_lineage() == ["七年级上", "有理数", "绝对值", "绝对值的意义"]
        assert self.grade.get_lineage() == ["七年级上"]
        assert self.grade.depth == 0
        assert self.section.depth == 2
        assert self.point_2.depth == 3

    def test_annotate_depth(self):
        depths = dict(
            KnowledgeTag.annotate_depth(KnowledgeTag.objects.all()).values_list("name", "depth")
        )
        assert depths == {
            "七年级上": 0,
            "有理数": 1,
            "绝对值": 2,
            "绝对值的意义": 3,
            "有理数的大小比较": 3,
        }

    @ddt.data("", "   ", "\t")
    def test_clean_rejects_blank_names(self, name):
        tag = KnowledgeTag(name=name, subject="math", owner=self.user_1)
        with pytest.raises(ValidationError):
            tag.clean()

    def test_clean_strips_name(self):
        tag = KnowledgeTag(name="  移项 ", subject="math", owner=self.user_1)
        tag.clean()
        assert tag.name == "移项"

    def test_clean_system_tag_with_owner(self):
        tag = KnowledgeTag(name="移项", subject="math", is_system=True, owner=self.user_1)
        with pytest.raises(ValidationError):
            tag.clean()

    def test_clean_custom_tag_without_owner(self):
        tag = KnowledgeTag(name="移项", subject="math", is_system=False)
        with pytest.raises(ValidationError):
            tag.clean()

    def test_clean_parent_of_other_subject(self):
        tag = KnowledgeTag(name="力", subject="physics", owner=self.user_1, parent=self.chapter)
        with pytest.raises(ValidationError):
            tag.clean()

    def test_custom_tags_unique_per_owner(self):
        KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.user_1)
        # Same name for another user, or in another subject, is fine
        KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.user_2)
        KnowledgeTag.objects.create(name="易错题", subject="physics", owner=self.user_1)
        with pytest.raises(IntegrityError), transaction.atomic():
            KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.user_1)

    def test_system_tag_names_can_repeat(self):
        # Curricula reuse names, e.g. a chapter and a section both called "实数"
        KnowledgeTag.objects.create(name="绝对值", subject="math", is_system=True, parent=self.grade, order=2)
        assert KnowledgeTag.objects.filter(name="绝对值", is_system=True).count() == 2

    def test_names_are_case_sensitive(self):
        KnowledgeTag.objects.create(name="SSS", subject="math", owner=self.user_1)
        KnowledgeTag.objects.create(name="sss", subject="math", owner=self.user_1)
        assert KnowledgeTag.objects.filter(name="SSS").count() == 1

    def test_deleting_parent_keeps_custom_children(self):
        custom = KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.user_1, parent=self.section)
        self.section.delete()
        custom.refresh_from_db()
        assert custom.parent is None
        # System children of the deleted tag become roots as well; rebuilds delete them together.
        self.point_1.refresh_from_db()
        assert self.point_1.parent is None

    def test_deleting_tag_keeps_error_items(self):
        item = ErrorItem.objects.create(user=self.user_1, subject="math")
        item.tags.add(self.point_1, self.point_2)
        self.point_1.delete()
        assert list(item.tags.all()) == [self.point_2]


class TestErrorItem(TestKnowledgeTagMixin, TestCase):
    """
    Test the ErrorItem model
    """

    def test_representations(self):
        item = ErrorItem.objects.create(user=self.user_1, subject="math", grade_semester="初一上")
        assert str(item) == f"<ErrorItem> ({item.id}) math 初一上"
        blank = ErrorItem.objects.create(user=self.user_1)
        assert str(blank) == f"<ErrorItem> ({blank.id}) other"


class TestTagRebuildTask(TestCase):
    """
    Test the TagRebuildTask model
    """

    def setUp(self):
        super().setUp()
        self.user = User.objects.create(username="admin", is_staff=True)

    def test_create(self):
        task = TagRebuildTask.create(self.user, ["math", "physics"])
        task.refresh_from_db()
        assert task.status == TagRebuildTaskState.RUNNING
        assert task.subjects == "math,physics"
        assert task.user == self.user
        assert "Rebuild task created" in task.log

    def test_create_without_user(self):
        task = TagRebuildTask.create(None)
        assert task.user is None
        assert task.subjects == ""

    def test_log_exception(self):
        task = TagRebuildTask.create(self.user)
        task.log_exception(ValueError("boom"))
        task.refresh_from_db()
        assert task.status == TagRebuildTaskState.ERROR
        assert "ValueError('boom')" in task.log

    def test_end_success(self):
        task = TagRebuildTask.create(self.user)
        task.end_success(RebuildResult(tags_created=10, associations_restored=3, custom_tags_created=1))
        task.refresh_from_db()
        assert task.status == TagRebuildTaskState.SUCCESS
        assert (task.tags_created, task.associations_restored, task.custom_tags_created) == (10, 3, 1)
        assert "10 tags created" in task.log

    def test_log_lines_are_timestamped(self):
        with freeze_time("2024-03-01 08:30:00"):
            task = TagRebuildTask.create(self.user)
            task.add_log("Snapshot taken")
        assert task.log.splitlines()[-1] == "[2024-03-01 08:30:00] Snapshot taken"

    def test_is_stale(self):
        started = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        with freeze_time(started):
            task = TagRebuildTask.create(self.user)
        with freeze_time(started + timedelta(seconds=200)):
            assert not task.is_stale(120)
        with freeze_time(started + timedelta(seconds=241)):
            assert task.is_stale(120)
            task.end_success(RebuildResult(0, 0, 0))
            # Finished tasks are never stale
            assert not task.is_stale(120)
