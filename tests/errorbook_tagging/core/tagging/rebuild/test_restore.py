"""
Test restoring associations onto a rebuilt tag tree
"""
import pytest
from django.test.testcases import TestCase

from errorbook_tagging.core.tagging.data import RestoreResult
from errorbook_tagging.core.tagging.models import KnowledgeTag
from errorbook_tagging.core.tagging.rebuild.exceptions import RestorationError
from errorbook_tagging.core.tagging.rebuild.restore import restore_associations
from errorbook_tagging.core.tagging.rebuild.seeding import delete_system_tags, seed_subject
from errorbook_tagging.core.tagging.rebuild.snapshot import take_snapshot

from ..utils import SMALL_MATH, SMALL_PHYSICS, User, create_error_item, make_curriculum, system_tag, tag_names

# SMALL_MATH without the "移项" knowledge point
SMALL_MATH_WITHOUT_TRANSPOSITION = {
    "grade_order": SMALL_MATH["grade_order"],
    "grades": {
        "七年级上": [
            SMALL_MATH["grades"]["七年级上"][0],
            {
                "chapter": "一元一次方程",
                "sections": [{"section": "解一元一次方程", "tags": ["去分母"]}],
            },
        ],
        "七年级下": SMALL_MATH["grades"]["七年级下"],
    },
}


class TestRestoreAssociations(TestCase):
    """
    Test restore_associations()
    """

    def setUp(self):
        super().setUp()
        self.admin = User.objects.create(username="admin", is_staff=True)
        self.student = User.objects.create(username="student")
        seed_subject("math", make_curriculum("math", SMALL_MATH))

    def rebuild_math(self, data=None):
        """
        Snapshot, then replace the math system tags. Returns the snapshot.
        """
        snapshot = take_snapshot()
        delete_system_tags("math")
        seed_subject("math", make_curriculum("math", data or SMALL_MATH))
        return snapshot

    def test_same_curriculum(self):
        item = create_error_item(self.student, grade_semester="初一上", tags=[system_tag("移项"), system_tag("去分母")])
        old_ids = set(item.tags.values_list("id", flat=True))
        snapshot = self.rebuild_math()
        assert item.tags.count() == 0

        result = restore_associations(snapshot, self.admin)

        assert result == RestoreResult(restored=2, custom_tags_created=0, custom_tags_reparented=0)
        assert tag_names(item) == ["去分母", "移项"]
        assert all(tag.is_system for tag in item.tags.all())
        assert not set(item.tags.values_list("id", flat=True)) & old_ids

    def test_keeps_custom_links(self):
        custom = KnowledgeTag.objects.create(name="易错题", subject="math", owner=self.student)
        item = create_error_item(self.student, tags=[system_tag("移项"), custom])
        snapshot = self.rebuild_math()

        restore_associations(snapshot, self.admin)

        assert tag_names(item) == ["易错题", "移项"]

    def test_removed_tag_becomes_custom(self):
        item = create_error_item(self.student, grade_semester="初一，上期", tags=[system_tag("移项")])
        other = create_error_item(self.student, grade_semester="初一上", tags=[system_tag("移项"), system_tag("去分母")])
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)

        with self.assertLogs("errorbook_tagging.core.tagging.rebuild.restore", level="WARNING"):
            result = restore_associations(snapshot, self.admin)

        assert result.restored == 3
        assert result.custom_tags_created == 1
        [fallback] = item.tags.all()
        assert fallback.name == "移项"
        assert not fallback.is_system
        assert fallback.owner == self.admin
        assert fallback.parent == system_tag("七年级上")
        # Both items share the one custom tag
        assert set(other.tags.all()) == {fallback, system_tag("去分母")}

    def test_removed_tag_reuses_existing_custom_tag(self):
        existing = KnowledgeTag.objects.create(name="移项", subject="math", owner=self.admin)
        item = create_error_item(self.student, tags=[system_tag("移项")])
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)

        result = restore_associations(snapshot, self.admin)

        assert result.custom_tags_created == 0
        assert list(item.tags.all()) == [existing]

    def test_removed_tag_without_acting_user(self):
        item = create_error_item(self.student, tags=[system_tag("移项")])
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)

        with pytest.raises(RestorationError) as exc:
            restore_associations(snapshot, None)

        assert exc.value.error_item_id == item.id
        assert exc.value.tag_name == "移项"
        assert exc.value.subject == "math"
        assert exc.value.phase == "restore"

    def test_deleted_item(self):
        item = create_error_item(self.student, tags=[system_tag("移项")])
        item_id = item.id
        snapshot = self.rebuild_math()
        item.delete()

        with pytest.raises(RestorationError) as exc:
            restore_associations(snapshot, self.admin)
        assert exc.value.error_item_id == item_id

    def test_grade_context_and_placement(self):
        item = create_error_item(self.student, grade_semester="初一上", tags=[system_tag("移项")])
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)
        seen = []

        def placement(grade_label, subject):
            seen.append((grade_label, subject))
            return system_tag("一元一次方程")

        restore_associations(snapshot, self.admin, grade_context=lambda _item: "七年级下", placement=placement)

        assert seen == [("七年级下", "math")]
        assert item.tags.get().parent == system_tag("一元一次方程")

    def test_duplicate_system_names(self):
        item = create_error_item(self.student, tags=[system_tag("移项")])
        snapshot = self.rebuild_math()
        first = system_tag("移项")
        KnowledgeTag.objects.create(name="移项", subject="math", is_system=True, parent=system_tag("七年级下"))

        restore_associations(snapshot, self.admin)

        assert list(item.tags.all()) == [first]

    def test_reattach_custom_tags(self):
        custom = KnowledgeTag.objects.create(
            name="易错题", subject="math", owner=self.student, parent=system_tag("绝对值"),
        )
        moved = KnowledgeTag.objects.create(
            name="我的标签", subject="math", owner=self.student, parent=system_tag("实数"),
        )
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)
        # The owner moved this one after the snapshot; leave it alone
        root = KnowledgeTag.objects.create(name="根", subject="math", owner=self.student)
        KnowledgeTag.objects.filter(pk=moved.pk).update(parent=root)

        result = restore_associations(snapshot, self.admin)

        assert result.custom_tags_reparented == 1
        custom.refresh_from_db()
        moved.refresh_from_db()
        assert custom.parent == system_tag("绝对值")
        assert moved.parent == root

    def test_reattach_to_removed_parent(self):
        custom = KnowledgeTag.objects.create(
            name="易错题", subject="math", owner=self.student, parent=system_tag("移项"),
        )
        snapshot = self.rebuild_math(SMALL_MATH_WITHOUT_TRANSPOSITION)

        result = restore_associations(snapshot, self.admin)

        assert result.custom_tags_reparented == 0
        custom.refresh_from_db()
        assert custom.parent is None

    def test_only_rebuilt_subjects(self):
        seed_subject("physics", make_curriculum("physics", SMALL_PHYSICS))
        sound = system_tag("声音的特性", "physics")
        custom = KnowledgeTag.objects.create(name="易错题", subject="physics", owner=self.student, parent=sound)
        item = create_error_item(self.student, tags=[system_tag("移项"), sound])
        snapshot = self.rebuild_math()
        # Changes to physics after the snapshot are not undone by a math restore
        item.tags.remove(sound)
        KnowledgeTag.objects.filter(pk=custom.pk).update(parent=None)

        result = restore_associations(snapshot, self.admin, subjects=["math"])

        assert result == RestoreResult(restored=2, custom_tags_created=0, custom_tags_reparented=0)
        assert tag_names(item) == ["移项"]
        custom.refresh_from_db()
        assert custom.parent is None
