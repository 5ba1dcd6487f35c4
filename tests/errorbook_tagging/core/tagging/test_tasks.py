"""
Test knowledge tagging celery tasks
"""
from unittest.mock import patch

from django.test import override_settings

import errorbook_tagging.core.tagging.tasks as tagging_tasks
from errorbook_tagging.core.tagging.data import RebuildResult
from errorbook_tagging.core.tagging.models import TagRebuildTask, TagRebuildTaskState
from errorbook_tagging.lib.test_utils import TestCase

from .utils import FIXTURE_CURRICULUM_DIR, User


class TestRebuildCeleryTask(TestCase):
    """
    Test the system tag rebuild celery task
    """

    def setUp(self):
        super().setUp()
        self.admin = User.objects.create(username="admin", is_staff=True)

    def test_calls_start_rebuild(self):
        with patch("errorbook_tagging.core.tagging.rebuild.api.start_rebuild") as mock_start_rebuild:
            mock_start_rebuild.return_value = (None, RebuildResult(3, 2, 1))

            result = tagging_tasks.rebuild_system_tags_task(self.admin.id, ["math"])

            assert result == {
                "tagsCreated": 3,
                "associationsRestored": 2,
                "customTagsCreated": 1,
                "customTagsReparented": 0,
            }
            mock_start_rebuild.assert_called_once_with(self.admin, ["math"])

    def test_without_user(self):
        with patch("errorbook_tagging.core.tagging.rebuild.api.start_rebuild") as mock_start_rebuild:
            mock_start_rebuild.return_value = (None, RebuildResult(0, 0, 0))
            tagging_tasks.rebuild_system_tags_task(None)
            mock_start_rebuild.assert_called_once_with(None, None)

    @override_settings(ERRORBOOK_TAGGING={"CURRICULUM_DIR": FIXTURE_CURRICULUM_DIR})
    def test_apply(self):
        result = tagging_tasks.rebuild_system_tags_task.apply(args=(self.admin.id, ["physics"])).get()

        assert result["tagsCreated"] == 4
        task = TagRebuildTask.objects.get()
        assert task.status == TagRebuildTaskState.SUCCESS
        assert task.user == self.admin
