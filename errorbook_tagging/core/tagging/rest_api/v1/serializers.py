"""
API Serializers for knowledge tags and error items
"""
from __future__ import annotations

from rest_framework import serializers

from errorbook_tagging.core.tagging.models import ErrorItem, KnowledgeTag, Subject


class RebuildSystemTagsBodySerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the body of the rebuild request.

    Leave `subjects` out to rebuild every subject that has a curriculum.
    """
    subjects = serializers.ListField(
        child=serializers.CharField(),
        required=False,
        allow_empty=False,
    )


class RebuildResultSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the counts of a successful rebuild
    """
    tagsCreated = serializers.IntegerField(source="tags_created")
    associationsRestored = serializers.IntegerField(source="associations_restored")
    customTagsCreated = serializers.IntegerField(source="custom_tags_created")
    customTagsReparented = serializers.IntegerField(source="custom_tags_reparented")


class TagListQueryParamsSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the query params for the GET tags view
    """
    subject = serializers.ChoiceField(choices=Subject.choices)


class TagDataSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the TagData dicts returned by api.get_tags()
    """
    id = serializers.IntegerField()
    name = serializers.CharField()
    parent_id = serializers.IntegerField(allow_null=True)
    depth = serializers.IntegerField()
    order = serializers.IntegerField()
    is_system = serializers.BooleanField()
    child_count = serializers.IntegerField()


class KnowledgeTagSerializer(serializers.ModelSerializer):
    """
    Serializer for the tags of an error item
    """
    class Meta:
        model = KnowledgeTag
        fields = ["id", "name", "subject", "parent", "is_system"]


class ErrorItemListQueryParamsSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the query params for the GET error items view
    """
    subject = serializers.ChoiceField(choices=Subject.choices, required=False)
    tag = serializers.IntegerField(required=False, min_value=1)
    grade = serializers.CharField(required=False, allow_blank=True)
    query = serializers.CharField(required=False, allow_blank=True)


class ErrorItemSerializer(serializers.ModelSerializer):
    """
    Serializer for the ErrorItem model
    """
    tags = KnowledgeTagSerializer(many=True, read_only=True)

    class Meta:
        model = ErrorItem
        fields = [
            "id",
            "subject",
            "grade_semester",
            "question_text",
            "analysis",
            "tags",
            "created",
        ]


class ErrorItemTagsBodySerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """
    Serializer for the body of the PUT error item tags request
    """
    tags = serializers.ListField(
        child=serializers.CharField(max_length=255, allow_blank=False),
        allow_empty=False,
    )
