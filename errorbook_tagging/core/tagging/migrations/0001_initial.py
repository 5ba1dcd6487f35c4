import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import errorbook_tagging.lib.fields


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="KnowledgeTag",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "name",
                    errorbook_tagging.lib.fields.ExactMatchCharField(
                        help_text="Label of the knowledge point, e.g. '一元一次方程' or a grade such as '七年级上'.",
                        max_length=255,
                    ),
                ),
                (
                    "subject",
                    models.CharField(
                        choices=[
                            ("math", "Math"),
                            ("physics", "Physics"),
                            ("chemistry", "Chemistry"),
                            ("biology", "Biology"),
                            ("english", "English"),
                            ("chinese", "Chinese"),
                            ("history", "History"),
                            ("geography", "Geography"),
                            ("politics", "Politics"),
                            ("other", "Other"),
                        ],
                        help_text="Subject whose tag tree this tag belongs to.",
                        max_length=32,
                    ),
                ),
                (
                    "is_system",
                    models.BooleanField(
                        default=False,
                        help_text="System tags are generated from the curriculum and are rebuilt when it changes.",
                    ),
                ),
                (
                    "order",
                    models.PositiveIntegerField(default=0, help_text="Sort key among the siblings of this tag."),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        default=None,
                        help_text="User who owns this custom tag. Always empty for system tags.",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="knowledge_tags",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        default=None,
                        help_text="Tag one level up in the tree. Empty for grade-level roots.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="children",
                        to="eb_tagging.knowledgetag",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["subject", "is_system", "name"], name="eb_tagging_tag_sys_name_idx"),
                    models.Index(fields=["subject", "owner", "name"], name="eb_tagging_tag_owner_idx"),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name="knowledgetag",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_system", False)),
                fields=("name", "subject", "owner"),
                name="eb_tagging_unique_custom_tag",
            ),
        ),
        migrations.CreateModel(
            name="ErrorItem",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "subject",
                    models.CharField(
                        choices=[
                            ("math", "Math"),
                            ("physics", "Physics"),
                            ("chemistry", "Chemistry"),
                            ("biology", "Biology"),
                            ("english", "English"),
                            ("chinese", "Chinese"),
                            ("history", "History"),
                            ("geography", "Geography"),
                            ("politics", "Politics"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=32,
                    ),
                ),
                (
                    "grade_semester",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Free-text grade and semester when the question was recorded, "
                                  "e.g. '初一上' or '七年级，上期'.",
                        max_length=64,
                    ),
                ),
                ("question_text", models.TextField(blank=True, default="")),
                ("analysis", models.TextField(blank=True, default="")),
                (
                    "knowledge_points",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Knowledge points suggested by the AI analysis, as a JSON list of strings.",
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                (
                    "tags",
                    models.ManyToManyField(blank=True, related_name="error_items", to="eb_tagging.knowledgetag"),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="error_items",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["user", "subject"], name="eb_tagging_item_user_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TagRebuildTask",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "subjects",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Comma-separated subjects that were rebuilt; empty means all of them",
                        max_length=255,
                    ),
                ),
                ("log", models.TextField(blank=True, default="", help_text="Rebuild execution logs")),
                (
                    "status",
                    models.CharField(
                        choices=[("running", "Running"), ("success", "Success"), ("error", "Error")],
                        help_text="Task status",
                        max_length=20,
                    ),
                ),
                ("tags_created", models.PositiveIntegerField(default=0)),
                ("associations_restored", models.PositiveIntegerField(default=0)),
                ("custom_tags_created", models.PositiveIntegerField(default=0)),
                ("creation_date", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who started the rebuild",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "-creation_date"], name="eb_tagging_rebuild_status_idx"),
                ],
            },
        ),
    ]
