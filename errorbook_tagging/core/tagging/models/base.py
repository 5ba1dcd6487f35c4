"""
Knowledge tag and error item data models
"""
from __future__ import annotations

from typing import List

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils.functional import cached_property
from django.utils.translation import gettext_lazy as _

from errorbook_tagging.lib.fields import exact_char_field

# Sort key given to grade roots that are missing from a curriculum's grade order table.
UNRANKED_GRADE_ORDER = 99

# Ancestry of a given tag; the KnowledgeTag.name of the tag and its parents, starting from the root.
Lineage = List[str]


class Subject(models.TextChoices):
    """
    The subjects a notebook (and so its tags and error items) can belong to.
    """
    MATH = "math", _("Math")
    PHYSICS = "physics", _("Physics")
    CHEMISTRY = "chemistry", _("Chemistry")
    BIOLOGY = "biology", _("Biology")
    ENGLISH = "english", _("English")
    CHINESE = "chinese", _("Chinese")
    HISTORY = "history", _("History")
    GEOGRAPHY = "geography", _("Geography")
    POLITICS = "politics", _("Politics")
    OTHER = "other", _("Other")


class KnowledgeTag(models.Model):
    """
    A single knowledge point, chapter, section or grade in a subject's tag tree.

    System tags (``is_system=True``) are generated from the curriculum
    definitions and belong to nobody. They are *derived* data: a rebuild deletes
    and recreates all of them, so their IDs must never be stored anywhere that
    has to survive a rebuild. Use ``(name, subject)`` instead.

    Custom tags are created by users (or by a rebuild, when a curriculum entry
    that was in use disappears) and are owned by that user.
    """

    id = models.BigAutoField(primary_key=True)
    name = exact_char_field(
        max_length=255,
        help_text=_("Label of the knowledge point, e.g. '一元一次方程' or a grade such as '七年级上'."),
    )
    subject = models.CharField(
        max_length=32,
        choices=Subject.choices,
        help_text=_("Subject whose tag tree this tag belongs to."),
    )
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        default=None,
        # Deleting the system tags must never take custom tags placed under them along.
        on_delete=models.SET_NULL,
        related_name="children",
        help_text=_("Tag one level up in the tree. Empty for grade-level roots."),
    )
    is_system = models.BooleanField(
        default=False,
        help_text=_("System tags are generated from the curriculum and are rebuilt when it changes."),
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        default=None,
        on_delete=models.CASCADE,
        related_name="knowledge_tags",
        help_text=_("User who owns this custom tag. Always empty for system tags."),
    )
    order = models.PositiveIntegerField(
        default=0,
        help_text=_("Sort key among the siblings of this tag."),
    )

    class Meta:
        indexes = [
            models.Index(fields=["subject", "is_system", "name"], name="eb_tagging_tag_sys_name_idx"),
            models.Index(fields=["subject", "owner", "name"], name="eb_tagging_tag_owner_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["name", "subject", "owner"],
                condition=Q(is_system=False),
                name="eb_tagging_unique_custom_tag",
            ),
        ]

    def __repr__(self):
        """
        Developer-facing representation of a KnowledgeTag.
        """
        return str(self)

    def __str__(self):
        """
        User-facing string representation of a KnowledgeTag.
        """
        kind = "system" if self.is_system else "custom"
        return f"<{self.__class__.__name__}> ({self.id}) {self.subject}/{self.name} [{kind}]"

    def get_lineage(self) -> Lineage:
        """
        Returns the names of this tag's ancestors followed by its own name.
        """
        lineage: Lineage = [self.name]
        ancestor = self.parent
        while ancestor is not None:
            lineage.insert(0, ancestor.name)
            ancestor = ancestor.parent
        return lineage

    @cached_property
    def depth(self) -> int:
        """
        How many ancestors this tag has. Zero for grade roots.
        """
        return len(self.get_lineage()) - 1

    @staticmethod
    def annotate_depth(qs: models.QuerySet) -> models.QuerySet:
        """
        Annotate a KnowledgeTag queryset with the depth of each tag.

        Curriculum trees are at most four levels deep (grade, chapter, section,
        knowledge point); anything deeper is reported as depth 4.
        """
        return qs.annotate(depth=models.Case(
            models.When(parent_id=None, then=0),
            models.When(parent__parent_id=None, then=1),
            models.When(parent__parent__parent_id=None, then=2),
            models.When(parent__parent__parent__parent_id=None, then=3),
            default=4,
            output_field=models.IntegerField(),
        ))

    def clean(self):
        """
        Validate this tag before saving
        """
        self.name = self.name.strip()
        if not self.name:
            raise ValidationError(_("Tag names cannot be empty."))
        if self.is_system and self.owner_id:
            raise ValidationError(_("System tags cannot have an owner."))
        if not self.is_system and not self.owner_id:
            raise ValidationError(_("Custom tags must have an owner."))
        if self.parent_id and self.parent and self.parent.subject != self.subject:
            raise ValidationError(_("A tag's parent must belong to the same subject."))


class ErrorItem(models.Model):
    """
    A wrong answer a student has recorded in one of their subject notebooks.

    The lifecycle of error items belongs to the notebook application; this app
    only reads the subject and grade/semester label, and maintains the ``tags``
    relation.
    """

    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="error_items",
    )
    subject = models.CharField(
        max_length=32,
        choices=Subject.choices,
        default=Subject.OTHER,
    )
    grade_semester = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text=_(
            "Free-text grade and semester when the question was recorded, e.g. '初一上' or '七年级，上期'."
        ),
    )
    question_text = models.TextField(blank=True, default="")
    analysis = models.TextField(blank=True, default="")
    knowledge_points = models.TextField(
        blank=True,
        default="",
        help_text=_("Knowledge points suggested by the AI analysis, as a JSON list of strings."),
    )
    tags = models.ManyToManyField(
        KnowledgeTag,
        blank=True,
        related_name="error_items",
    )
    created = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "subject"], name="eb_tagging_item_user_idx"),
        ]

    def __repr__(self):
        """
        Developer-facing representation of an ErrorItem.
        """
        return str(self)

    def __str__(self):
        """
        User-facing string representation of an ErrorItem.
        """
        return f"<{self.__class__.__name__}> ({self.id}) {self.subject} {self.grade_semester}".rstrip()
