"""
Knowledge tagging app admin
"""
from __future__ import annotations

from django.contrib import admin

from .models import ErrorItem, KnowledgeTag, TagRebuildTask


@admin.register(KnowledgeTag)
class KnowledgeTagAdmin(admin.ModelAdmin):
    """
    Admin definition for KnowledgeTag model
    """
    autocomplete_fields = ["parent", "owner"]
    search_fields = ["name"]
    list_display = ["__str__", "subject", "is_system", "owner", "order"]
    list_filter = ["subject", "is_system"]

    def has_change_permission(self, request, obj=None):
        """
        System tags are rebuilt from the curriculum; changes made here would be lost.
        """
        if obj is not None and obj.is_system:
            return False
        return super().has_change_permission(request, obj)


@admin.register(ErrorItem)
class ErrorItemAdmin(admin.ModelAdmin):
    """
    Admin definition for ErrorItem model
    """
    autocomplete_fields = ["tags"]
    list_display = ["__str__", "user", "subject", "grade_semester", "created"]
    list_filter = ["subject"]
    search_fields = ["question_text", "grade_semester"]


@admin.register(TagRebuildTask)
class TagRebuildTaskAdmin(admin.ModelAdmin):
    """
    Admin definition for TagRebuildTask model
    """
    list_display = ["__str__", "user", "subjects", "status", "tags_created", "creation_date"]
    list_filter = ["status"]
    readonly_fields = [
        "user", "subjects", "status", "log",
        "tags_created", "associations_restored", "custom_tags_created", "custom_tags_reparented",
    ]

    def has_add_permission(self, request):
        """
        Rebuilds are started with the API or the rebuild_system_tags command.
        """
        return False
