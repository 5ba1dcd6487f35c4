"""
Knowledge tagging API v1 URLs.
"""

from django.urls.conf import path

from . import views

urlpatterns = [
    path(
        "rebuild_system_tags/",
        views.RebuildSystemTagsView.as_view(),
        name="rebuild-system-tags",
    ),
    path("tags/", views.KnowledgeTagsView.as_view(), name="knowledge-tags"),
    path("error_items/", views.ErrorItemListView.as_view(), name="error-item-list"),
    path(
        "error_items/<int:pk>/tags/",
        views.ErrorItemTagsView.as_view(),
        name="error-item-tags",
    ),
]
