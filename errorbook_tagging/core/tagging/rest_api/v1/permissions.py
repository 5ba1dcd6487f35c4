"""
Knowledge tagging permissions
"""
from rest_framework.permissions import BasePermission, DjangoObjectPermissions


class CanRebuildSystemTags(BasePermission):
    """
    Only tag admins may rebuild the system tags.

    Checked before the view does anything, so refused requests never touch the tags.
    """
    message = "Rebuilding system tags requires a tag admin."

    def has_permission(self, request, view):
        return bool(request.user and request.user.has_perm("eb_tagging.rebuild_system_tags"))


class ErrorItemObjectPermissions(DjangoObjectPermissions):
    """
    Maps each REST API methods to its corresponding ErrorItem permission.
    """
    perms_map = {
        "GET": ["%(app_label)s.view_%(model_name)s"],
        "OPTIONS": [],
        "HEAD": ["%(app_label)s.view_%(model_name)s"],
        "PUT": ["%(app_label)s.tag_%(model_name)s"],
    }
