"""
Django rules-based permissions for knowledge tagging
"""
from __future__ import annotations

from typing import Callable, Union

import django.contrib.auth.models
# typing support in rules depends on https://github.com/dfunckt/django-rules/pull/177
import rules  # type: ignore[import]

from .models import ErrorItem, KnowledgeTag

UserType = Union[
    django.contrib.auth.models.User, django.contrib.auth.models.AnonymousUser
]


# Global staff are tag admins.
# (Superusers can already do anything)
is_tag_admin: Callable[[UserType], bool] = rules.is_staff


@rules.predicate
def can_view_tag(user: UserType, tag: KnowledgeTag | None = None) -> bool:
    """
    Any signed-in user can see the system tags and list tags.
    Custom tags are only visible to their owner and to tag admins.
    """
    if not user.is_authenticated:
        return False
    if not tag or tag.is_system:
        return True
    return tag.owner_id == user.id or is_tag_admin(user)


@rules.predicate
def can_change_tag(user: UserType, tag: KnowledgeTag | None = None) -> bool:
    """
    Users can create custom tags and change the ones they own.
    Nobody can change system tags: they are replaced when the curriculum is rebuilt.
    """
    if not user.is_authenticated:
        return False
    if not tag:
        return True
    return not tag.is_system and tag.owner_id == user.id


@rules.predicate
def can_view_error_item(user: UserType, item: ErrorItem | None = None) -> bool:
    """
    Error items are private to the student who recorded them.
    """
    if not user.is_authenticated:
        return False
    return not item or item.user_id == user.id or is_tag_admin(user)


@rules.predicate
def can_tag_error_item(user: UserType, item: ErrorItem | None = None) -> bool:
    """
    Only the owner of an error item can change its tags.
    """
    if not user.is_authenticated:
        return False
    return not item or item.user_id == user.id


# Rebuilding deletes and recreates every system tag, so only tag admins may do it.
rules.add_perm("eb_tagging.rebuild_system_tags", is_tag_admin)

# KnowledgeTag
rules.add_perm("eb_tagging.add_knowledgetag", can_change_tag)
rules.add_perm("eb_tagging.change_knowledgetag", can_change_tag)
rules.add_perm("eb_tagging.delete_knowledgetag", can_change_tag)
rules.add_perm("eb_tagging.view_knowledgetag", can_view_tag)

# ErrorItem
rules.add_perm("eb_tagging.view_erroritem", can_view_error_item)
rules.add_perm("eb_tagging.tag_erroritem", can_tag_error_item)
