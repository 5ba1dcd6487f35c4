"""
Knowledge tagging API Views
"""
from __future__ import annotations

import logging

from django.core import exceptions
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ...api import TagDoesNotExist, get_error_items, get_tags, tag_error_item
from ...models import ErrorItem
from ...rebuild.api import start_rebuild
from ...rebuild.exceptions import (
    RebuildInProgress,
    RebuildOperationLimitExceeded,
    RebuildTimeout,
    TagRebuildError,
)
from ..utils import view_auth_classes
from .pagination import ErrorItemPagination
from .permissions import CanRebuildSystemTags, ErrorItemObjectPermissions
from .serializers import (
    ErrorItemListQueryParamsSerializer,
    ErrorItemSerializer,
    ErrorItemTagsBodySerializer,
    RebuildResultSerializer,
    RebuildSystemTagsBodySerializer,
    TagDataSerializer,
    TagListQueryParamsSerializer,
)

log = logging.getLogger(__name__)


def _rebuild_error(error: TagRebuildError, status_code: int) -> Response:
    return Response(
        {
            "error": error.message,
            "phase": error.phase,
            "subject": error.subject,
        },
        status=status_code,
    )


@view_auth_classes
class RebuildSystemTagsView(APIView):
    """
    View to rebuild the system tags from the current curriculum.

    **Rebuild Query Parameters**
        * subjects (optional) - List of subjects to rebuild. Every subject with
          a curriculum is rebuilt if omitted.

    **Rebuild Example Requests**
        POST tagging/rest_api/v1/rebuild_system_tags/ - Rebuild every subject
        body: {}

        POST tagging/rest_api/v1/rebuild_system_tags/ - Rebuild math only
        body: {
            "subjects": ["math"]
        }

    **Rebuild Query Returns**
        * 200 - Success, with the counts:
          {"tagsCreated": .., "associationsRestored": .., "customTagsCreated": .., "customTagsReparented": ..}
        * 400 - Unknown subject, or a subject without a curriculum
        * 401 - Not signed in
        * 403 - Not a tag admin
        * 409 - Another rebuild is running
        * 500 - The rebuild failed; nothing was changed. Reports the phase and subject.
        * 503 - The rebuild ran out of time or operations; nothing was changed.
          Retry with fewer subjects.
    """
    permission_classes = [IsAuthenticated, CanRebuildSystemTags]

    def post(self, request: Request, **_kwargs) -> Response:
        """
        Rebuild the system tags
        """
        body = RebuildSystemTagsBodySerializer(data=request.data)
        body.is_valid(raise_exception=True)
        subjects = body.validated_data.get("subjects")

        try:
            _task, result = start_rebuild(request.user, subjects)
        except ValueError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except RebuildInProgress as e:
            return _rebuild_error(e, status.HTTP_409_CONFLICT)
        except (RebuildTimeout, RebuildOperationLimitExceeded) as e:
            return _rebuild_error(e, status.HTTP_503_SERVICE_UNAVAILABLE)
        except TagRebuildError as e:
            return _rebuild_error(e, status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(RebuildResultSerializer(result).data)


@view_auth_classes
class KnowledgeTagsView(APIView):
    """
    View to list the tag tree of a subject.

    **List Query Parameters**
        * subject (required) - The subject whose tags to list

    **List Example Requests**
        GET tagging/rest_api/v1/tags/?subject=math

    **List Query Returns**
        * 200 - Success; the system tags and your own custom tags, in tree
          order (each tag is followed by its children), with their depth.
        * 400 - Invalid or missing subject
        * 401 - Not signed in
    """
    permission_classes = [IsAuthenticated]

    def get(self, request: Request, **_kwargs) -> Response:
        """
        List the tags of a subject
        """
        query_params = TagListQueryParamsSerializer(data=request.query_params.dict())
        query_params.is_valid(raise_exception=True)
        tags = get_tags(query_params.validated_data["subject"], request.user)
        return Response(TagDataSerializer(tags, many=True).data)


@view_auth_classes
class ErrorItemListView(ListAPIView):
    """
    View to list your error items.

    **List Query Parameters**
        * subject (optional) - Only items of this subject
        * tag (optional) - Only items tagged with this tag, or any tag below it
        * grade (optional) - Only items of this grade/semester, in any spelling
          ("初一上" also finds "七年级，上期")
        * query (optional) - Only items whose text contains this
        * page (optional) - Page number (default: 1)
        * page_size (optional) - Number of items per page (default: 20)

    **List Example Requests**
        GET tagging/rest_api/v1/error_items/?subject=math&tag=42&grade=初一上

    **List Query Returns**
        * 200 - Success
        * 400 - Invalid query parameter
        * 401 - Not signed in
        * 404 - The tag does not exist
    """
    permission_classes = [IsAuthenticated]
    pagination_class = ErrorItemPagination
    serializer_class = ErrorItemSerializer

    def get_queryset(self):
        """
        Return the requesting user's error items, filtered by the query params
        """
        query_params = ErrorItemListQueryParamsSerializer(data=self.request.query_params.dict())
        query_params.is_valid(raise_exception=True)
        params = query_params.validated_data
        try:
            items = get_error_items(
                self.request.user,
                subject=params.get("subject"),
                tag_id=params.get("tag"),
                grade=params.get("grade"),
                query=params.get("query"),
            )
        except TagDoesNotExist as e:
            raise Http404("Tag not found") from e
        return items.prefetch_related("tags")


@view_auth_classes
class ErrorItemTagsView(GenericAPIView):
    """
    View to add knowledge point tags to one of your error items.

    **Update Example Requests**
        PUT tagging/rest_api/v1/error_items/:id/tags/
        body: {
            "tags": ["一元一次方程", "移项"]
        }

    Names are looked up among the system tags of the item's subject and your
    own custom tags; unknown names become new custom tags, placed under the
    grade of the item. Tags the item already has are kept.

    **Update Query Returns**
        * 200 - Success, with the updated error item
        * 400 - Invalid tag names
        * 401 - Not signed in
        * 404 - The error item does not exist, or is not yours
    """
    queryset = ErrorItem.objects.all()
    permission_classes = [ErrorItemObjectPermissions]
    serializer_class = ErrorItemSerializer

    def put(self, request: Request, **_kwargs) -> Response:
        """
        Add tags to the error item
        """
        item = self.get_object()
        body = ErrorItemTagsBodySerializer(data=request.data)
        body.is_valid(raise_exception=True)
        try:
            tag_error_item(item, body.validated_data["tags"], request.user)
        except exceptions.ValidationError as e:
            raise ValidationError(e.messages) from e
        log.debug("Tagged error item %s with %s", item.pk, body.validated_data["tags"])
        return Response(self.get_serializer(item).data)
