"""
Django management command to rebuild the system tags from the curriculum
"""
import logging
import time

from django.contrib.auth import get_user_model
from django.core.management import CommandError
from django.core.management.base import BaseCommand

from errorbook_tagging.core.tagging.rebuild.api import start_rebuild
from errorbook_tagging.core.tagging.rebuild.exceptions import TagRebuildError

logger = logging.getLogger(__name__)


User = get_user_model()


class Command(BaseCommand):
    """
    Django management command to rebuild the system tags, keeping error item associations.
    """
    help = 'Rebuild the system tags of one or more subjects from the current curriculum.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--subject',
            action='append',
            dest='subjects',
            help='Subject to rebuild. Repeat for several subjects; all subjects are rebuilt if omitted.',
            default=None,
        )
        parser.add_argument(
            '--username',
            type=str,
            help='The user who will own custom tags created for associations that are not in '
                 'the curriculum any more. Defaults to the first superuser.',
            default=None,
        )

    def handle(self, *args, **options):
        subjects = options['subjects']
        username = options['username']
        try:
            if username:
                user = User.objects.get(username=username)
            else:
                user = User.objects.filter(is_superuser=True).order_by('pk').first()
        except User.DoesNotExist as exc:
            raise CommandError(f"User {username} not found") from exc
        if user is None:
            self.stderr.write("No superuser found; custom tags cannot be created for removed curriculum entries.")

        try:
            start_time = time.time()
            task, result = start_rebuild(user, subjects)
            elapsed = time.time() - start_time
        except ValueError as exc:
            raise CommandError(str(exc)) from exc
        except TagRebuildError as e:
            logger.exception("System tag rebuild failed (subjects: %s)", subjects or "all")
            raise CommandError(f"Failed to rebuild system tags: {e}") from e

        counts = result.as_dict()
        message = (
            f"Rebuild task {task.pk} finished in {elapsed:.2f} seconds: "
            f"{counts['tagsCreated']} tags created, "
            f"{counts['associationsRestored']} associations restored, "
            f"{counts['customTagsCreated']} custom tags created, "
            f"{counts['customTagsReparented']} custom tags re-attached"
        )
        self.stdout.write(self.style.SUCCESS(message))
