"""Business logic for user-scoped tags shared by files and notes."""

import logging
from collections.abc import Sequence
from typing import Any

from django.db.models import Count, QuerySet

from drive.apps.storage.models import Tag
from drive.apps.storage.validators import parse_tags

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def resolve_tags(user: _User, raw_tags: Sequence[str] | str) -> list[Tag]:
    """Get or create the user's tags for the given names.

    Args:
        user: Tag owner.
        raw_tags: Comma-separated string or sequence of names.

    Returns:
        Tag instances in input order.
    """
    tags = []
    for tag_name in parse_tags(raw_tags):
        tag, created = Tag.objects.get_or_create(user=user, name=tag_name)
        if created:
            logger.debug('Created tag %s for user %s', tag_name, user.username)
        tags.append(tag)
    return tags


def list_tags(user: _User) -> QuerySet[Tag]:
    """List a user's tags annotated with file and note usage counts."""
    return Tag.objects.filter(user=user).annotate(
        file_count=Count('files', distinct=True),
        note_count=Count('notes', distinct=True),
    ).order_by('name')
