"""Read-only aggregates over a user's folders, files and notes.

Feeds the dashboard: counts, storage breakdown by file type, recent
items and daily activity over a trailing window.
"""

import datetime as dt
import logging
from typing import Any, Final

from django.conf import settings
from django.db.models import Count, QuerySet, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from drive.apps.storage.logic.quota_operations import (
    get_or_create_quota,
    storage_percentage,
)
from drive.apps.storage.models import File, Folder, Note

# User type for Django's dynamic user model
_User = Any

_DEFAULT_RECENT_LIMIT: Final = 5
_POPULAR_FILES_LIMIT: Final = 10
_ROOT_LABEL: Final = 'Root'

logger = logging.getLogger(__name__)


def get_summary(
    user: _User,
    recent_limit: int = _DEFAULT_RECENT_LIMIT,
) -> dict[str, Any]:
    """Build the storage summary for a user's dashboard.

    Args:
        user: Owner.
        recent_limit: How many recent files and notes to include.

    Returns:
        Nested dict with ``storage``, ``counts``, ``file_types``,
        ``recent`` and ``statistics`` sections.
    """
    quota = get_or_create_quota(user)
    files = File.objects.filter(user=user)

    folder_count = Folder.objects.filter(user=user).count()
    note_count = Note.objects.filter(user=user).count()
    file_totals = files.aggregate(count=Count('id'), size=Sum('size_bytes'))
    file_count = file_totals['count']
    total_size = file_totals['size'] or 0

    breakdown = get_storage_breakdown(user, quota.used_bytes)
    logger.debug(
        'Building summary for user %s: %d folders, %d files, %d notes',
        user.username,
        folder_count,
        file_count,
        note_count,
    )

    favorites = {
        'folders': Folder.objects.filter(user=user, is_favorite=True).count(),
        'files': files.filter(is_favorite=True).count(),
        'notes': Note.objects.filter(user=user, is_favorite=True).count(),
    }
    favorites['total'] = sum(favorites.values())

    return {
        'storage': {
            'used': quota.used_bytes,
            'limit': quota.quota_bytes,
            'percentage': storage_percentage(quota),
            'available': quota.available_bytes(),
            'breakdown': breakdown,
        },
        'counts': {
            'folders': folder_count,
            'files': file_count,
            'notes': note_count,
            'favorites': favorites,
        },
        'file_types': {
            file_type: breakdown.get(file_type, {}).get('count', 0)
            for file_type in File.FileType.values
        },
        'recent': {
            'files': [
                _describe_file(file_instance)
                for file_instance in recent_files(user, recent_limit)
            ],
            'notes': [
                _describe_note(note)
                for note in recent_notes(user, recent_limit)
            ],
        },
        'statistics': {
            'total_items': folder_count + file_count + note_count,
            'average_file_size': (
                round(total_size / file_count) if file_count else 0
            ),
        },
    }


def get_storage_breakdown(
    user: _User,
    used_bytes: int,
) -> dict[str, dict[str, int]]:
    """Count, size and share of ``used_bytes`` per file type.

    Types without files are left out.

    Args:
        user: Owner.
        used_bytes: Ledger usage the percentages are relative to.

    Returns:
        Mapping of file type to ``count``, ``size`` and ``percentage``.
    """
    rows = File.objects.filter(user=user).values('file_type').annotate(
        count=Count('id'),
        size=Sum('size_bytes'),
    ).order_by('file_type')

    return {
        row['file_type']: {
            'count': row['count'],
            'size': row['size'],
            'percentage': (
                round(row['size'] / used_bytes * 100) if used_bytes > 0 else 0
            ),
        }
        for row in rows
    }


def recent_files(
    user: _User,
    limit: int = _DEFAULT_RECENT_LIMIT,
) -> QuerySet[File]:
    """Most recently created files."""
    return File.objects.filter(user=user).select_related(
        'folder',
    ).order_by('-created_at')[:limit]


def recent_notes(
    user: _User,
    limit: int = _DEFAULT_RECENT_LIMIT,
) -> QuerySet[Note]:
    """Most recently updated notes."""
    return Note.objects.filter(user=user).select_related(
        'folder',
    ).order_by('-updated_at')[:limit]


def get_analytics(
    user: _User,
    period_days: int | None = None,
) -> dict[str, Any]:
    """Daily activity and storage growth for a user.

    Args:
        user: Owner.
        period_days: Trailing window in days (default from settings).

    Returns:
        Dict with ``period``, ``activity`` (per-day files, notes and
        folders created inside the window), ``popular_files`` and
        cumulative ``storage_growth``.
    """
    if period_days is None:
        period_days = settings.DRIVE_ANALYTICS_PERIOD_DAYS
    start = timezone.now() - dt.timedelta(days=period_days)

    files = File.objects.filter(user=user)

    return {
        'period': period_days,
        'activity': {
            'files': _daily_activity(
                files.filter(created_at__gte=start),
                with_size=True,
            ),
            'notes': _daily_activity(
                Note.objects.filter(user=user, created_at__gte=start),
            ),
            'folders': _daily_activity(
                Folder.objects.filter(user=user, created_at__gte=start),
            ),
        },
        'popular_files': [
            {
                'id': file_instance.id,
                'name': file_instance.original_name,
                'type': file_instance.file_type,
                'downloads': file_instance.download_count,
                'last_accessed': file_instance.last_accessed,
                'folder': _folder_label(file_instance.folder),
            }
            for file_instance in files.select_related('folder').order_by(
                '-download_count',
                '-last_accessed',
            )[:_POPULAR_FILES_LIMIT]
        ],
        'storage_growth': _cumulative_growth(files),
    }


def _daily_activity(
    queryset: QuerySet[Any],
    *,
    with_size: bool = False,
) -> list[dict[str, Any]]:
    """Group rows by creation day (UTC)."""
    aggregates: dict[str, Any] = {'count': Count('id')}
    if with_size:
        aggregates['size'] = Sum('size_bytes')

    rows = queryset.annotate(
        day=TruncDate('created_at'),
    ).values('day').annotate(**aggregates).order_by('day')

    return [
        {'date': row['day'].isoformat(), **{key: row[key] for key in aggregates}}
        for row in rows
    ]


def _cumulative_growth(files: QuerySet[File]) -> list[dict[str, Any]]:
    """Running total of stored bytes by creation day."""
    rows = files.annotate(
        day=TruncDate('created_at'),
    ).values('day').annotate(
        daily=Sum('size_bytes'),
    ).order_by('day')

    growth = []
    running_total = 0
    for row in rows:
        running_total += row['daily']
        growth.append({'date': row['day'].isoformat(), 'storage': running_total})
    return growth


def _folder_label(folder: Folder | None) -> str:
    if folder is None:
        return _ROOT_LABEL
    return folder.name


def _describe_file(file_instance: File) -> dict[str, Any]:
    return {
        'id': file_instance.id,
        'name': file_instance.original_name,
        'type': file_instance.file_type,
        'size': file_instance.size_bytes,
        'folder': _folder_label(file_instance.folder),
        'created_at': file_instance.created_at,
    }


def _describe_note(note: Note) -> dict[str, Any]:
    return {
        'id': note.id,
        'title': note.title,
        'preview': note.preview(),
        'folder': _folder_label(note.folder),
        'updated_at': note.updated_at,
    }
