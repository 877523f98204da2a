"""Business logic for the storage quota ledger.

``used_bytes`` on a user's ``StorageQuota`` is the ledger. It grows
through ``reserve_storage`` before bytes are committed and shrinks
through ``release_storage`` after bytes are removed or a reservation
is rolled back.
"""

import logging
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import F, Sum  # noqa: WPS347

from drive.apps.storage.exceptions import QuotaExceededError
from drive.apps.storage.models import File, StorageQuota

# User type for Django's dynamic user model
_User = Any

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


def get_or_create_quota(user: _User) -> StorageQuota:
    """Get or create quota for user (on-demand creation).

    Args:
        user: User to get quota for.

    Returns:
        StorageQuota instance for the user.
    """
    quota, created = StorageQuota.objects.get_or_create(
        user=user,
        defaults={'quota_bytes': settings.DRIVE_DEFAULT_QUOTA_BYTES},
    )
    if created:
        logger.info(
            'Created quota for user %s: %d bytes',
            user.username,
            quota.quota_bytes,
        )
    return quota


def lock_owner(user: _User) -> StorageQuota:
    """Serialize structural mutations for one owner.

    Locks the owner's quota row until the surrounding transaction
    ends. Must be called inside ``transaction.atomic()``.

    Args:
        user: Owner whose mutations are serialized.

    Returns:
        The locked StorageQuota row.
    """
    get_or_create_quota(user)
    return StorageQuota.objects.select_for_update().get(user=user)


def reserve_storage(user: _User, size_bytes: int) -> None:
    """Charge ``size_bytes`` to the user's ledger if it fits.

    The check and the increment are one conditional UPDATE, so
    concurrent reservations cannot jointly exceed the limit.

    Args:
        user: User to charge.
        size_bytes: Bytes to add to usage.

    Raises:
        ValueError: If size_bytes is negative.
        QuotaExceededError: If usage would exceed the quota. Nothing
            is applied in that case.
    """
    if size_bytes < 0:
        raise ValueError(f'Cannot reserve negative size: {size_bytes}')

    get_or_create_quota(user)

    updated = StorageQuota.objects.filter(
        user=user,
        used_bytes__lte=F('quota_bytes') - size_bytes,
    ).update(
        used_bytes=F(_USED_BYTES_FIELD) + size_bytes,
    )

    if updated == 0:
        quota = StorageQuota.objects.get(user=user)
        logger.warning(
            'Quota exceeded for user %s: need %d, have %d available',
            user.username,
            size_bytes,
            quota.available_bytes(),
        )
        raise QuotaExceededError(
            quota_bytes=quota.quota_bytes,
            used_bytes=quota.used_bytes,
            required_bytes=size_bytes,
        )

    logger.debug(
        'Reserved %d bytes for user %s',
        size_bytes,
        user.username,
    )


def release_storage(user: _User, size_bytes: int) -> None:
    """Return ``size_bytes`` to the user's ledger.

    Never fails: usage is clamped to 0 to tolerate earlier drift.

    Args:
        user: User to release storage for.
        size_bytes: Bytes to subtract from usage.
    """
    with transaction.atomic():
        try:
            quota = StorageQuota.objects.select_for_update().get(user=user)
        except StorageQuota.DoesNotExist:
            # No quota exists, nothing to release
            logger.debug(
                'No quota exists for user %s, skipping release',
                user.username,
            )
            return

        new_usage = max(0, quota.used_bytes - max(0, size_bytes))
        quota.used_bytes = new_usage
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Released %d bytes for user %s (new: %d)',
        size_bytes,
        user.username,
        new_usage,
    )


def recalculate_usage(user: _User) -> int:
    """Recalculate user's storage usage from live files.

    Repairs drift left behind by interrupted operations.

    Args:
        user: User to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    total = File.objects.filter(user=user).aggregate(
        total=Sum('size_bytes'),
    )['total'] or 0

    with transaction.atomic():
        quota = lock_owner(user)
        old_usage = quota.used_bytes
        quota.used_bytes = total
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.info(
        'Recalculated usage for user %s: %d -> %d bytes',
        user.username,
        old_usage,
        total,
    )

    return total


def storage_percentage(quota: StorageQuota) -> int:
    """Rounded percentage of the quota in use.

    Args:
        quota: Quota to report on.

    Returns:
        Percentage, 0 when the limit is 0.
    """
    if quota.quota_bytes == 0:
        return 0
    return round(quota.used_bytes / quota.quota_bytes * 100)
