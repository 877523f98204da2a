"""Management command to repair storage ledger drift."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db.models import Sum

from drive.apps.storage.logic.quota_operations import (
    get_or_create_quota,
    recalculate_usage,
)
from drive.apps.storage.models import File

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Recompute used bytes from live files for every (or one) user."""

    help = 'Recalculate storage usage from live files'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--username',
            help='Only recalculate this user',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without fixing it',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recalculation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        users = get_user_model().objects.order_by('pk')

        if options['username']:
            users = users.filter(username=options['username'])
            if not users.exists():
                raise CommandError(f'User not found: {options["username"]}')

        checked = 0
        drifted = 0

        for user in users:
            checked += 1
            recorded = get_or_create_quota(user).used_bytes
            actual = File.objects.filter(user=user).aggregate(
                total=Sum('size_bytes'),
            )['total'] or 0

            if recorded == actual:
                continue

            drifted += 1
            if dry_run:
                self.stdout.write(
                    f'Would fix {user.username}: {recorded} -> {actual} bytes',
                )
                continue

            recalculate_usage(user)
            self.stdout.write(
                f'Fixed {user.username}: {recorded} -> {actual} bytes',
            )
            logger.info(
                'Repaired ledger drift for user %s: %d -> %d',
                user.username,
                recorded,
                actual,
            )

        verb = 'Would fix' if dry_run else 'Fixed'
        self.stdout.write(
            self.style.SUCCESS(
                f'Checked {checked} users, {verb.lower()} {drifted}',
            ),
        )
