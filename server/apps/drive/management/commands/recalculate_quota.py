"""Management command to repair drifted storage usage."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from server.apps.drive.logic.quota_operations import (
    calculate_usage,
    recalculate_usage,
)
from server.apps.drive.models import UserQuota

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Recompute users' used bytes from the files they own."""

    help = 'Recalculate storage usage from stored file records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--user',
            help='Username to recalculate (default: every user)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show drifted usage without fixing it',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recalculation.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the requested user does not exist.
        """
        dry_run = options['dry_run']
        user_model = get_user_model()
        users = user_model.objects.order_by('pk')

        if options['user']:
            users = users.filter(
                **{user_model.USERNAME_FIELD: options['user']},
            )
            if not users.exists():
                raise CommandError(f'User not found: {options["user"]}')

        drifted = 0
        for user in users:
            stored = UserQuota.objects.filter(user=user).values_list(
                'used_bytes',
                flat=True,
            ).first() or 0
            actual = calculate_usage(user)
            if stored == actual:
                continue

            drifted += 1
            username = user.get_username()
            if dry_run:
                self.stdout.write(
                    f'Would fix {username}: {stored} -> {actual} bytes',
                )
                continue

            recalculate_usage(user)
            self.stdout.write(f'Fixed {username}: {stored} -> {actual} bytes')

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would fix usage of {drifted} users'),
            )
        else:
            logger.info('Recalculated usage of %d users', drifted)
            self.stdout.write(
                self.style.SUCCESS(f'Fixed usage of {drifted} users'),
            )
