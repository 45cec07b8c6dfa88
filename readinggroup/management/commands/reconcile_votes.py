"""
Repair denormalised vote and win lists from the topics.

Runs the same pass as the periodic ``reconcile_vote_state`` task, in process,
and refuses to run while a worker is reconciling unless ``--force`` is given.

Usage:
    python manage.py reconcile_votes [--force]
"""

import socket

from django.core.management.base import BaseCommand, CommandError

from readinggroup.contextmanagers import RECONCILE_LOCK, exclusive_lock
from readinggroup.exceptions import CacheLockedError
from readinggroup.reconciliation import reconcile_vote_state


class Command(BaseCommand):
    help = "Rebuild member vote and win lists from the topics"  # NOQA: A003

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Reconcile even if another reconciliation holds the lock",
        )

    def handle(self, *args, **options):
        if options["force"]:
            changed = reconcile_vote_state()
        else:
            try:
                with exclusive_lock(RECONCILE_LOCK, socket.gethostname()):
                    changed = reconcile_vote_state()
            except CacheLockedError as err:
                raise CommandError(
                    "Another reconciliation is running; use --force to run anyway"
                ) from err
        self.stdout.write(self.style.SUCCESS(f"Reconciled; {changed} records changed"))
