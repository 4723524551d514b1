from __future__ import annotations

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError

from staffing.domain.repositories import ConflictRepository
from staffing.services.conflicts import scan_conflicts


class Command(BaseCommand):
    help = (
        "Re-runs double-booking detection over stored schedules and records "
        "conflicts that are not on record yet."
    )

    def add_arguments(self, parser):
        parser.add_argument("--user", type=str, help="Username to scan (default: everyone).")
        parser.add_argument(
            "--list",
            action="store_true",
            help="Print the unresolved conflicts after scanning.",
        )

    def handle(self, *args, **opts):
        user_id = None
        username = opts.get("user")
        if username:
            user = User.objects.filter(username=username).first()
            if user is None:
                raise CommandError(f"User '{username}' not found.")
            user_id = user.id

        created = scan_conflicts(user_id)
        self.stdout.write(self.style.SUCCESS(f"[scan] {created} new conflict(s) recorded."))

        if opts.get("list"):
            for c in ConflictRepository.unresolved(user_id):
                self.stdout.write(
                    f"  #{c.id} {c.conflict_date:%Y-%m-%d} {c.user.username}: "
                    f"assignment {c.assignment_id} vs {c.conflicting_assignment_id}"
                )
