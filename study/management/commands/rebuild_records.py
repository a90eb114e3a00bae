"""
Management command to rebuild review records from the review event log.

    python manage.py rebuild_records [--user USERNAME] [--dry-run]

Each enrolled record is reset and every logged review for it is replayed in
order through the scheduling algorithm. Cards removed from study are not
recreated.
"""

import logging

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand, CommandError

from study.models import ReviewEvent, ReviewRecord
from study.store import DjangoReviewStore

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Rebuild review records by replaying the review event log'

    def add_arguments(self, parser):
        parser.add_argument(
            '--user',
            help='Only rebuild records for this username',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would change without saving',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        store = DjangoReviewStore()

        records = ReviewRecord.objects.select_related('user').order_by('user_id', 'created_at')
        if options['user']:
            try:
                user = User.objects.get(username=options['user'])
            except User.DoesNotExist:
                raise CommandError(f"User {options['user']!r} does not exist")
            records = records.filter(user=user)

        logger.info("Starting rebuild_records", extra={'dry_run': dry_run, 'user': options['user']})

        rebuilt = 0
        changed = 0
        for record in records:
            before = (record.repetitions, record.ease_factor, record.interval_days, record.status)
            self._replay(record)
            after = (record.repetitions, record.ease_factor, record.interval_days, record.status)

            if before != after:
                changed += 1
                self.stdout.write(
                    f"{record.user.username} card {record.card_id}: "
                    f"{before[3]} -> {after[3]}, interval {before[2]} -> {after[2]}"
                )

            if not dry_run:
                store.upsert_record(record, expected_version=record.version)
            rebuilt += 1

        prefix = '[DRY RUN] ' if dry_run else ''
        logger.info(f"rebuild_records finished: {rebuilt} processed, {changed} changed")
        self.stdout.write(
            self.style.SUCCESS(f"{prefix}Rebuilt {rebuilt} record(s), {changed} changed")
        )

    def _replay(self, record):
        events = ReviewEvent.objects.filter(
            user_id=record.user_id, card_id=record.card_id
        ).order_by('reviewed_at', 'pk')

        record.reset()
        for event in events:
            record.apply_review(event.quality, event.reviewed_at)
