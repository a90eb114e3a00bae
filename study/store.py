"""
Storage boundary for review records and review events.

The service layer only talks to a ReviewStore. DjangoReviewStore is the ORM
implementation. Every call takes an optional ``timeout`` in seconds, and
database failures surface as StoreUnavailable.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from django.db import DEFAULT_DB_ALIAS, IntegrityError, InterfaceError, OperationalError, connections, transaction
from django.db.models import F
from django.utils import timezone

from . import conf
from .exceptions import StoreUnavailable, WriteConflict
from .models import Card, ReviewEvent, ReviewRecord

logger = logging.getLogger(__name__)

RELATION_FIELDS = ['user', 'card', 'contest', 'subtopic']

# Columns written back by a review submission
SCHEDULING_FIELDS = [
    'repetitions',
    'ease_factor',
    'interval_days',
    'next_due_at',
    'status',
    'correct_streak',
    'incorrect_streak',
    'total_correct',
    'total_incorrect',
    'last_reviewed_at',
]


@dataclass(frozen=True)
class Scope:
    """Narrows a query to a contest, topic and/or subtopic. Empty means everything."""
    contest_id: Optional[int] = None
    topic_id: Optional[int] = None
    subtopic_id: Optional[int] = None

    @property
    def is_empty(self):
        return self.contest_id is None and self.topic_id is None and self.subtopic_id is None

    @classmethod
    def from_query(cls, params):
        """
        Build a scope from request query parameters (``contest``, ``topic``, ``subtopic``).

        Raises ValueError when a value is not an integer id.
        """
        values = {}
        for param, field in (('contest', 'contest_id'), ('topic', 'topic_id'), ('subtopic', 'subtopic_id')):
            raw = params.get(param)
            if raw not in (None, ''):
                values[field] = int(raw)
        return cls(**values)

    def as_filter(self):
        """ORM lookups shared by ReviewRecord and ReviewEvent."""
        lookups = {}
        if self.contest_id is not None:
            lookups['contest_id'] = self.contest_id
        if self.topic_id is not None:
            lookups['subtopic__topic_id'] = self.topic_id
        if self.subtopic_id is not None:
            lookups['subtopic_id'] = self.subtopic_id
        return lookups


ALL = Scope()


class ReviewStore(ABC):
    """Persistence operations the scheduling engine depends on."""

    @abstractmethod
    def atomic(self, timeout=None):
        """Context manager grouping several calls into one transaction."""

    @abstractmethod
    def get_card(self, card_id, timeout=None):
        """Return the Card or None."""

    @abstractmethod
    def get_record(self, user_id, card_id, timeout=None):
        """Return the ReviewRecord for (user, card) or None."""

    @abstractmethod
    def create_record(self, user_id, card, contest_id=None, timeout=None):
        """Return (record, created) for (user, card), creating a new record if needed."""

    @abstractmethod
    def upsert_record(self, record, expected_version=None, timeout=None):
        """Write the record. Raise WriteConflict if its version moved on."""

    @abstractmethod
    def delete_record(self, user_id, card_id, timeout=None):
        """Delete the record, returning True if one existed."""

    @abstractmethod
    def append_event(self, event, timeout=None):
        """Persist a new ReviewEvent."""

    @abstractmethod
    def query_events(self, user_id, scope=ALL, newest_first=False, limit=None, timeout=None):
        """Return the user's ReviewEvents within scope."""

    @abstractmethod
    def list_records(self, user_id, scope=ALL, timeout=None):
        """Return the user's ReviewRecords within scope, in creation order."""


class DjangoReviewStore(ReviewStore):
    """ReviewStore backed by the Django ORM."""

    def __init__(self, using=DEFAULT_DB_ALIAS, timeout=None):
        self.using = using
        self.timeout = timeout

    def _resolve_timeout(self, timeout):
        if timeout is not None:
            return timeout
        if self.timeout is not None:
            return self.timeout
        return conf.store_timeout()

    def _apply_timeout(self, connection, timeout):
        """Bound statement time (postgres) or lock waits (sqlite) for this call."""
        milliseconds = int(timeout * 1000)
        if connection.vendor == 'postgresql':
            statement = f"SET LOCAL statement_timeout = {milliseconds}"
        elif connection.vendor == 'sqlite':
            statement = f"PRAGMA busy_timeout = {milliseconds}"
        else:
            return
        with connection.cursor() as cursor:
            cursor.execute(statement)

    @contextmanager
    def atomic(self, timeout=None):
        timeout = self._resolve_timeout(timeout)
        try:
            with transaction.atomic(using=self.using):
                self._apply_timeout(connections[self.using], timeout)
                yield
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Review store unavailable: %s", exc)
            raise StoreUnavailable(str(exc)) from exc

    def get_card(self, card_id, timeout=None):
        with self.atomic(timeout):
            return Card.objects.using(self.using).select_related('subtopic__topic').filter(pk=card_id).first()

    def get_record(self, user_id, card_id, timeout=None):
        with self.atomic(timeout):
            return ReviewRecord.objects.using(self.using).filter(user_id=user_id, card_id=card_id).first()

    def create_record(self, user_id, card, contest_id=None, timeout=None):
        with self.atomic(timeout):
            return ReviewRecord.objects.using(self.using).get_or_create(
                user_id=user_id,
                card=card,
                defaults={
                    'contest_id': contest_id,
                    'subtopic_id': card.subtopic_id,
                    'ease_factor': conf.default_ease_factor(),
                },
            )

    def upsert_record(self, record, expected_version=None, timeout=None):
        record.clean_fields(exclude=RELATION_FIELDS)
        record.clean()

        with self.atomic(timeout):
            if record.pk is None:
                try:
                    with transaction.atomic(using=self.using):
                        record.save(using=self.using)
                except IntegrityError as exc:
                    raise WriteConflict(None, expected_version) from exc
                return record

            values = {field: getattr(record, field) for field in SCHEDULING_FIELDS}
            values['updated_at'] = timezone.now()
            records = ReviewRecord.objects.using(self.using).filter(pk=record.pk)

            if expected_version is None:
                updated = records.update(version=F('version') + 1, **values)
                if not updated:
                    raise WriteConflict(record.pk, None)
                record.version = records.values_list('version', flat=True).get()
            else:
                updated = records.filter(version=expected_version).update(
                    version=expected_version + 1, **values
                )
                if not updated:
                    raise WriteConflict(record.pk, expected_version)
                record.version = expected_version + 1

            record.updated_at = values['updated_at']
            return record

    def delete_record(self, user_id, card_id, timeout=None):
        with self.atomic(timeout):
            deleted, _ = ReviewRecord.objects.using(self.using).filter(
                user_id=user_id, card_id=card_id
            ).delete()
            return deleted > 0

    def append_event(self, event, timeout=None):
        if event.pk is not None:
            raise ValueError("Review events are append-only")
        event.clean_fields(exclude=RELATION_FIELDS)

        with self.atomic(timeout):
            event.save(using=self.using)
            return event

    def query_events(self, user_id, scope=ALL, newest_first=False, limit=None, timeout=None):
        scope = scope or ALL
        ordering = ('-reviewed_at', '-pk') if newest_first else ('reviewed_at', 'pk')
        with self.atomic(timeout):
            events = ReviewEvent.objects.using(self.using).filter(
                user_id=user_id, **scope.as_filter()
            ).select_related('subtopic').order_by(*ordering)
            if limit is not None:
                events = events[:limit]
            return list(events)

    def list_records(self, user_id, scope=ALL, timeout=None):
        scope = scope or ALL
        with self.atomic(timeout):
            return list(
                ReviewRecord.objects.using(self.using).filter(
                    user_id=user_id, **scope.as_filter()
                ).order_by('created_at', 'pk')
            )
