"""
Caller-facing operations of the scheduling engine.

StudyService wires the pure pieces (srs, states, selector, performance) to a
ReviewStore and a clock. Views, commands and other apps call this class and
never touch the store directly.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.db.models import Count
from django.utils import timezone

from . import conf, performance, selector, srs
from .exceptions import RecordNotFound, StoreUnavailable, WriteConflict
from .models import Card, Contest, ContestTopic, ReviewEvent, ReviewRecord, Subtopic, Topic
from .store import ALL, DjangoReviewStore, Scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    record: ReviewRecord
    event: ReviewEvent
    next_due_at: datetime
    status: str


class StudyService:
    """Scheduling, session selection and statistics for one store and clock."""

    def __init__(self, store=None, clock=None):
        self.store = store or DjangoReviewStore()
        self.clock = clock or timezone.now

    # -- enrollment ---------------------------------------------------------

    def _resolve_contest_id(self, user_id, card):
        """The user's contest that covers the card's topic, if any."""
        contest_topic = ContestTopic.objects.filter(
            contest__owner_id=user_id,
            topic_id=card.subtopic.topic_id,
        ).order_by('-priority', 'pk').first()
        return contest_topic.contest_id if contest_topic else None

    def _check_contest(self, user_id, contest_id):
        if not Contest.objects.filter(pk=contest_id, owner_id=user_id).exists():
            raise Contest.DoesNotExist(f"Contest {contest_id} does not exist for user {user_id}")

    def enroll(self, user_id, card_id, contest_id=None):
        """
        Add a card to the user's study set.

        Returns the existing record when the card is already enrolled.
        Raises Card.DoesNotExist for an unknown card and Contest.DoesNotExist
        when ``contest_id`` is not one of the user's contests.
        """
        card = self.store.get_card(card_id)
        if card is None:
            raise Card.DoesNotExist(f"Card {card_id} does not exist")

        if contest_id is not None:
            self._check_contest(user_id, contest_id)
        else:
            contest_id = self._resolve_contest_id(user_id, card)

        record, created = self.store.create_record(user_id, card, contest_id=contest_id)
        if created:
            logger.info(f"User {user_id} enrolled card {card_id} (contest={contest_id})")
        return record

    def enroll_subtopic(self, user_id, subtopic_id, contest_id=None):
        """Enroll every card of a subtopic. Returns the number of newly created records."""
        if contest_id is not None:
            self._check_contest(user_id, contest_id)

        created_count = 0
        for card in Card.objects.filter(subtopic_id=subtopic_id).select_related('subtopic'):
            card_contest_id = contest_id or self._resolve_contest_id(user_id, card)
            _, created = self.store.create_record(user_id, card, contest_id=card_contest_id)
            if created:
                created_count += 1

        logger.info(f"User {user_id} enrolled {created_count} card(s) from subtopic {subtopic_id}")
        return created_count

    def remove_from_study(self, user_id, card_id):
        """Drop the user's record for a card. Its review events are kept."""
        if not self.store.delete_record(user_id, card_id):
            raise RecordNotFound(user_id, card_id)
        logger.info(f"User {user_id} removed card {card_id} from study")

    # -- reviews ------------------------------------------------------------

    def submit_review(self, user_id, card_id, quality, response_time=None):
        """
        Record a review of quality 0-5 and reschedule the card.

        Raises InvalidRating before anything is read, RecordNotFound when the
        card was never enrolled, and WriteConflict when another submission for
        the same card won the race. A conflict writes nothing, so the caller
        can re-read and resubmit without double counting.
        """
        srs.validate_quality(quality)
        if response_time is None:
            response_time = conf.default_response_seconds()

        now = self.clock()
        record = self.store.get_record(user_id, card_id)
        if record is None:
            raise RecordNotFound(user_id, card_id)

        expected_version = record.version
        record.apply_review(quality, now)

        event = ReviewEvent(
            user_id=user_id,
            card_id=card_id,
            contest_id=record.contest_id,
            subtopic_id=record.subtopic_id,
            quality=quality,
            correct=srs.is_correct(quality),
            repetitions=record.repetitions,
            ease_factor=record.ease_factor,
            interval_days=record.interval_days,
            response_time=response_time,
            reviewed_at=now,
        )

        try:
            with self.store.atomic():
                self.store.upsert_record(record, expected_version=expected_version)
                self.store.append_event(event)
        except (WriteConflict, StoreUnavailable) as exc:
            logger.warning(f"Review of card {card_id} by user {user_id} was not saved: {exc}")
            raise

        logger.info(
            f"User {user_id} reviewed card {card_id}: quality={quality} "
            f"status={record.status} interval={record.interval_days}d"
        )
        return ReviewOutcome(
            record=record,
            event=event,
            next_due_at=record.next_due_at,
            status=record.status,
        )

    # -- sessions -----------------------------------------------------------

    def get_due_cards(self, user_id, scope=None, limit=None):
        records = self.store.list_records(user_id, scope or ALL)
        return selector.due_cards(records, self.clock(), limit)

    def get_next_card(self, user_id, scope=None):
        records = self.store.list_records(user_id, scope or ALL)
        return selector.next_due_card(records, self.clock())

    def get_learning_progress(self, user_id, scope=None):
        records = self.store.list_records(user_id, scope or ALL)
        return selector.status_counts(records, self.clock())

    def get_study_history(self, user_id, scope=None, limit=None):
        if limit is None:
            limit = conf.history_limit()
        return self.store.query_events(user_id, scope or ALL, newest_first=True, limit=limit)

    # -- statistics ---------------------------------------------------------

    def _today(self):
        return timezone.localdate(self.clock())

    def get_stats(self, user_id, scope=None):
        events = self.store.query_events(user_id, scope or ALL)
        return performance.calculate_stats(events, self._today())

    def get_overall_performance(self, user_id):
        events = self.store.query_events(user_id, ALL)
        return performance.build_overall_performance(events, self._today())

    def _card_counts(self, subtopic_ids):
        rows = Card.objects.filter(subtopic_id__in=subtopic_ids).values('subtopic_id').annotate(
            count=Count('id')
        )
        return {row['subtopic_id']: row['count'] for row in rows}

    def get_contest_performance(self, user_id, contest_id, since=None):
        """
        Raises Contest.DoesNotExist when the contest is not the user's.

        With ``since``, only reviews at or after that time are counted.
        """
        contest = Contest.objects.get(pk=contest_id, owner_id=user_id)
        contest_topics = ContestTopic.objects.filter(contest=contest).select_related('topic')
        topics = [
            (contest_topic.topic, list(contest_topic.topic.subtopics.all()))
            for contest_topic in contest_topics
        ]
        subtopic_ids = [subtopic.pk for _, subtopics in topics for subtopic in subtopics]

        scope = Scope(contest_id=contest.pk)
        events = self.store.query_events(user_id, scope)
        if since is not None:
            events = [event for event in events if event.reviewed_at >= since]

        return performance.build_contest_performance(
            contest,
            topics,
            events,
            self.store.list_records(user_id, scope),
            self._card_counts(subtopic_ids),
            self._today(),
            self.clock(),
        )

    def get_topic_performance(self, user_id, topic_id, contest_id=None):
        """Raises Topic.DoesNotExist for an unknown topic."""
        topic = Topic.objects.get(pk=topic_id)
        subtopics = list(topic.subtopics.all())

        scope = Scope(contest_id=contest_id, topic_id=topic.pk)
        return performance.build_topic_performance(
            topic,
            subtopics,
            self.store.query_events(user_id, scope),
            self.store.list_records(user_id, scope),
            self._card_counts([subtopic.pk for subtopic in subtopics]),
            self._today(),
            self.clock(),
        )

    def get_subtopic_performance(self, user_id, subtopic_id, contest_id=None):
        """Raises Subtopic.DoesNotExist for an unknown subtopic."""
        subtopic = Subtopic.objects.get(pk=subtopic_id)

        scope = Scope(contest_id=contest_id, subtopic_id=subtopic.pk)
        return performance.build_subtopic_performance(
            subtopic,
            self.store.query_events(user_id, scope),
            self.store.list_records(user_id, scope),
            self._card_counts([subtopic.pk]).get(subtopic.pk, 0),
            self._today(),
            self.clock(),
        )

    def compare_contests(self, user_id, contest_ids):
        """Contest performance for each id. Contests the user does not own are skipped."""
        comparisons = []
        for contest_id in contest_ids:
            try:
                comparisons.append(self.get_contest_performance(user_id, contest_id))
            except Contest.DoesNotExist:
                logger.info(f"Skipping contest {contest_id} in comparison: not found for user {user_id}")
        return comparisons

    def get_study_insights(self, user_id, contest_id=None, period_days=30):
        """Advice based on the reviews of the last ``period_days`` days."""
        since = self.clock() - timedelta(days=period_days)
        topic_performance: Optional[list] = None

        if contest_id is not None:
            contest_performance = self.get_contest_performance(user_id, contest_id, since=since)
            topic_performance = contest_performance.topic_performance
            scope = Scope(contest_id=contest_id)
        else:
            scope = ALL

        events = [
            event for event in self.store.query_events(user_id, scope)
            if event.reviewed_at >= since
        ]
        metrics = performance.calculate_metrics(events, self._today())
        return performance.study_insights(metrics, period_days, topic_performance)
