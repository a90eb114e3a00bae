"""
Unit tests for the study scheduling engine.

Test organization:
- SRS*Tests: Pure function tests for the SM-2 algorithm
- StateMachineTests: Pure transition function for record status
- SelectorTests: Pure due-card selection
- Performance*Tests: Pure statistics over review events
- StoreTests: ORM store, optimistic concurrency and error mapping
- StudyService*Tests: Caller-facing operations against the database
- *ViewTests: JSON endpoints
- RebuildRecordsCommandTests: Event log replay command
"""

import json
from datetime import date, datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch, MagicMock

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import OperationalError, connection
from django.test import TestCase, override_settings
from django.test.utils import CaptureQueriesContext
from django.urls import reverse

from . import performance, selector, srs, states
from .exceptions import InvalidRating, RecordNotFound, StoreUnavailable, WriteConflict
from .models import Card, Contest, ContestTopic, ReviewEvent, ReviewRecord, Subtopic, Topic
from .services import StudyService
from .store import DjangoReviewStore, Scope


NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=dt_timezone.utc)
TODAY = date(2025, 1, 15)


class FakeClock:
    """Deterministic clock for StudyService."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_event(reviewed_at=NOW, correct=True, response_time=30, ease_factor=2.5,
               repetitions=1, subtopic_id=1, contest_id=1):
    """Unsaved ReviewEvent for pure aggregation tests."""
    return ReviewEvent(
        quality=4 if correct else 1,
        correct=correct,
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval_days=1,
        response_time=response_time,
        reviewed_at=reviewed_at,
        subtopic_id=subtopic_id,
        contest_id=contest_id,
    )


def make_record(next_due_at=None, last_reviewed_at=None, status=states.NEW):
    """Unsaved ReviewRecord for pure selection tests."""
    return ReviewRecord(
        next_due_at=next_due_at,
        last_reviewed_at=last_reviewed_at,
        status=status,
    )


class HierarchyMixin:
    """Contest -> Topic -> Subtopic -> Cards for one user."""

    def create_hierarchy(self):
        self.user = User.objects.create_user(username='student', password='testpass123')
        self.contest = Contest.objects.create(owner=self.user, name='Federal Exam')
        self.topic = Topic.objects.create(name='Constitutional Law')
        ContestTopic.objects.create(contest=self.contest, topic=self.topic, priority=1)
        self.subtopic = Subtopic.objects.create(topic=self.topic, name='Fundamental Rights')
        self.card = Card.objects.create(subtopic=self.subtopic, front='Question 1', back='Answer 1')
        self.card2 = Card.objects.create(subtopic=self.subtopic, front='Question 2', back='Answer 2')


# =============================================================================
# SRS Algorithm Tests
# =============================================================================

class SRSEaseFactorTests(TestCase):
    """Tests for ease factor calculation."""

    def test_perfect_response_increases_ease(self):
        """Quality 5 (perfect) should increase ease factor."""
        self.assertGreater(srs.calculate_ease_factor(2.5, quality=5), 2.5)

    def test_good_response_maintains_ease(self):
        """Quality 4 (good) is neutral."""
        self.assertAlmostEqual(srs.calculate_ease_factor(2.5, quality=4), 2.5)

    def test_hard_response_decreases_ease(self):
        """Quality 3 (hard but correct) should slightly decrease ease."""
        self.assertLess(srs.calculate_ease_factor(2.5, quality=3), 2.5)

    def test_wrong_response_decreases_ease(self):
        """Quality 0-2 (wrong) should decrease ease factor."""
        for quality in [0, 1, 2]:
            self.assertLess(srs.calculate_ease_factor(2.5, quality=quality), 2.5)

    def test_ease_factor_formula_accuracy(self):
        """EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02))."""
        self.assertAlmostEqual(srs.calculate_ease_factor(2.5, quality=5), 2.6, places=6)
        self.assertAlmostEqual(srs.calculate_ease_factor(2.5, quality=0), 1.7, places=6)

    def test_repeated_failures_approach_but_never_cross_floor(self):
        """Repeated incorrect answers drive ease down to exactly 1.3, never below."""
        ease = 2.5
        previous = ease
        for _ in range(20):
            ease = srs.calculate_ease_factor(ease, quality=0)
            self.assertGreaterEqual(ease, srs.MIN_EASE_FACTOR)
            self.assertLessEqual(ease, previous)
            previous = ease
        self.assertEqual(ease, srs.MIN_EASE_FACTOR)


class SRSIntervalTests(TestCase):
    """Tests for interval calculation."""

    def test_first_correct_review(self):
        interval, reps = srs.calculate_interval(0, repetitions=0, ease_factor=2.5, quality=4)
        self.assertEqual(interval, srs.FIRST_INTERVAL)
        self.assertEqual(reps, 1)

    def test_second_correct_review(self):
        interval, reps = srs.calculate_interval(1, repetitions=1, ease_factor=2.5, quality=4)
        self.assertEqual(interval, srs.SECOND_INTERVAL)
        self.assertEqual(reps, 2)

    def test_subsequent_review_uses_ease_factor(self):
        interval, reps = srs.calculate_interval(6, repetitions=2, ease_factor=2.5, quality=4)
        self.assertEqual(interval, 15)
        self.assertEqual(reps, 3)

    def test_half_interval_rounds_up(self):
        """3 * 2.5 = 7.5 rounds to 8."""
        interval, _ = srs.calculate_interval(3, repetitions=2, ease_factor=2.5, quality=4)
        self.assertEqual(interval, 8)

    def test_failed_review_resets_progress(self):
        for quality in [0, 1, 2]:
            interval, reps = srs.calculate_interval(30, repetitions=5, ease_factor=2.5, quality=quality)
            self.assertEqual(interval, 1)
            self.assertEqual(reps, 0)

    def test_boundary_quality_3_is_correct(self):
        self.assertTrue(srs.is_correct(3))
        self.assertFalse(srs.is_correct(2))


class SRSAdvanceTests(TestCase):
    """Tests for the advance() entry point."""

    def test_interval_progression(self):
        """1 day, then 6 days, then interval times ease factor."""
        first = srs.advance(quality=4, repetitions=0, ease_factor=2.5, interval_days=0, now=NOW)
        self.assertEqual(first.repetitions, 1)
        self.assertEqual(first.interval_days, 1)

        second = srs.advance(4, first.repetitions, first.ease_factor, first.interval_days, NOW)
        self.assertEqual(second.repetitions, 2)
        self.assertEqual(second.interval_days, 6)

        third = srs.advance(5, second.repetitions, second.ease_factor, second.interval_days, NOW)
        self.assertEqual(third.repetitions, 3)
        self.assertEqual(third.interval_days, 15)
        self.assertAlmostEqual(third.ease_factor, 2.6)

    def test_reset_on_failure(self):
        result = srs.advance(quality=1, repetitions=4, ease_factor=2.0, interval_days=20, now=NOW)
        self.assertEqual(result.repetitions, 0)
        self.assertEqual(result.interval_days, 1)
        self.assertAlmostEqual(result.ease_factor, 1.46)

    def test_next_due_is_interval_days_after_now(self):
        result = srs.advance(quality=4, repetitions=1, ease_factor=2.5, interval_days=1, now=NOW)
        self.assertEqual(result.next_due_at, NOW + timedelta(days=6))

    def test_total_over_valid_inputs(self):
        """Every valid input keeps ease >= 1.3 and interval >= 1."""
        for quality in range(6):
            for repetitions in [0, 1, 2, 5, 12]:
                for ease in [1.3, 1.5, 2.5, 3.1]:
                    for interval in [1, 6, 40]:
                        result = srs.advance(quality, repetitions, ease, interval, NOW)
                        self.assertGreaterEqual(result.ease_factor, srs.MIN_EASE_FACTOR)
                        self.assertGreaterEqual(result.interval_days, 1)

    def test_invalid_quality_raises_invalid_rating(self):
        for quality in [-1, 6, 4.5, '3', None, True]:
            with self.assertRaises(InvalidRating):
                srs.advance(quality, 0, 2.5, 0, NOW)

    def test_invalid_rating_is_a_value_error(self):
        with self.assertRaises(ValueError):
            srs.validate_quality(10)

    def test_returns_review_result(self):
        result = srs.advance(4, 0, 2.5, 0, NOW)
        self.assertIsInstance(result, srs.ReviewResult)
        self.assertIsInstance(result.interval_days, int)


# =============================================================================
# State Machine Tests
# =============================================================================

class StateMachineTests(TestCase):
    """Tests for next_status."""

    def test_new_becomes_learning_on_any_answer(self):
        self.assertEqual(states.next_status(states.NEW, True, 1, 1), states.LEARNING)
        self.assertEqual(states.next_status(states.NEW, False, 0, 1), states.LEARNING)

    def test_learning_stays_until_two_repetitions(self):
        self.assertEqual(states.next_status(states.LEARNING, True, 1, 1), states.LEARNING)
        self.assertEqual(states.next_status(states.LEARNING, True, 2, 6), states.REVIEW)

    def test_review_graduates_at_five_repetitions(self):
        self.assertEqual(states.next_status(states.REVIEW, True, 4, 40), states.REVIEW)
        self.assertEqual(states.next_status(states.REVIEW, True, 5, 100), states.GRADUATED)

    def test_learning_can_graduate_directly(self):
        self.assertEqual(states.next_status(states.LEARNING, True, 5, 100), states.GRADUATED)

    def test_long_interval_alone_does_not_graduate(self):
        """Graduation is keyed on repetitions, not interval length."""
        self.assertEqual(states.next_status(states.REVIEW, True, 3, 30), states.REVIEW)

    def test_graduated_regresses_on_incorrect(self):
        self.assertEqual(states.next_status(states.GRADUATED, False, 0, 1), states.LEARNING)

    def test_graduated_stays_graduated_on_correct(self):
        self.assertEqual(states.next_status(states.GRADUATED, True, 6, 200), states.GRADUATED)

    def test_review_regresses_on_incorrect(self):
        self.assertEqual(states.next_status(states.REVIEW, False, 0, 1), states.LEARNING)

    def test_graduation_threshold_is_configurable(self):
        self.assertEqual(
            states.next_status(states.REVIEW, True, 3, 15, graduation_repetitions=3),
            states.GRADUATED,
        )

    @override_settings(STUDY_GRADUATION_REPETITIONS=4)
    def test_graduation_threshold_from_settings(self):
        self.assertEqual(states.next_status(states.REVIEW, True, 4, 40), states.GRADUATED)

    def test_unknown_status_raises(self):
        with self.assertRaises(ValueError):
            states.next_status('archived', True, 1, 1)

    def test_full_lifecycle_on_record(self):
        """Forward progression to graduated, then regression to learning."""
        record = ReviewRecord()
        seen = []
        now = NOW
        for _ in range(5):
            record.apply_review(4, now)
            seen.append(record.status)
            now += timedelta(days=record.interval_days)

        self.assertEqual(seen, [
            states.LEARNING, states.REVIEW, states.REVIEW, states.REVIEW, states.GRADUATED
        ])

        record.apply_review(2, now)
        self.assertEqual(record.status, states.LEARNING)
        self.assertEqual(record.repetitions, 0)
        self.assertEqual(record.interval_days, 1)

    def test_streak_counters_are_exclusive(self):
        record = ReviewRecord()
        record.apply_review(5, NOW)
        record.apply_review(4, NOW)
        self.assertEqual((record.correct_streak, record.incorrect_streak), (2, 0))

        record.apply_review(0, NOW)
        self.assertEqual((record.correct_streak, record.incorrect_streak), (0, 1))
        self.assertEqual((record.total_correct, record.total_incorrect), (2, 1))


# =============================================================================
# Selector Tests
# =============================================================================

class SelectorTests(TestCase):
    """Tests for due_cards and friends."""

    def test_no_records_gives_empty_list(self):
        self.assertEqual(selector.due_cards([], NOW), [])

    def test_due_exactly_now_is_included(self):
        record = make_record(next_due_at=NOW, last_reviewed_at=NOW - timedelta(days=1))
        self.assertEqual(selector.due_cards([record], NOW), [record])

    def test_future_record_is_excluded(self):
        record = make_record(next_due_at=NOW + timedelta(seconds=1), last_reviewed_at=NOW)
        self.assertEqual(selector.due_cards([record], NOW), [])

    def test_never_reviewed_is_due_and_sorts_first(self):
        overdue = make_record(next_due_at=NOW - timedelta(days=3), last_reviewed_at=NOW - timedelta(days=9))
        new = make_record()
        self.assertEqual(selector.due_cards([overdue, new], NOW), [new, overdue])

    def test_orders_by_due_date(self):
        later = make_record(next_due_at=NOW - timedelta(hours=1), last_reviewed_at=NOW - timedelta(days=2))
        earlier = make_record(next_due_at=NOW - timedelta(days=2), last_reviewed_at=NOW - timedelta(days=3))
        self.assertEqual(selector.due_cards([later, earlier], NOW), [earlier, later])

    def test_default_limit_is_session_size(self):
        records = [make_record() for _ in range(25)]
        self.assertEqual(len(selector.due_cards(records, NOW)), 20)

    def test_caller_can_request_fewer(self):
        records = [make_record() for _ in range(5)]
        self.assertEqual(len(selector.due_cards(records, NOW, limit=3)), 3)
        self.assertEqual(selector.due_cards(records, NOW, limit=0), [])

    def test_negative_limit_raises(self):
        with self.assertRaises(ValueError):
            selector.due_cards([], NOW, limit=-1)

    def test_next_due_card(self):
        self.assertIsNone(selector.next_due_card([], NOW))
        record = make_record()
        self.assertIs(selector.next_due_card([record], NOW), record)

    def test_status_counts(self):
        records = [
            make_record(),
            make_record(next_due_at=NOW + timedelta(days=1), last_reviewed_at=NOW, status=states.LEARNING),
            make_record(next_due_at=NOW - timedelta(days=1), last_reviewed_at=NOW, status=states.GRADUATED),
        ]
        counts = selector.status_counts(records, NOW)
        self.assertEqual(counts, {
            'total': 3, 'new': 1, 'learning': 1, 'review': 0, 'graduated': 1, 'due': 2,
        })


# =============================================================================
# Performance Aggregator Tests
# =============================================================================

class PerformanceEmptyTests(TestCase):
    """Empty input gives zero values, never an error."""

    def test_empty_stats(self):
        stats = performance.calculate_stats([], TODAY)
        self.assertEqual(stats.accuracy, 0)
        self.assertEqual(stats.average_response_time, 0)
        self.assertEqual(stats.streak_days, 0)
        self.assertEqual(stats.daily_progress, [])
        self.assertEqual(stats.difficulty_distribution, [])

    def test_empty_metrics(self):
        metrics = performance.calculate_metrics([], TODAY)
        self.assertEqual(metrics.total_reviews, 0)
        self.assertIsNone(metrics.last_study_date)


class PerformanceMetricTests(TestCase):

    def test_accuracy(self):
        events = [make_event(correct=True), make_event(correct=True), make_event(correct=False)]
        self.assertAlmostEqual(performance.calculate_accuracy(events), 200 / 3)

    def test_average_response_time(self):
        events = [make_event(response_time=10), make_event(response_time=50)]
        self.assertEqual(performance.calculate_average_response_time(events), 30)

    def test_metrics_totals(self):
        events = [
            make_event(correct=True, response_time=20, reviewed_at=NOW - timedelta(hours=2)),
            make_event(correct=False, response_time=40, reviewed_at=NOW),
        ]
        metrics = performance.calculate_metrics(events, TODAY)
        self.assertEqual(metrics.total_reviews, 2)
        self.assertEqual(metrics.correct_answers, 1)
        self.assertEqual(metrics.incorrect_answers, 1)
        self.assertEqual(metrics.accuracy, 50)
        self.assertEqual(metrics.total_study_time, 60)
        self.assertEqual(metrics.last_study_date, NOW)


class PerformanceStreakTests(TestCase):

    def days_ago(self, *days):
        return [make_event(reviewed_at=NOW - timedelta(days=d)) for d in days]

    def test_consecutive_days_including_today(self):
        self.assertEqual(performance.calculate_streak_days(self.days_ago(0, 1, 2), TODAY), 3)

    def test_several_events_per_day_count_once(self):
        self.assertEqual(performance.calculate_streak_days(self.days_ago(0, 0, 1), TODAY), 2)

    def test_no_review_today_yet_keeps_streak(self):
        self.assertEqual(performance.calculate_streak_days(self.days_ago(1, 2), TODAY), 2)

    def test_gap_breaks_streak(self):
        self.assertEqual(performance.calculate_streak_days(self.days_ago(0, 2, 3), TODAY), 1)

    def test_old_reviews_only(self):
        self.assertEqual(performance.calculate_streak_days(self.days_ago(3, 4), TODAY), 0)


class PerformanceDailyProgressTests(TestCase):

    def test_groups_by_event_date(self):
        day1 = NOW - timedelta(days=1)
        events = [
            make_event(reviewed_at=NOW, correct=True, repetitions=2, response_time=90),
            make_event(reviewed_at=day1, correct=True, repetitions=1),
            make_event(reviewed_at=day1 + timedelta(minutes=5), correct=False, repetitions=0),
        ]
        progress = performance.calculate_daily_progress(events)

        self.assertEqual([p.date for p in progress], [date(2025, 1, 14), TODAY])
        first, second = progress
        self.assertEqual(first.reviews_count, 2)
        self.assertEqual(first.correct_count, 1)
        self.assertAlmostEqual(first.study_time_minutes, 1.0)
        self.assertEqual(first.new_cards_learned, 1)
        self.assertEqual(second.reviews_count, 1)
        self.assertAlmostEqual(second.study_time_minutes, 1.5)
        self.assertEqual(second.new_cards_learned, 0)


class PerformanceDifficultyTests(TestCase):

    def test_bands_by_event_ease_factor(self):
        events = [
            make_event(ease_factor=3.0, correct=True),
            make_event(ease_factor=2.8, correct=False),
            make_event(ease_factor=2.3, correct=True),
            make_event(ease_factor=2.29, correct=False),
        ]
        distribution = performance.calculate_difficulty_distribution(events)
        by_band = {d.difficulty: d for d in distribution}

        self.assertEqual([d.difficulty for d in distribution], ['easy', 'medium', 'hard'])
        self.assertEqual(by_band['easy'].count, 2)
        self.assertEqual(by_band['easy'].accuracy, 50)
        self.assertEqual(by_band['medium'].accuracy, 100)
        self.assertEqual(by_band['hard'].accuracy, 0)

    def test_empty_bands_are_omitted(self):
        distribution = performance.calculate_difficulty_distribution([make_event(ease_factor=2.5)])
        self.assertEqual([d.difficulty for d in distribution], ['medium'])


class PerformanceInsightTests(TestCase):

    def titles(self, insights):
        return [insight.title for insight in insights]

    def test_struggling_student(self):
        metrics = performance.PerformanceMetrics(
            total_reviews=10, correct_answers=5, accuracy=50, total_study_time=300,
            average_response_time=90, streak_days=0,
        )
        titles = self.titles(performance.study_insights(metrics, 30))
        self.assertIn('Low accuracy', titles)
        self.assertIn('Get back to studying', titles)
        self.assertIn('Low study time', titles)
        self.assertIn('Response time', titles)

    def test_strong_student(self):
        metrics = performance.PerformanceMetrics(
            total_reviews=100, correct_answers=95, accuracy=95,
            total_study_time=7 * 40 * 60, average_response_time=10, streak_days=8,
        )
        insights = performance.study_insights(metrics, 7)
        self.assertEqual(self.titles(insights), ['Excellent performance', 'Impressive streak'])
        self.assertTrue(all(insight.type == 'success' for insight in insights))

    def test_weak_topics_weakest_first(self):
        def topic(name, accuracy, reviews=10):
            metrics = performance.PerformanceMetrics(total_reviews=reviews, accuracy=accuracy)
            return performance.TopicPerformance(topic_id=name, topic_name=name, metrics=metrics)

        topics = [topic('A', 55), topic('B', 20), topic('C', 90), topic('D', 40), topic('E', 50),
                  topic('Unstudied', 0, reviews=0)]
        metrics = performance.PerformanceMetrics(accuracy=75, streak_days=1, total_study_time=10 ** 6)
        insights = performance.study_insights(metrics, 30, topics)

        weak = [i for i in insights if i.title == 'Topics that need attention']
        self.assertEqual(len(weak), 1)
        self.assertEqual(weak[0].message, 'Focus on: B, D, E')


# =============================================================================
# Store Tests
# =============================================================================

class StoreTests(HierarchyMixin, TestCase):
    """Tests for DjangoReviewStore."""

    def setUp(self):
        self.create_hierarchy()
        self.store = DjangoReviewStore()
        self.record, _ = self.store.create_record(self.user.pk, self.card, contest_id=self.contest.pk)

    def test_create_record_defaults(self):
        self.assertEqual(self.record.status, states.NEW)
        self.assertIsNone(self.record.next_due_at)
        self.assertEqual(self.record.version, 1)
        self.assertEqual(self.record.subtopic_id, self.subtopic.pk)

    def test_create_record_is_idempotent(self):
        again, created = self.store.create_record(self.user.pk, self.card)
        self.assertFalse(created)
        self.assertEqual(again.pk, self.record.pk)

    def test_compare_and_swap_bumps_version(self):
        self.record.apply_review(4, NOW)
        self.store.upsert_record(self.record, expected_version=1)
        self.record.refresh_from_db()
        self.assertEqual(self.record.version, 2)
        self.assertEqual(self.record.repetitions, 1)

    def test_stale_version_raises_write_conflict(self):
        stale = ReviewRecord.objects.get(pk=self.record.pk)
        self.record.apply_review(4, NOW)
        self.store.upsert_record(self.record, expected_version=1)

        stale.apply_review(1, NOW)
        with self.assertRaises(WriteConflict):
            self.store.upsert_record(stale, expected_version=1)

        self.record.refresh_from_db()
        self.assertEqual(self.record.repetitions, 1)

    def test_unconditional_upsert(self):
        self.record.apply_review(4, NOW)
        self.store.upsert_record(self.record)
        self.assertEqual(self.record.version, 2)

    def test_insert_duplicate_raises_write_conflict(self):
        duplicate = ReviewRecord(user=self.user, card=self.card, subtopic=self.subtopic)
        with self.assertRaises(WriteConflict):
            self.store.upsert_record(duplicate)

    def test_invalid_record_rejected_at_boundary(self):
        self.record.ease_factor = 1.0
        with self.assertRaises(ValidationError):
            self.store.upsert_record(self.record, expected_version=1)

    def test_exclusive_streaks_enforced(self):
        self.record.correct_streak = 1
        self.record.incorrect_streak = 1
        with self.assertRaises(ValidationError):
            self.store.upsert_record(self.record, expected_version=1)

    def test_events_are_append_only(self):
        event = make_event(subtopic_id=self.subtopic.pk, contest_id=self.contest.pk)
        event.user = self.user
        event.card = self.card
        self.store.append_event(event)
        with self.assertRaises(ValueError):
            self.store.append_event(event)

    def test_database_error_surfaces_as_store_unavailable(self):
        with patch.object(ReviewRecord.objects, 'using', side_effect=OperationalError('database is locked')):
            with self.assertRaises(StoreUnavailable) as ctx:
                self.store.get_record(self.user.pk, self.card.pk)
        self.assertTrue(ctx.exception.retryable)

    def test_delete_record(self):
        self.assertTrue(self.store.delete_record(self.user.pk, self.card.pk))
        self.assertFalse(self.store.delete_record(self.user.pk, self.card.pk))

    def test_scope_from_query(self):
        self.assertEqual(Scope.from_query({'contest': '3', 'subtopic': ''}), Scope(contest_id=3))
        self.assertTrue(Scope.from_query({}).is_empty)
        with self.assertRaises(ValueError):
            Scope.from_query({'topic': 'abc'})

    def test_call_timeout_reaches_database(self):
        """Store and per-call timeouts are applied on the connection, in milliseconds."""
        statements = {
            'sqlite': 'PRAGMA busy_timeout = {}',
            'postgresql': 'SET LOCAL statement_timeout = {}',
        }
        if connection.vendor not in statements:
            self.skipTest(f"No per-call timeout for {connection.vendor}")
        template = statements[connection.vendor]

        store = DjangoReviewStore(timeout=0.25)
        with CaptureQueriesContext(connection) as queries:
            store.get_record(self.user.pk, self.card.pk)
        executed = [query['sql'] for query in queries.captured_queries]
        self.assertIn(template.format(250), executed)

        with CaptureQueriesContext(connection) as queries:
            store.get_record(self.user.pk, self.card.pk, timeout=0.05)
        executed = [query['sql'] for query in queries.captured_queries]
        self.assertIn(template.format(50), executed)


# =============================================================================
# Study Service Tests
# =============================================================================

class StudyServiceTestCase(HierarchyMixin, TestCase):

    def setUp(self):
        self.create_hierarchy()
        self.clock = FakeClock()
        self.service = StudyService(clock=self.clock)


class StudyServiceEnrollmentTests(StudyServiceTestCase):

    def test_enroll_resolves_contest(self):
        record = self.service.enroll(self.user.pk, self.card.pk)
        self.assertEqual(record.contest_id, self.contest.pk)
        self.assertEqual(record.status, states.NEW)

    def test_enroll_twice_keeps_one_record(self):
        first = self.service.enroll(self.user.pk, self.card.pk)
        second = self.service.enroll(self.user.pk, self.card.pk)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ReviewRecord.objects.count(), 1)

    def test_enroll_card_outside_any_contest(self):
        other_topic = Topic.objects.create(name='Statistics')
        other_subtopic = Subtopic.objects.create(topic=other_topic, name='Variance')
        card = Card.objects.create(subtopic=other_subtopic, front='Q', back='A')
        record = self.service.enroll(self.user.pk, card.pk)
        self.assertIsNone(record.contest_id)

    def test_enroll_unknown_card(self):
        with self.assertRaises(Card.DoesNotExist):
            self.service.enroll(self.user.pk, 99999)

    def test_enroll_with_explicit_contest(self):
        record = self.service.enroll(self.user.pk, self.card.pk, contest_id=self.contest.pk)
        self.assertEqual(record.contest_id, self.contest.pk)

    def test_enroll_rejects_unknown_contest(self):
        with self.assertRaises(Contest.DoesNotExist):
            self.service.enroll(self.user.pk, self.card.pk, contest_id=99999)
        self.assertFalse(ReviewRecord.objects.exists())

    def test_enroll_rejects_contest_of_another_user(self):
        other = User.objects.create_user(username='other', password='testpass123')
        other_contest = Contest.objects.create(owner=other, name='Other Exam')
        with self.assertRaises(Contest.DoesNotExist):
            self.service.enroll(self.user.pk, self.card.pk, contest_id=other_contest.pk)
        with self.assertRaises(Contest.DoesNotExist):
            self.service.enroll_subtopic(self.user.pk, self.subtopic.pk, contest_id=other_contest.pk)
        self.assertFalse(ReviewRecord.objects.exists())

    def test_enroll_subtopic(self):
        self.assertEqual(self.service.enroll_subtopic(self.user.pk, self.subtopic.pk), 2)
        self.assertEqual(self.service.enroll_subtopic(self.user.pk, self.subtopic.pk), 0)

    def test_remove_from_study_keeps_events(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.service.remove_from_study(self.user.pk, self.card.pk)

        self.assertFalse(ReviewRecord.objects.exists())
        self.assertEqual(ReviewEvent.objects.count(), 1)
        with self.assertRaises(RecordNotFound):
            self.service.remove_from_study(self.user.pk, self.card.pk)


class StudyServiceReviewTests(StudyServiceTestCase):

    def setUp(self):
        super().setUp()
        self.service.enroll(self.user.pk, self.card.pk)

    def test_first_review(self):
        outcome = self.service.submit_review(self.user.pk, self.card.pk, 4)

        self.assertEqual(outcome.status, states.LEARNING)
        self.assertEqual(outcome.next_due_at, NOW + timedelta(days=1))

        record = ReviewRecord.objects.get(user=self.user, card=self.card)
        self.assertEqual(record.repetitions, 1)
        self.assertEqual(record.interval_days, 1)
        self.assertEqual(record.version, 2)
        self.assertEqual(record.last_reviewed_at, NOW)
        self.assertEqual(record.correct_streak, 1)
        self.assertEqual(record.total_correct, 1)

    def test_review_logs_event_with_post_review_state(self):
        self.service.submit_review(self.user.pk, self.card.pk, 5, response_time=12.5)
        event = ReviewEvent.objects.get()
        self.assertEqual(event.quality, 5)
        self.assertTrue(event.correct)
        self.assertEqual(event.repetitions, 1)
        self.assertAlmostEqual(event.ease_factor, 2.6)
        self.assertEqual(event.interval_days, 1)
        self.assertEqual(event.response_time, 12.5)
        self.assertEqual(event.reviewed_at, NOW)
        self.assertEqual(event.contest_id, self.contest.pk)

    def test_unmeasured_response_time_uses_default(self):
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.assertEqual(ReviewEvent.objects.get().response_time, 30)

    def test_incorrect_review_updates_counters(self):
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.clock.advance(days=1)
        outcome = self.service.submit_review(self.user.pk, self.card.pk, 1)

        record = outcome.record
        self.assertEqual(record.status, states.LEARNING)
        self.assertEqual(record.repetitions, 0)
        self.assertEqual((record.correct_streak, record.incorrect_streak), (0, 1))
        self.assertEqual((record.total_correct, record.total_incorrect), (1, 1))

    def test_invalid_rating_writes_nothing(self):
        with self.assertRaises(InvalidRating):
            self.service.submit_review(self.user.pk, self.card.pk, 6)
        self.assertFalse(ReviewEvent.objects.exists())
        self.assertEqual(ReviewRecord.objects.get().version, 1)

    def test_not_enrolled_raises_record_not_found(self):
        with self.assertRaises(RecordNotFound):
            self.service.submit_review(self.user.pk, self.card2.pk, 4)

    def test_concurrent_submission_raises_write_conflict(self):
        """The losing submission is rejected and leaves no event behind."""
        stale = ReviewRecord.objects.get(user=self.user, card=self.card)
        self.service.submit_review(self.user.pk, self.card.pk, 4)

        with patch.object(self.service.store, 'get_record', return_value=stale):
            with self.assertRaises(WriteConflict):
                self.service.submit_review(self.user.pk, self.card.pk, 5)

        self.assertEqual(ReviewEvent.objects.count(), 1)
        record = ReviewRecord.objects.get(user=self.user, card=self.card)
        self.assertEqual(record.version, 2)
        self.assertEqual(record.repetitions, 1)

    def test_store_failure_raises_store_unavailable(self):
        with patch.object(ReviewRecord.objects, 'using', side_effect=OperationalError('timeout')):
            with self.assertRaises(StoreUnavailable):
                self.service.submit_review(self.user.pk, self.card.pk, 4)

    def test_graduation_after_five_correct_reviews(self):
        for _ in range(5):
            outcome = self.service.submit_review(self.user.pk, self.card.pk, 5)
            self.clock.advance(days=outcome.record.interval_days)
        self.assertEqual(outcome.status, states.GRADUATED)

        outcome = self.service.submit_review(self.user.pk, self.card.pk, 2)
        self.assertEqual(outcome.status, states.LEARNING)


class StudyServiceSessionTests(StudyServiceTestCase):

    def test_no_enrolled_cards_gives_empty_due_list(self):
        self.assertEqual(self.service.get_due_cards(self.user.pk), [])

    def test_new_cards_are_due(self):
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        due = self.service.get_due_cards(self.user.pk)
        self.assertEqual([record.card_id for record in due], [self.card.pk, self.card2.pk])

    def test_reviewed_card_due_again_at_exact_due_time(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.assertEqual(self.service.get_due_cards(self.user.pk), [])

        self.clock.advance(days=1)
        due = self.service.get_due_cards(self.user.pk)
        self.assertEqual([record.card_id for record in due], [self.card.pk])

    def test_scope_narrows_due_cards(self):
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        other_subtopic = Subtopic.objects.create(topic=self.topic, name='Separation of Powers')
        other_card = Card.objects.create(subtopic=other_subtopic, front='Q3', back='A3')
        self.service.enroll(self.user.pk, other_card.pk)

        scoped = self.service.get_due_cards(self.user.pk, Scope(subtopic_id=other_subtopic.pk))
        self.assertEqual([record.card_id for record in scoped], [other_card.pk])
        self.assertEqual(len(self.service.get_due_cards(self.user.pk, Scope(topic_id=self.topic.pk))), 3)
        self.assertEqual(len(self.service.get_due_cards(self.user.pk, Scope(contest_id=self.contest.pk))), 3)

    def test_other_users_records_are_invisible(self):
        other = User.objects.create_user(username='other', password='testpass123')
        self.service.enroll(other.pk, self.card.pk)
        self.assertEqual(self.service.get_due_cards(self.user.pk), [])

    def test_limit(self):
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        self.assertEqual(len(self.service.get_due_cards(self.user.pk, limit=1)), 1)

    def test_next_card_and_progress(self):
        self.assertIsNone(self.service.get_next_card(self.user.pk))
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)

        self.assertEqual(self.service.get_next_card(self.user.pk).card_id, self.card2.pk)
        progress = self.service.get_learning_progress(self.user.pk)
        self.assertEqual(progress['total'], 2)
        self.assertEqual(progress['new'], 1)
        self.assertEqual(progress['learning'], 1)
        self.assertEqual(progress['due'], 1)

    def test_study_history_newest_first(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.clock.advance(days=1)
        self.service.submit_review(self.user.pk, self.card.pk, 2)

        history = self.service.get_study_history(self.user.pk)
        self.assertEqual([event.quality for event in history], [2, 4])
        self.assertEqual(len(self.service.get_study_history(self.user.pk, limit=1)), 1)


class StudyServiceStatsTests(StudyServiceTestCase):

    def test_stats_without_events(self):
        stats = self.service.get_stats(self.user.pk)
        self.assertEqual(stats.accuracy, 0)
        self.assertEqual(stats.streak_days, 0)
        self.assertEqual(stats.daily_progress, [])
        self.assertEqual(stats.difficulty_distribution, [])

    def test_stats_after_reviews(self):
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)
        self.service.submit_review(self.user.pk, self.card2.pk, 1)

        stats = self.service.get_stats(self.user.pk)
        self.assertEqual(stats.accuracy, 50)
        self.assertEqual(stats.average_response_time, 30)
        self.assertEqual(stats.streak_days, 1)
        self.assertEqual(len(stats.daily_progress), 1)
        self.assertEqual(stats.daily_progress[0].new_cards_learned, 1)

    def test_stats_are_idempotent(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 3)
        self.assertEqual(self.service.get_stats(self.user.pk), self.service.get_stats(self.user.pk))

    def test_contest_performance(self):
        self.service.enroll_subtopic(self.user.pk, self.subtopic.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)

        result = self.service.get_contest_performance(self.user.pk, self.contest.pk)
        self.assertEqual(result.contest_name, 'Federal Exam')
        self.assertEqual(result.metrics.total_reviews, 1)
        self.assertEqual(len(result.progress_over_time), 1)
        self.assertEqual(result.difficulty_distribution[0].difficulty, 'medium')

        topic = result.topic_performance[0]
        self.assertEqual(topic.topic_name, 'Constitutional Law')
        subtopic = topic.subtopic_performance[0]
        self.assertEqual(subtopic.cards_total, 2)
        self.assertEqual(subtopic.cards_to_review, 1)
        self.assertEqual(subtopic.cards_learned, 0)
        self.assertAlmostEqual(subtopic.average_ease_factor, 2.5)

    def test_contest_of_another_user(self):
        other = User.objects.create_user(username='other', password='testpass123')
        with self.assertRaises(Contest.DoesNotExist):
            self.service.get_contest_performance(other.pk, self.contest.pk)

    def test_topic_and_subtopic_performance(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 5)

        topic = self.service.get_topic_performance(self.user.pk, self.topic.pk)
        self.assertEqual(topic.metrics.accuracy, 100)
        subtopic = self.service.get_subtopic_performance(self.user.pk, self.subtopic.pk)
        self.assertEqual(subtopic.metrics.total_reviews, 1)
        self.assertAlmostEqual(subtopic.average_ease_factor, 2.6)

    def test_overall_performance_and_comparison(self):
        self.service.enroll(self.user.pk, self.card.pk)
        self.service.submit_review(self.user.pk, self.card.pk, 4)

        overall = self.service.get_overall_performance(self.user.pk)
        self.assertEqual(overall.contests_count, 1)

        comparisons = self.service.compare_contests(self.user.pk, [self.contest.pk, 99999])
        self.assertEqual([c.contest_id for c in comparisons], [self.contest.pk])

    def test_insights_only_use_recent_reviews(self):
        self.service.enroll(self.user.pk, self.card.pk)
        for days_ago in (40, 41, 42):
            ReviewEvent.objects.create(
                user=self.user, card=self.card, contest=self.contest, subtopic=self.subtopic,
                quality=0, correct=False, repetitions=0, ease_factor=1.7, interval_days=1,
                response_time=30, reviewed_at=NOW - timedelta(days=days_ago),
            )
        self.service.submit_review(self.user.pk, self.card.pk, 5)

        titles = [i.title for i in self.service.get_study_insights(self.user.pk, period_days=30)]
        self.assertIn('Excellent performance', titles)
        self.assertNotIn('Low accuracy', titles)

    def test_weak_topics_only_use_recent_reviews(self):
        """Old failures outside the period do not mark a topic as weak."""
        self.service.enroll(self.user.pk, self.card.pk)
        for days_ago in (40, 41, 42):
            ReviewEvent.objects.create(
                user=self.user, card=self.card, contest=self.contest, subtopic=self.subtopic,
                quality=0, correct=False, repetitions=0, ease_factor=1.7, interval_days=1,
                response_time=30, reviewed_at=NOW - timedelta(days=days_ago),
            )
        self.service.submit_review(self.user.pk, self.card.pk, 5)

        all_time = self.service.get_contest_performance(self.user.pk, self.contest.pk)
        self.assertEqual(all_time.topic_performance[0].metrics.accuracy, 25)

        insights = self.service.get_study_insights(
            self.user.pk, contest_id=self.contest.pk, period_days=30
        )
        self.assertNotIn('Topics that need attention', [i.title for i in insights])

        insights = self.service.get_study_insights(
            self.user.pk, contest_id=self.contest.pk, period_days=60
        )
        self.assertIn('Topics that need attention', [i.title for i in insights])


# =============================================================================
# View Tests
# =============================================================================

class ViewTestCase(HierarchyMixin, TestCase):

    def setUp(self):
        self.create_hierarchy()
        self.client.login(username='student', password='testpass123')


class ReviewViewTests(ViewTestCase):
    """Tests for the review JSON endpoints."""

    def post_json(self, name, pk, data):
        return self.client.post(
            reverse(name, kwargs={'pk': pk}),
            data=json.dumps(data),
            content_type='application/json',
        )

    def test_enroll_and_review(self):
        response = self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['record']['status'], 'new')

        response = self.post_json('review_card', self.card.pk, {'quality': 4, 'response_time': 8})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['status'], 'learning')
        self.assertEqual(data['interval_days'], 1)
        self.assertIn('next_due_at', data)

    def test_review_invalid_quality(self):
        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        response = self.post_json('review_card', self.card.pk, {'quality': 10})
        self.assertEqual(response.status_code, 400)

    def test_review_rejects_non_integer_quality(self):
        """Fractional and boolean ratings are refused, not truncated."""
        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        for quality in [2.9, True, '4.5', None, [4]]:
            response = self.post_json('review_card', self.card.pk, {'quality': quality})
            self.assertEqual(response.status_code, 400, quality)
        self.assertFalse(ReviewEvent.objects.exists())

    def test_review_accepts_digit_string_quality(self):
        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        response = self.post_json('review_card', self.card.pk, {'quality': '4'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(ReviewEvent.objects.get().quality, 4)

    def test_review_invalid_json(self):
        response = self.client.post(
            reverse('review_card', kwargs={'pk': self.card.pk}),
            data='not json',
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_review_missing_quality(self):
        response = self.post_json('review_card', self.card.pk, {})
        self.assertEqual(response.status_code, 400)

    def test_review_not_enrolled(self):
        response = self.post_json('review_card', self.card.pk, {'quality': 4})
        self.assertEqual(response.status_code, 404)

    def test_review_conflict_is_reported(self):
        service = MagicMock()
        service.submit_review.side_effect = WriteConflict(1, 1)
        with patch('study.views.review.get_service', return_value=service):
            response = self.post_json('review_card', self.card.pk, {'quality': 4})
        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.json()['retryable'])

    def test_review_store_unavailable(self):
        service = MagicMock()
        service.submit_review.side_effect = StoreUnavailable('timeout')
        with patch('study.views.review.get_service', return_value=service):
            response = self.post_json('review_card', self.card.pk, {'quality': 4})
        self.assertEqual(response.status_code, 503)

    def test_review_requires_post(self):
        response = self.client.get(reverse('review_card', kwargs={'pk': self.card.pk}))
        self.assertEqual(response.status_code, 405)

    def test_enroll_unknown_card(self):
        response = self.client.post(reverse('enroll_card', kwargs={'pk': 99999}))
        self.assertEqual(response.status_code, 404)

    def test_enroll_with_contest_not_owned(self):
        other = User.objects.create_user(username='other', password='testpass123')
        other_contest = Contest.objects.create(owner=other, name='Other Exam')

        for contest_id in [other_contest.pk, 999999]:
            response = self.post_json('enroll_card', self.card.pk, {'contest_id': contest_id})
            self.assertEqual(response.status_code, 404)
        self.assertFalse(ReviewRecord.objects.exists())

    def test_unenroll(self):
        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        response = self.client.post(reverse('unenroll_card', kwargs={'pk': self.card.pk}))
        self.assertEqual(response.status_code, 200)
        response = self.client.post(reverse('unenroll_card', kwargs={'pk': self.card.pk}))
        self.assertEqual(response.status_code, 404)

    def test_due_cards(self):
        response = self.client.get(reverse('due_cards'))
        self.assertEqual(response.json()['cards'], [])

        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        response = self.client.get(reverse('due_cards'), {'subtopic': self.subtopic.pk, 'limit': 5})
        self.assertEqual(response.json()['count'], 1)

    def test_due_cards_invalid_scope(self):
        response = self.client.get(reverse('due_cards'), {'contest': 'abc'})
        self.assertEqual(response.status_code, 400)

    def test_next_progress_and_history(self):
        self.client.post(reverse('enroll_card', kwargs={'pk': self.card.pk}))
        self.assertEqual(self.client.get(reverse('next_card')).json()['card']['card_id'], self.card.pk)
        self.assertEqual(self.client.get(reverse('learning_progress')).json()['progress']['new'], 1)
        self.assertEqual(self.client.get(reverse('study_history')).json()['history'], [])

    def test_requires_login(self):
        self.client.logout()
        response = self.client.get(reverse('due_cards'))
        self.assertEqual(response.status_code, 302)


class PerformanceViewTests(ViewTestCase):
    """Tests for the statistics JSON endpoints."""

    def test_stats_without_reviews(self):
        response = self.client.get(reverse('stats'))
        self.assertEqual(response.status_code, 200)
        stats = response.json()['stats']
        self.assertEqual(stats['accuracy'], 0)
        self.assertEqual(stats['streak_days'], 0)
        self.assertEqual(stats['daily_progress'], [])

    def test_contest_performance(self):
        response = self.client.get(reverse('contest_performance', kwargs={'pk': self.contest.pk}))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['performance']['contest_name'], 'Federal Exam')

    def test_contest_performance_not_found(self):
        response = self.client.get(reverse('contest_performance', kwargs={'pk': 99999}))
        self.assertEqual(response.status_code, 404)

    def test_topic_and_subtopic_performance(self):
        response = self.client.get(reverse('topic_performance', kwargs={'pk': self.topic.pk}))
        self.assertEqual(response.status_code, 200)
        response = self.client.get(reverse('subtopic_performance', kwargs={'pk': self.subtopic.pk}))
        self.assertEqual(response.json()['performance']['cards_total'], 2)

    def test_overall_performance(self):
        response = self.client.get(reverse('overall_performance'))
        self.assertEqual(response.json()['performance']['contests_count'], 0)

    def test_compare_requires_ids(self):
        response = self.client.post(
            reverse('compare_performance'), data=json.dumps({'contest_ids': []}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_compare(self):
        response = self.client.post(
            reverse('compare_performance'), data=json.dumps({'contest_ids': [self.contest.pk]}),
            content_type='application/json',
        )
        self.assertEqual(len(response.json()['comparisons']), 1)

    def test_compare_rejects_string_ids(self):
        response = self.client.post(
            reverse('compare_performance'), data=json.dumps({'contest_ids': '12'}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 400)

    def test_insights(self):
        response = self.client.get(reverse('study_insights'), {'period': 7})
        self.assertEqual(response.status_code, 200)
        titles = [insight['title'] for insight in response.json()['insights']]
        self.assertIn('Get back to studying', titles)

    def test_insights_invalid_period(self):
        response = self.client.get(reverse('study_insights'), {'period': 0})
        self.assertEqual(response.status_code, 400)

    def test_health_check(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')


# =============================================================================
# Management Command Tests
# =============================================================================

class RebuildRecordsCommandTests(HierarchyMixin, TestCase):
    """Tests for the rebuild_records command."""

    def setUp(self):
        self.create_hierarchy()
        self.clock = FakeClock()
        service = StudyService(clock=self.clock)
        service.enroll(self.user.pk, self.card.pk)
        for quality in (4, 4, 5):
            outcome = service.submit_review(self.user.pk, self.card.pk, quality)
            self.clock.advance(days=outcome.record.interval_days)
        ReviewRecord.objects.update(repetitions=0, interval_days=0, status=states.NEW)

    def test_rebuild_restores_record_from_events(self):
        out = StringIO()
        call_command('rebuild_records', stdout=out)

        record = ReviewRecord.objects.get()
        self.assertEqual(record.repetitions, 3)
        self.assertEqual(record.interval_days, 15)
        self.assertEqual(record.status, states.REVIEW)
        self.assertAlmostEqual(record.ease_factor, 2.6)
        self.assertIn('Rebuilt 1 record(s), 1 changed', out.getvalue())

    def test_dry_run_saves_nothing(self):
        out = StringIO()
        call_command('rebuild_records', '--dry-run', stdout=out)
        self.assertEqual(ReviewRecord.objects.get().repetitions, 0)
        self.assertIn('[DRY RUN]', out.getvalue())

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('rebuild_records', '--user', 'nobody', stdout=StringIO())
