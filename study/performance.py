"""
Performance statistics derived from the review event log.

Every function here is read-only: it takes already-loaded ReviewEvent (and,
for the breakdowns, ReviewRecord) objects and returns frozen dataclasses.
Empty input always gives zero-valued results, never an error.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from django.utils import timezone

from . import srs, states

# Ease factor bands for the difficulty distribution
EASY_EASE_FACTOR = 2.8
MEDIUM_EASE_FACTOR = 2.3

DIFFICULTY_BANDS = ('easy', 'medium', 'hard')

# Insight thresholds
LOW_ACCURACY = 70
HIGH_ACCURACY = 85
WEAK_TOPIC_ACCURACY = 60
MAX_WEAK_TOPICS = 3
STREAK_PRAISE_DAYS = 7
MIN_DAILY_MINUTES = 15
TARGET_DAILY_MINUTES = 30
SLOW_RESPONSE_SECONDS = 60


@dataclass(frozen=True)
class PerformanceMetrics:
    total_reviews: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    accuracy: float = 0.0
    total_study_time: float = 0.0  # seconds
    average_response_time: float = 0.0  # seconds
    streak_days: int = 0
    last_study_date: Optional[datetime] = None


@dataclass(frozen=True)
class DailyProgress:
    date: date
    reviews_count: int
    correct_count: int
    study_time_minutes: float
    new_cards_learned: int


@dataclass(frozen=True)
class DifficultyStats:
    difficulty: str
    count: int
    accuracy: float


@dataclass(frozen=True)
class StudyStats:
    """Summary returned by StudyService.get_stats."""
    accuracy: float
    average_response_time: float
    streak_days: int
    daily_progress: List[DailyProgress] = field(default_factory=list)
    difficulty_distribution: List[DifficultyStats] = field(default_factory=list)


@dataclass(frozen=True)
class SubtopicPerformance:
    subtopic_id: int
    subtopic_name: str
    metrics: PerformanceMetrics
    cards_total: int
    cards_learned: int
    cards_to_review: int
    average_ease_factor: float


@dataclass(frozen=True)
class TopicPerformance:
    topic_id: int
    topic_name: str
    metrics: PerformanceMetrics
    subtopic_performance: List[SubtopicPerformance] = field(default_factory=list)


@dataclass(frozen=True)
class ContestPerformance:
    contest_id: int
    contest_name: str
    metrics: PerformanceMetrics
    topic_performance: List[TopicPerformance] = field(default_factory=list)
    progress_over_time: List[DailyProgress] = field(default_factory=list)
    difficulty_distribution: List[DifficultyStats] = field(default_factory=list)


@dataclass(frozen=True)
class OverallPerformance:
    metrics: PerformanceMetrics
    contests_count: int


@dataclass(frozen=True)
class Insight:
    type: str  # 'success' | 'warning' | 'info'
    title: str
    message: str
    actionable: bool
    action: Optional[str] = None


def event_date(event):
    """Calendar date of an event in the current time zone."""
    return timezone.localdate(event.reviewed_at)


def percentage(part, whole):
    if whole == 0:
        return 0.0
    return part / whole * 100


def calculate_accuracy(events):
    events = list(events)
    correct = sum(1 for event in events if event.correct)
    return percentage(correct, len(events))


def calculate_average_response_time(events):
    events = list(events)
    if not events:
        return 0.0
    return sum(event.response_time for event in events) / len(events)


def calculate_streak_days(events, today):
    """
    Count consecutive study days ending today.

    A day with no reviews today does not break the streak yet: counting then
    starts from yesterday. The first day without reviews after that ends it.
    """
    study_days = {event_date(event) for event in events}
    if not study_days:
        return 0

    day = today
    if day not in study_days:
        day -= timedelta(days=1)

    streak = 0
    while day in study_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def calculate_daily_progress(events):
    """Group events by calendar date, oldest first."""
    buckets = OrderedDict()
    for event in sorted(events, key=lambda e: e.reviewed_at):
        day = event_date(event)
        bucket = buckets.setdefault(day, {'reviews': 0, 'correct': 0, 'seconds': 0.0, 'learned': 0})
        bucket['reviews'] += 1
        bucket['seconds'] += event.response_time
        if event.correct:
            bucket['correct'] += 1
            # First correct repetition of a card counts as newly learned
            if event.repetitions == 1:
                bucket['learned'] += 1

    return [
        DailyProgress(
            date=day,
            reviews_count=bucket['reviews'],
            correct_count=bucket['correct'],
            study_time_minutes=bucket['seconds'] / 60,
            new_cards_learned=bucket['learned'],
        )
        for day, bucket in buckets.items()
    ]


def difficulty_band(ease_factor):
    if ease_factor >= EASY_EASE_FACTOR:
        return 'easy'
    if ease_factor >= MEDIUM_EASE_FACTOR:
        return 'medium'
    return 'hard'


def calculate_difficulty_distribution(events):
    """Bucket events by the ease factor recorded with them. Empty bands are left out."""
    totals = {band: [0, 0] for band in DIFFICULTY_BANDS}
    for event in events:
        band = totals[difficulty_band(event.ease_factor)]
        band[0] += 1
        if event.correct:
            band[1] += 1

    return [
        DifficultyStats(difficulty=band, count=count, accuracy=percentage(correct, count))
        for band, (count, correct) in totals.items()
        if count
    ]


def calculate_metrics(events, today):
    events = list(events)
    if not events:
        return PerformanceMetrics()

    total = len(events)
    correct = sum(1 for event in events if event.correct)
    study_time = sum(event.response_time for event in events)

    return PerformanceMetrics(
        total_reviews=total,
        correct_answers=correct,
        incorrect_answers=total - correct,
        accuracy=percentage(correct, total),
        total_study_time=study_time,
        average_response_time=study_time / total,
        streak_days=calculate_streak_days(events, today),
        last_study_date=max(event.reviewed_at for event in events),
    )


def calculate_stats(events, today):
    events = list(events)
    return StudyStats(
        accuracy=calculate_accuracy(events),
        average_response_time=calculate_average_response_time(events),
        streak_days=calculate_streak_days(events, today),
        daily_progress=calculate_daily_progress(events),
        difficulty_distribution=calculate_difficulty_distribution(events),
    )


def build_subtopic_performance(subtopic, events, records, cards_total, today, now):
    events = [event for event in events if event.subtopic_id == subtopic.pk]
    records = [record for record in records if record.subtopic_id == subtopic.pk]

    if events:
        average_ease = sum(event.ease_factor for event in events) / len(events)
    else:
        average_ease = srs.DEFAULT_EASE_FACTOR

    return SubtopicPerformance(
        subtopic_id=subtopic.pk,
        subtopic_name=subtopic.name,
        metrics=calculate_metrics(events, today),
        cards_total=cards_total,
        cards_learned=sum(1 for record in records if record.status == states.GRADUATED),
        cards_to_review=sum(1 for record in records if record.is_due(now)),
        average_ease_factor=average_ease,
    )


def build_topic_performance(topic, subtopics, events, records, card_counts, today, now):
    """``card_counts`` maps subtopic id to the number of cards it holds."""
    subtopic_ids = {subtopic.pk for subtopic in subtopics}
    events = [event for event in events if event.subtopic_id in subtopic_ids]

    return TopicPerformance(
        topic_id=topic.pk,
        topic_name=topic.name,
        metrics=calculate_metrics(events, today),
        subtopic_performance=[
            build_subtopic_performance(
                subtopic, events, records, card_counts.get(subtopic.pk, 0), today, now
            )
            for subtopic in subtopics
        ],
    )


def build_contest_performance(contest, topics, events, records, card_counts, today, now):
    """``topics`` is a list of (topic, subtopics) pairs attached to the contest."""
    events = list(events)
    return ContestPerformance(
        contest_id=contest.pk,
        contest_name=contest.name,
        metrics=calculate_metrics(events, today),
        topic_performance=[
            build_topic_performance(topic, subtopics, events, records, card_counts, today, now)
            for topic, subtopics in topics
        ],
        progress_over_time=calculate_daily_progress(events),
        difficulty_distribution=calculate_difficulty_distribution(events),
    )


def build_overall_performance(events, today):
    events = list(events)
    contest_ids = {event.contest_id for event in events if event.contest_id is not None}
    return OverallPerformance(
        metrics=calculate_metrics(events, today),
        contests_count=len(contest_ids),
    )


def study_insights(metrics, period_days, topic_performance=None):
    """Turn metrics for the last ``period_days`` days into study advice."""
    insights = []

    if metrics.accuracy < LOW_ACCURACY:
        insights.append(Insight(
            type='warning',
            title='Low accuracy',
            message=(
                f"Your accuracy is {metrics.accuracy:.1f}%. "
                "Consider revisiting the basics before moving on."
            ),
            actionable=True,
            action='Review cards more often',
        ))
    elif metrics.accuracy > HIGH_ACCURACY:
        insights.append(Insight(
            type='success',
            title='Excellent performance',
            message=f"Your accuracy is {metrics.accuracy:.1f}%. Keep it up!",
            actionable=False,
        ))

    if metrics.streak_days == 0:
        insights.append(Insight(
            type='info',
            title='Get back to studying',
            message="You have not studied recently. Consistency is key to learning.",
            actionable=True,
            action='Study for at least 15 minutes today',
        ))
    elif metrics.streak_days >= STREAK_PRAISE_DAYS:
        insights.append(Insight(
            type='success',
            title='Impressive streak',
            message=f"You have studied {metrics.streak_days} days in a row.",
            actionable=False,
        ))

    minutes_per_day = metrics.total_study_time / (max(period_days, 1) * 60)
    if minutes_per_day < MIN_DAILY_MINUTES:
        insights.append(Insight(
            type='warning',
            title='Low study time',
            message=(
                f"You study {minutes_per_day:.1f} minutes per day on average. "
                f"Try to reach at least {TARGET_DAILY_MINUTES} minutes."
            ),
            actionable=True,
            action=f'Set a daily goal of {TARGET_DAILY_MINUTES} minutes',
        ))

    if topic_performance:
        weak = sorted(
            (topic for topic in topic_performance
             if topic.metrics.total_reviews and topic.metrics.accuracy < WEAK_TOPIC_ACCURACY),
            key=lambda topic: topic.metrics.accuracy,
        )[:MAX_WEAK_TOPICS]
        if weak:
            insights.append(Insight(
                type='info',
                title='Topics that need attention',
                message='Focus on: ' + ', '.join(topic.topic_name for topic in weak),
                actionable=True,
                action='Review these topics first',
            ))

    if metrics.average_response_time > SLOW_RESPONSE_SECONDS:
        insights.append(Insight(
            type='info',
            title='Response time',
            message="You are taking longer to answer. More practice may help.",
            actionable=True,
            action='Practice answering faster',
        ))

    return insights
