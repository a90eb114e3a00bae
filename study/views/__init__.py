"""Views package for the study app."""

from .review import (
    review_card,
    enroll_card,
    unenroll_card,
    due_cards,
    next_card,
    learning_progress,
    study_history,
)
from .performance import (
    stats,
    overall_performance,
    contest_performance,
    topic_performance,
    subtopic_performance,
    compare_performance,
    study_insights,
)
from .health import health_check

__all__ = [
    # Review
    'review_card',
    'enroll_card',
    'unenroll_card',
    'due_cards',
    'next_card',
    'learning_progress',
    'study_history',
    # Performance
    'stats',
    'overall_performance',
    'contest_performance',
    'topic_performance',
    'subtopic_performance',
    'compare_performance',
    'study_insights',
    # Health
    'health_check',
]
