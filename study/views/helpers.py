"""Shared helpers for the JSON views."""

import functools
import logging
from dataclasses import asdict

from django.http import JsonResponse

from ..exceptions import InvalidRating, RecordNotFound, StoreUnavailable, WriteConflict
from ..services import StudyService
from ..store import Scope

logger = logging.getLogger(__name__)


def get_service():
    """Service used by the views. Patched in tests."""
    return StudyService()


def error_response(message, status, **extra):
    return JsonResponse({'success': False, 'error': message, **extra}, status=status)


def study_errors(view):
    """Translate engine errors into JSON error responses."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except InvalidRating:
            return error_response('Quality must be 0-5', 400)
        except RecordNotFound:
            return error_response('Card is not in your study set', 404)
        except WriteConflict:
            return error_response(
                'Card was reviewed concurrently, reload and try again', 409, retryable=True
            )
        except StoreUnavailable:
            logger.warning(f"Store unavailable while serving {request.path}")
            return error_response('Service temporarily unavailable', 503, retryable=True)

    return wrapper


def parse_scope(request):
    """Scope from the query string, or None when a parameter is not an id."""
    try:
        return Scope.from_query(request.GET)
    except ValueError:
        return None


def parse_int(value, default=None):
    if value in (None, ''):
        return default
    return int(value)


def serialize_record(record):
    return {
        'id': record.pk,
        'card_id': record.card_id,
        'contest_id': record.contest_id,
        'subtopic_id': record.subtopic_id,
        'status': record.status,
        'repetitions': record.repetitions,
        'ease_factor': round(record.ease_factor, 2),
        'interval_days': record.interval_days,
        'next_due_at': record.next_due_at.isoformat() if record.next_due_at else None,
        'last_reviewed_at': record.last_reviewed_at.isoformat() if record.last_reviewed_at else None,
        'correct_streak': record.correct_streak,
        'incorrect_streak': record.incorrect_streak,
        'total_correct': record.total_correct,
        'total_incorrect': record.total_incorrect,
        'version': record.version,
    }


def serialize_event(event):
    return {
        'id': event.pk,
        'card_id': event.card_id,
        'contest_id': event.contest_id,
        'subtopic_id': event.subtopic_id,
        'quality': event.quality,
        'correct': event.correct,
        'repetitions': event.repetitions,
        'ease_factor': round(event.ease_factor, 2),
        'interval_days': event.interval_days,
        'response_time': event.response_time,
        'reviewed_at': event.reviewed_at.isoformat(),
    }


def serialize_result(result):
    """Dataclass results (stats, performance, insights) as JSON-ready dicts."""
    if isinstance(result, list):
        return [asdict(item) for item in result]
    return asdict(result)
