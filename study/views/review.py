"""Review submission and session views."""

import json

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ..models import Card, Contest
from .helpers import (
    error_response,
    get_service,
    parse_int,
    parse_scope,
    serialize_event,
    serialize_record,
    study_errors,
)


@login_required
@require_POST
@study_errors
def review_card(request, pk):
    """Submit a review for a card."""
    try:
        data = json.loads(request.body)
        quality = data['quality']
        # Floats and booleans go through unchanged and are rejected as ratings
        if isinstance(quality, str) and quality.isdigit():
            quality = int(quality)
        response_time = data.get('response_time')
        if response_time is not None:
            response_time = float(response_time)
    except (json.JSONDecodeError, KeyError, ValueError, TypeError):
        return error_response('Invalid request', 400)

    if response_time is not None and response_time < 0:
        return error_response('Response time cannot be negative', 400)

    outcome = get_service().submit_review(request.user.pk, pk, quality, response_time=response_time)

    return JsonResponse({
        'success': True,
        'record': serialize_record(outcome.record),
        'next_due_at': outcome.next_due_at.isoformat(),
        'status': outcome.status,
        'interval_days': outcome.record.interval_days,
        'ease_factor': round(outcome.record.ease_factor, 2),
    })


@login_required
@require_POST
@study_errors
def enroll_card(request, pk):
    """Add a card to the user's study set."""
    contest_id = None
    if request.body:
        try:
            contest_id = parse_int(json.loads(request.body).get('contest_id'))
        except (json.JSONDecodeError, ValueError, TypeError, AttributeError):
            return error_response('Invalid request', 400)

    try:
        record = get_service().enroll(request.user.pk, pk, contest_id=contest_id)
    except Card.DoesNotExist:
        return error_response('Card not found', 404)
    except Contest.DoesNotExist:
        return error_response('Contest not found', 404)

    return JsonResponse({'success': True, 'record': serialize_record(record)})


@login_required
@require_POST
@study_errors
def unenroll_card(request, pk):
    """Remove a card from the user's study set."""
    get_service().remove_from_study(request.user.pk, pk)
    return JsonResponse({'success': True})


@login_required
@require_GET
@study_errors
def due_cards(request):
    """Cards due now, most overdue first."""
    scope = parse_scope(request)
    if scope is None:
        return error_response('Invalid scope', 400)
    try:
        limit = parse_int(request.GET.get('limit'))
    except ValueError:
        return error_response('Invalid limit', 400)
    if limit is not None and limit < 0:
        return error_response('Invalid limit', 400)

    records = get_service().get_due_cards(request.user.pk, scope, limit)
    return JsonResponse({
        'success': True,
        'count': len(records),
        'cards': [serialize_record(record) for record in records],
    })


@login_required
@require_GET
@study_errors
def next_card(request):
    """The single next card to review, or null."""
    scope = parse_scope(request)
    if scope is None:
        return error_response('Invalid scope', 400)

    record = get_service().get_next_card(request.user.pk, scope)
    return JsonResponse({
        'success': True,
        'card': serialize_record(record) if record else None,
    })


@login_required
@require_GET
@study_errors
def learning_progress(request):
    """Record counts per status."""
    scope = parse_scope(request)
    if scope is None:
        return error_response('Invalid scope', 400)

    progress = get_service().get_learning_progress(request.user.pk, scope)
    return JsonResponse({'success': True, 'progress': progress})


@login_required
@require_GET
@study_errors
def study_history(request):
    """Most recent review events."""
    scope = parse_scope(request)
    if scope is None:
        return error_response('Invalid scope', 400)
    try:
        limit = parse_int(request.GET.get('limit'))
    except ValueError:
        return error_response('Invalid limit', 400)
    if limit is not None and limit < 0:
        return error_response('Invalid limit', 400)

    events = get_service().get_study_history(request.user.pk, scope, limit)
    return JsonResponse({
        'success': True,
        'history': [serialize_event(event) for event in events],
    })
