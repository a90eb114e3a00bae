"""Statistics and performance views."""

import json

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from ..models import Contest, Subtopic, Topic
from .helpers import error_response, get_service, parse_int, parse_scope, serialize_result, study_errors


@login_required
@require_GET
@study_errors
def stats(request):
    """Accuracy, response time, streak, daily progress and difficulty distribution."""
    scope = parse_scope(request)
    if scope is None:
        return error_response('Invalid scope', 400)

    result = get_service().get_stats(request.user.pk, scope)
    return JsonResponse({'success': True, 'stats': serialize_result(result)})


@login_required
@require_GET
@study_errors
def overall_performance(request):
    result = get_service().get_overall_performance(request.user.pk)
    return JsonResponse({'success': True, 'performance': serialize_result(result)})


@login_required
@require_GET
@study_errors
def contest_performance(request, pk):
    try:
        result = get_service().get_contest_performance(request.user.pk, pk)
    except Contest.DoesNotExist:
        return error_response('Contest not found', 404)
    return JsonResponse({'success': True, 'performance': serialize_result(result)})


@login_required
@require_GET
@study_errors
def topic_performance(request, pk):
    try:
        contest_id = parse_int(request.GET.get('contest'))
    except ValueError:
        return error_response('Invalid scope', 400)
    try:
        result = get_service().get_topic_performance(request.user.pk, pk, contest_id=contest_id)
    except Topic.DoesNotExist:
        return error_response('Topic not found', 404)
    return JsonResponse({'success': True, 'performance': serialize_result(result)})


@login_required
@require_GET
@study_errors
def subtopic_performance(request, pk):
    try:
        contest_id = parse_int(request.GET.get('contest'))
    except ValueError:
        return error_response('Invalid scope', 400)
    try:
        result = get_service().get_subtopic_performance(request.user.pk, pk, contest_id=contest_id)
    except Subtopic.DoesNotExist:
        return error_response('Subtopic not found', 404)
    return JsonResponse({'success': True, 'performance': serialize_result(result)})


@login_required
@require_POST
@study_errors
def compare_performance(request):
    """Side-by-side performance for a list of contest ids."""
    try:
        data = json.loads(request.body)
        contest_ids = data['contest_ids']
        if not isinstance(contest_ids, list):
            raise TypeError('contest_ids must be a list')
        contest_ids = [int(contest_id) for contest_id in contest_ids]
    except (json.JSONDecodeError, KeyError, ValueError, TypeError):
        return error_response('Contest IDs array is required', 400)

    if not contest_ids:
        return error_response('Contest IDs array is required', 400)

    results = get_service().compare_contests(request.user.pk, contest_ids)
    return JsonResponse({'success': True, 'comparisons': serialize_result(results)})


@login_required
@require_GET
@study_errors
def study_insights(request):
    """Study advice for the last ``period`` days (default 30)."""
    try:
        contest_id = parse_int(request.GET.get('contest'))
        period_days = parse_int(request.GET.get('period'), default=30)
    except ValueError:
        return error_response('Invalid request', 400)
    if period_days < 1:
        return error_response('Period must be at least one day', 400)

    try:
        insights = get_service().get_study_insights(
            request.user.pk, contest_id=contest_id, period_days=period_days
        )
    except Contest.DoesNotExist:
        return error_response('Contest not found', 404)
    return JsonResponse({'success': True, 'insights': serialize_result(insights)})
