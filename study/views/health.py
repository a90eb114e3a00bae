"""Health check endpoint for container orchestration."""

from django.http import JsonResponse

from ..exceptions import StoreUnavailable
from ..models import ReviewRecord
from ..store import DjangoReviewStore


def health_check(request):
    """
    Returns 200 when the review store answers within its timeout, 503 otherwise.
    """
    store = DjangoReviewStore()
    try:
        with store.atomic():
            ReviewRecord.objects.exists()
    except StoreUnavailable as exc:
        return JsonResponse({"status": "unhealthy", "error": str(exc), "retryable": True}, status=503)
    return JsonResponse({"status": "healthy"})
