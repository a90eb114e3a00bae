"""Engine settings with defaults, overridable from the Django settings module."""

from django.conf import settings


def session_size():
    return getattr(settings, 'STUDY_SESSION_SIZE', 20)


def graduation_repetitions():
    return getattr(settings, 'STUDY_GRADUATION_REPETITIONS', 5)


def store_timeout():
    return getattr(settings, 'STUDY_STORE_TIMEOUT', 5.0)


def default_response_seconds():
    return getattr(settings, 'STUDY_DEFAULT_RESPONSE_SECONDS', 30)


def default_ease_factor():
    return getattr(settings, 'STUDY_DEFAULT_EASE_FACTOR', 2.5)


def history_limit():
    return getattr(settings, 'STUDY_HISTORY_LIMIT', 100)
