from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address
from rest_framework.throttling import AnonRateThrottle, BaseThrottle


def get_client_ip(request):
    """Client address as the throttles see it, or None when it is not an IP.

    X-Forwarded-For is only read when REST_FRAMEWORK['NUM_PROXIES'] is set.
    """
    ident = BaseThrottle().get_ident(request)
    try:
        validate_ipv46_address(ident)
    except ValidationError:
        return None
    return ident


class AttemptStartThrottle(AnonRateThrottle):
    """Limits how fast one client can open new attempts."""
    scope = 'attempt_start'


class AnswerSaveThrottle(AnonRateThrottle):
    """Autosave traffic; generous but bounded."""
    scope = 'answer_save'


class SubmissionRateThrottle(AnonRateThrottle):
    """Strict rate limit for exam submissions to prevent abuse."""
    scope = 'submission'
