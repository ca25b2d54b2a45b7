import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from exams.exceptions import ExamEngineError

logger = logging.getLogger(__name__)


def engine_exception_handler(exc, context):
    """Render engine errors as ``{"error": code, "detail": message, ...}``; defer the rest to DRF."""
    if isinstance(exc, ExamEngineError):
        view = context.get('view')
        logger.info("%s in %s: %s", exc.code, view.__class__.__name__ if view else '-', exc.message)
        return Response(exc.as_dict(), status=exc.status_code)
    return exception_handler(exc, context)
