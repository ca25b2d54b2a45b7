"""
Typed errors raised by the attempt and grading engine.

Every error carries a stable ``code``, the HTTP status the API layer maps it
to, a human readable message and structured fields. Callers branch on the
class, never on the message text.
"""


class ExamEngineError(Exception):
    code = 'error'
    status_code = 400
    default_message = 'The request could not be processed.'

    def __init__(self, message=None, **fields):
        self.message = message or self.default_message
        self.fields = fields
        super().__init__(self.message)

    def as_dict(self):
        data = {'error': self.code, 'detail': self.message}
        for key, value in self.fields.items():
            data[key] = value.isoformat() if hasattr(value, 'isoformat') else value
        return data


class NotFound(ExamEngineError):
    code = 'not_found'
    status_code = 404
    default_message = 'Resource not found.'

    def __init__(self, resource, identifier, message=None):
        super().__init__(
            message or f"{resource.capitalize()} not found: {identifier}",
            resource=resource,
            identifier=identifier,
        )


class Forbidden(ExamEngineError):
    code = 'forbidden'
    status_code = 403
    default_message = 'This exam is not available.'


class QuotaExceeded(ExamEngineError):
    code = 'quota_exceeded'
    status_code = 403

    def __init__(self, max_attempts, attempts_used):
        super().__init__(
            f"You have reached the limit of {max_attempts} attempt(s) for this exam.",
            max_attempts=max_attempts,
            attempts_used=attempts_used,
        )


class Conflict(ExamEngineError):
    code = 'conflict'
    status_code = 409
    default_message = 'This attempt has already been completed.'


class TimeExpired(ExamEngineError):
    code = 'time_expired'
    status_code = 410

    def __init__(self, attempt_id, deadline):
        super().__init__(
            'The time limit for this attempt has expired; it was submitted automatically.',
            attempt_id=attempt_id,
            deadline=deadline,
        )


class ValidationError(ExamEngineError):
    code = 'validation_error'
    status_code = 400
    default_message = 'Invalid input.'

    def __init__(self, message=None, field=None, **fields):
        if field is not None:
            fields['field'] = field
        super().__init__(message, **fields)
