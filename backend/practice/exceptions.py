"""
Failures raised by the practice engine.

Each carries the HTTP status and machine code the API layer reports, so views
can turn any of them into a ``{'detail', 'code'}`` response without a lookup
table.
"""


class PracticeError(Exception):
    status_code = 400
    code = 'error'
    default_detail = 'Request could not be processed.'

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(PracticeError):
    status_code = 400
    code = 'invalid'
    default_detail = 'Invalid input.'


class AlreadyCompletedError(ValidationError):
    status_code = 409
    code = 'completed'
    default_detail = 'This question has already been answered correctly.'


class NotFoundError(PracticeError):
    status_code = 404
    code = 'not_found'
    default_detail = 'Not found.'


class LockedError(PracticeError):
    status_code = 423
    code = 'locked'
    default_detail = 'This question is locked (max attempts used).'


class ConflictError(PracticeError):
    """A concurrent write won the race. Safe for the caller to retry."""

    status_code = 409
    code = 'conflict'
    default_detail = 'A concurrent update was detected. Please retry.'


class ConsistencyError(PracticeError):
    status_code = 500
    code = 'inconsistent'
    default_detail = 'Stored attempt history is inconsistent.'
