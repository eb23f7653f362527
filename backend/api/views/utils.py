import logging

from rest_framework.response import Response

from accounts.models import Member, get_member
from practice.analytics import DateWindow
from practice.exceptions import ConsistencyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def error_response(exc):
    """Render a practice error as ``{'detail', 'code'}``; consistency failures propagate."""
    if isinstance(exc, ConsistencyError):
        logger.error('Consistency failure: %s', exc.detail)
        raise exc
    return Response({'detail': exc.detail, 'code': exc.code}, status=exc.status_code)


def get_managed_student(request, student_id):
    """The student ``student_id`` if the requester may manage them; otherwise NotFoundError."""
    try:
        student = Member.objects.select_related('user', 'provider').get(id=student_id)
    except Member.DoesNotExist:
        raise NotFoundError('Student not found.') from None
    if not request.user.is_superuser:
        requester = get_member(request.user)
        if requester is None or not requester.can_manage(student):
            raise NotFoundError('Student not found.')
    if not student.is_student:
        raise ValidationError('Target member is not a student.')
    return student


def get_requesting_student(request):
    return get_member(request.user)


def window_from_query(request):
    return DateWindow.from_dates(request.query_params.get('from'), request.query_params.get('to'))


def optional_int(request, name):
    value = request.query_params.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer.') from None
