"""
Submissions and the assignment state machine.

An assignment starts ``assigned`` and moves exactly once to a terminal status:
``completed`` on the first correct attempt, or ``locked`` when the last allowed
attempt is wrong. Every submission appends one Attempt numbered
``attempts_used + 1``.

Concurrent submissions are resolved by the database: the (assignment,
attempt_no) unique constraint rejects a duplicate attempt number, and the
assignment row is only advanced when it still holds the snapshot the attempt
was graded against. The loser gets ConflictError and nothing of its write
survives.
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Max, Min, Q
from django.utils import timezone

from .exceptions import AlreadyCompletedError, ConflictError, ConsistencyError, NotFoundError, ValidationError
from .grading import grade
from .models import Assignment, Attempt

logger = logging.getLogger(__name__)


def transition(status, is_correct, attempts_used, max_attempts):
    """Status after an attempt; ``attempts_used`` already counts that attempt."""
    if status != Assignment.Status.ASSIGNED:
        return status
    if is_correct:
        return Assignment.Status.COMPLETED
    if attempts_used >= max_attempts:
        return Assignment.Status.LOCKED
    return Assignment.Status.ASSIGNED


def _load_assignment(assignment_id, student_id):
    try:
        return Assignment.objects.select_related('record').get(id=assignment_id, student_id=student_id)
    except (Assignment.DoesNotExist, TypeError, ValueError):
        raise NotFoundError('Assignment not found.') from None


def submit(assignment_id, student_id, codes, now=None):
    """
    Grade ``codes`` for one of the student's assignments and record the attempt.

    Returns the grade result extended with the assignment's new ``status``,
    ``attempts_used``, ``max_attempts`` and ``attempts_remaining``.
    """
    if isinstance(codes, (str, bytes)) or not isinstance(codes, (list, tuple, set, frozenset)):
        raise ValidationError('codes must be a list of strings.')
    codes = list(codes)
    assignment = _load_assignment(assignment_id, student_id)
    if assignment.status == Assignment.Status.COMPLETED:
        raise AlreadyCompletedError()
    if assignment.status == Assignment.Status.ASSIGNED and assignment.attempts_used >= assignment.max_attempts:
        logger.error(
            'Assignment %s is assigned with attempts_used=%s >= max_attempts=%s',
            assignment.id,
            assignment.attempts_used,
            assignment.max_attempts,
        )
        raise ConsistencyError(f'Assignment {assignment.id} has no attempts left but is not locked.')

    result = grade(assignment, codes)
    return record_attempt(assignment, codes, result, now=now)


def record_attempt(assignment, raw_codes, result, now=None):
    now = now or timezone.now()
    snapshot = assignment.attempts_used
    attempt_no = snapshot + 1
    new_status = transition(assignment.status, result['is_correct'], attempt_no, assignment.max_attempts)

    with transaction.atomic():
        try:
            with transaction.atomic():
                Attempt.objects.create(
                    student_id=assignment.student_id,
                    record_id=assignment.record_id,
                    assignment=assignment,
                    attempt_no=attempt_no,
                    submitted_codes=[code if isinstance(code, str) else str(code) for code in raw_codes],
                    is_correct=result['is_correct'],
                    wrong_codes=result['wrong_codes'],
                    missing_codes=result['missing_codes'],
                    created_at=now,
                )
        except IntegrityError as exc:
            logger.warning('Attempt %s on assignment %s already exists', attempt_no, assignment.id)
            raise ConflictError() from exc

        updated = Assignment.objects.filter(
            id=assignment.id,
            attempts_used=snapshot,
            status=Assignment.Status.ASSIGNED,
        ).update(attempts_used=attempt_no, last_attempt_at=now, status=new_status, updated_at=now)
        if updated != 1:
            logger.warning('Assignment %s changed after it was read; attempt %s discarded', assignment.id, attempt_no)
            raise ConflictError()

    assignment.attempts_used = attempt_no
    assignment.last_attempt_at = now
    assignment.status = new_status
    assignment.updated_at = now
    if new_status != Assignment.Status.ASSIGNED:
        logger.info('Assignment %s is now %s after %s attempt(s)', assignment.id, new_status, attempt_no)

    return {
        **result,
        'status': new_status,
        'attempt_no': attempt_no,
        'attempts_used': attempt_no,
        'max_attempts': assignment.max_attempts,
        'attempts_remaining': assignment.attempts_remaining,
    }


def history_problem(assignment, count, lowest, highest, correct):
    """Describe what is wrong with an assignment's attempt history, or return None."""
    used = assignment.attempts_used
    if count != used:
        return f'attempts_used={used} but {count} attempt row(s) exist'
    if count and (lowest != 1 or highest != count):
        return f'attempt numbers are not 1..{used} (found {lowest}..{highest})'
    if assignment.status == Assignment.Status.COMPLETED and correct != 1:
        return f'completed with {correct} correct attempt(s)'
    if assignment.status != Assignment.Status.COMPLETED and correct:
        return f'{assignment.status} but has a correct attempt'
    if assignment.status == Assignment.Status.LOCKED and used < assignment.max_attempts:
        return f'locked after {used} of {assignment.max_attempts} attempt(s)'
    if assignment.status == Assignment.Status.ASSIGNED and used >= assignment.max_attempts:
        return f'assigned with {used} of {assignment.max_attempts} attempt(s) used'
    return None


_HISTORY_AGGREGATES = {
    'attempt_count': Count('attempts'),
    'lowest_no': Min('attempts__attempt_no'),
    'highest_no': Max('attempts__attempt_no'),
    'correct_count': Count('attempts', filter=Q(attempts__is_correct=True)),
}


def verify_attempt_history(assignment):
    """Raise ConsistencyError unless the stored attempts agree with the assignment row."""
    stats = Attempt.objects.filter(assignment=assignment).aggregate(
        count=Count('id'),
        lowest=Min('attempt_no'),
        highest=Max('attempt_no'),
        correct=Count('id', filter=Q(is_correct=True)),
    )
    problem = history_problem(assignment, stats['count'], stats['lowest'], stats['highest'], stats['correct'])
    if problem:
        logger.error('Assignment %s is inconsistent: %s', assignment.id, problem)
        raise ConsistencyError(f'Assignment {assignment.id}: {problem}')


def audit_assignments(queryset=None, chunk_size=None):
    """Yield ``(assignment, problem)`` for every inconsistent assignment."""
    if queryset is None:
        queryset = Assignment.objects.all()
    chunk_size = chunk_size or settings.PRACTICE_ALLOCATION_CHUNK_SIZE
    rows = queryset.order_by('id').annotate(**_HISTORY_AGGREGATES)
    for assignment in rows.iterator(chunk_size=chunk_size):
        problem = history_problem(
            assignment,
            assignment.attempt_count,
            assignment.lowest_no,
            assignment.highest_no,
            assignment.correct_count,
        )
        if problem:
            logger.error('Assignment %s is inconsistent: %s', assignment.id, problem)
            yield assignment, problem
