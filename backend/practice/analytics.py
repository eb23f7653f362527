"""
Read-only practice statistics.

Assignment counts are filtered on ``Assignment.created_at`` and attempt
metrics on ``Attempt.created_at``; a window narrows each side on its own
timestamp. Percentages and averages are rounded half-up to two decimals.
"""
from collections import Counter
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal

import numpy as np
from django.conf import settings
from django.db.models import Avg, Count, Max, Q
from django.db.models.functions import TruncDate
from django.utils import timezone

from accounts.models import Member
from questionbank.models import RecordCategory
from .exceptions import ValidationError
from .models import Assignment, Attempt

MISTAKE_KINDS = ('wrong', 'missing', 'both')
MAX_MISTAKES_LIMIT = 100


def round_half_up(value, places=2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percent(part, whole) -> float:
    if not whole:
        return 0.0
    return round_half_up(part / whole * 100)


def _parse_day(value, name):
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'{name} must be a date in YYYY-MM-DD format.') from None


class DateWindow:
    """Inclusive time window; either bound may be open."""

    def __init__(self, start=None, end=None):
        if start is not None and end is not None and start > end:
            raise ValidationError('from must be on or before to.')
        self.start = start
        self.end = end

    @classmethod
    def from_dates(cls, date_from=None, date_to=None):
        """Build a window from day strings: ``from`` starts at 00:00, ``to`` ends at 23:59:59.999999."""
        first = _parse_day(date_from, 'from')
        last = _parse_day(date_to, 'to')
        start = timezone.make_aware(datetime.combine(first, time.min)) if first else None
        end = timezone.make_aware(datetime.combine(last, time.max)) if last else None
        return cls(start, end)

    @property
    def is_all_time(self) -> bool:
        return self.start is None and self.end is None

    def apply(self, queryset, field='created_at'):
        if self.start is not None:
            queryset = queryset.filter(**{f'{field}__gte': self.start})
        if self.end is not None:
            queryset = queryset.filter(**{f'{field}__lte': self.end})
        return queryset

    def as_filters(self):
        return {
            'from': self.start.isoformat() if self.start else None,
            'to': self.end.isoformat() if self.end else None,
            'default_all_time': self.is_all_time,
        }


ALL_TIME = DateWindow()


def scoped_assignments(window=None, provider_id=None, category_id=None, student_id=None):
    assignments = (window or ALL_TIME).apply(Assignment.objects.all())
    if provider_id is not None:
        assignments = assignments.filter(student__provider_id=provider_id)
    if category_id is not None:
        assignments = assignments.filter(category_id=category_id)
    if student_id is not None:
        assignments = assignments.filter(student_id=student_id)
    return assignments


def scoped_attempts(window=None, provider_id=None, category_id=None, student_id=None):
    attempts = (window or ALL_TIME).apply(Attempt.objects.all())
    if provider_id is not None:
        attempts = attempts.filter(student__provider_id=provider_id)
    if category_id is not None:
        attempts = attempts.filter(assignment__category_id=category_id)
    if student_id is not None:
        attempts = attempts.filter(student_id=student_id)
    return attempts


_ATTEMPT_TOTALS = {
    'total': Count('id'),
    'correct': Count('id', filter=Q(is_correct=True)),
    'first_total': Count('id', filter=Q(attempt_no=1)),
    'first_correct': Count('id', filter=Q(attempt_no=1, is_correct=True)),
}

_ASSIGNMENT_TOTALS = {
    'assigned_total': Count('id'),
    'completed': Count('id', filter=Q(status=Assignment.Status.COMPLETED)),
    'locked': Count('id', filter=Q(status=Assignment.Status.LOCKED)),
}


def _assignment_cards(stats):
    assigned_total = stats.get('assigned_total') or 0
    completed = stats.get('completed') or 0
    locked = stats.get('locked') or 0
    return {
        'assigned_total': assigned_total,
        'completed': completed,
        'locked': locked,
        'remaining': max(0, assigned_total - completed - locked),
        'locked_rate_percent': percent(locked, assigned_total),
        'completion_rate_percent': percent(completed, assigned_total),
    }


def _attempt_cards(stats):
    total = stats.get('total') or 0
    return {
        'total_attempts': total,
        'accuracy_percent': percent(stats.get('correct') or 0, total),
        'first_try_accuracy_percent': percent(stats.get('first_correct') or 0, stats.get('first_total') or 0),
    }


def summary(window=None, provider_id=None, category_id=None, student_id=None):
    attempts = scoped_attempts(window, provider_id, category_id, student_id)
    attempt_stats = attempts.aggregate(active_students=Count('student', distinct=True), **_ATTEMPT_TOTALS)

    assignments = scoped_assignments(window, provider_id, category_id, student_id)
    assignment_stats = assignments.aggregate(
        avg_completed=Avg('attempts_used', filter=Q(status=Assignment.Status.COMPLETED)),
        **_ASSIGNMENT_TOTALS,
    )
    avg_completed = assignment_stats['avg_completed']

    return {
        **_assignment_cards(assignment_stats),
        **_attempt_cards(attempt_stats),
        'active_students': attempt_stats['active_students'],
        'avg_attempts_per_completed_question': round_half_up(avg_completed) if avg_completed else 0.0,
    }


def category_progress(window=None, provider_id=None, category_id=None, student_id=None):
    """Per-category rows, including categories with no assignments or attempts."""
    categories = RecordCategory.objects.order_by('name', 'id')
    if category_id is not None:
        categories = categories.filter(id=category_id)

    assignment_rows = (
        scoped_assignments(window, provider_id, category_id, student_id)
        .values('category_id')
        .annotate(**_ASSIGNMENT_TOTALS)
    )
    by_assignment = {row['category_id']: row for row in assignment_rows}
    attempt_rows = (
        scoped_attempts(window, provider_id, category_id, student_id)
        .values('assignment__category_id')
        .annotate(**_ATTEMPT_TOTALS)
    )
    by_attempt = {row['assignment__category_id']: row for row in attempt_rows}

    rows = []
    for category in categories:
        row = {'category_id': category.id, 'category_name': category.name}
        row.update(_assignment_cards(by_assignment.get(category.id, {})))
        row.update(_attempt_cards(by_attempt.get(category.id, {})))
        rows.append(row)
    return rows


def _top(counter, limit):
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [{'code': code, 'count': count} for code, count in ranked[:limit]]


def mistakes(window=None, provider_id=None, category_id=None, student_id=None, kind='both', limit=None):
    """Most frequent wrong and/or missing codes, ties broken by code."""
    if kind not in MISTAKE_KINDS:
        raise ValidationError(f'type must be one of: {", ".join(MISTAKE_KINDS)}.')
    if limit is None:
        limit = settings.PRACTICE_MISTAKES_LIMIT
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError('limit must be an integer.') from None
    if limit < 1 or limit > MAX_MISTAKES_LIMIT:
        raise ValidationError(f'limit must be between 1 and {MAX_MISTAKES_LIMIT}.')

    wrong = Counter()
    missing = Counter()
    attempts = scoped_attempts(window, provider_id, category_id, student_id).filter(is_correct=False)
    for wrong_codes, missing_codes in attempts.values_list('wrong_codes', 'missing_codes').iterator(chunk_size=2000):
        wrong.update(wrong_codes or [])
        missing.update(missing_codes or [])

    result = {}
    if kind in ('wrong', 'both'):
        result['wrong_top'] = _top(wrong, limit)
    if kind in ('missing', 'both'):
        result['missing_top'] = _top(missing, limit)
    return result


def activity(window=None, provider_id=None, category_id=None, student_id=None):
    rows = (
        scoped_attempts(window, provider_id, category_id, student_id)
        .annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(
            attempts=Count('id'),
            correct=Count('id', filter=Q(is_correct=True)),
            active_students=Count('student', distinct=True),
        )
        .order_by('day')
    )
    return [
        {
            'date': row['day'].isoformat(),
            'attempts': row['attempts'],
            'correct': row['correct'],
            'accuracy_percent': percent(row['correct'], row['attempts']),
            'active_students': row['active_students'],
        }
        for row in rows
    ]


def funnel(window=None, provider_id=None, category_id=None):
    students = Member.objects.filter(role=Member.Role.STUDENT)
    if provider_id is not None:
        students = students.filter(provider_id=provider_id)
    assignments = scoped_assignments(window, provider_id, category_id)
    attempts = scoped_attempts(window, provider_id, category_id)

    def distinct_students(queryset):
        return queryset.values('student_id').distinct().count()

    return {
        'total_students': students.count(),
        'students_with_assignments': distinct_students(assignments),
        'students_with_attempts': distinct_students(attempts),
        'students_with_completed': distinct_students(assignments.filter(status=Assignment.Status.COMPLETED)),
        'students_with_locked': distinct_students(assignments.filter(status=Assignment.Status.LOCKED)),
    }


def student_leaderboard(provider_id=None, window=None, category_id=None):
    """One row per student, best accuracy first; students without attempts sort last by name."""
    students = Member.objects.filter(role=Member.Role.STUDENT).select_related('user')
    if provider_id is not None:
        students = students.filter(provider_id=provider_id)

    attempt_rows = (
        scoped_attempts(window, provider_id, category_id)
        .values('student_id')
        .annotate(last_attempt_at=Max('created_at'), **_ATTEMPT_TOTALS)
    )
    by_attempt = {row['student_id']: row for row in attempt_rows}
    assignment_rows = (
        scoped_assignments(window, provider_id, category_id).values('student_id').annotate(**_ASSIGNMENT_TOTALS)
    )
    by_assignment = {row['student_id']: row for row in assignment_rows}

    rows = []
    for student in students:
        attempt_stats = by_attempt.get(student.id, {})
        row = {'student_id': student.id, 'name': student.display_name, 'username': student.username}
        row.update(_attempt_cards(attempt_stats))
        row.update(_assignment_cards(by_assignment.get(student.id, {})))
        last = attempt_stats.get('last_attempt_at')
        row['last_attempt_at'] = last.isoformat() if last else None
        rows.append(row)

    rows.sort(key=lambda row: (row['total_attempts'] == 0, -row['accuracy_percent'], row['name'].lower()))
    return rows


def _distribution(values):
    if not values:
        return {'count': 0, 'mean': 0.0, 'median': 0.0, 'min': 0, 'max': 0}
    data = np.asarray(values, dtype=float)
    return {
        'count': int(data.size),
        'mean': round_half_up(float(np.mean(data))),
        'median': round_half_up(float(np.median(data))),
        'min': int(np.min(data)),
        'max': int(np.max(data)),
    }


def attempt_distribution(window=None, provider_id=None, category_id=None, student_id=None):
    """Spread of attempts used by finished assignments, split by outcome."""
    finished = scoped_assignments(window, provider_id, category_id, student_id).filter(
        status__in=Assignment.TERMINAL_STATUSES
    )
    used = {'completed': [], 'locked': []}
    for status, attempts_used in finished.values_list('status', 'attempts_used').iterator(chunk_size=2000):
        used[status].append(attempts_used)
    return {
        'all': _distribution(used['completed'] + used['locked']),
        'completed': _distribution(used['completed']),
        'locked': _distribution(used['locked']),
    }
