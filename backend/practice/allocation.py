"""
Assignment allocation.

Two entry points create assignments for a student:

* ``assign_all`` binds every eligible record of the bank (optionally one
  category) to the student. The bank is walked in id order in bounded chunks;
  each chunk is written atomically with an insert-or-ignore against the
  (student, record) unique constraint, so concurrent calls for the same student
  converge on the same rows.
* ``generate_for_student`` tops each category up to the student's configured
  question count, drawing a uniform random sample of unassigned active records.

Rows inserted by one chunk carry a fresh ``allocation_batch`` token. Counting
the token after the insert gives the number of rows this call actually wrote,
which the conflict-ignore insert does not report on every database.
"""
import logging
import random
import uuid

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef

from accounts.models import Member, get_student
from questionbank.models import MedicalRecord, RecordCategory
from .exceptions import ConflictError, NotFoundError, ValidationError
from .models import MAX_ATTEMPTS, MAX_QUESTIONS_PER_CATEGORY, MIN_ATTEMPTS, Assignment, CategorySetting

logger = logging.getLogger(__name__)


def resolve_max_attempts(value=None) -> int:
    if value is None:
        value = settings.PRACTICE_DEFAULT_MAX_ATTEMPTS
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError('max_attempts must be an integer.') from None
    if value < MIN_ATTEMPTS or value > MAX_ATTEMPTS:
        raise ValidationError(f'max_attempts must be between {MIN_ATTEMPTS} and {MAX_ATTEMPTS}.')
    return value


def load_student(student_id) -> Member:
    try:
        return get_student(student_id)
    except (Member.DoesNotExist, TypeError, ValueError):
        raise ValidationError(f'Student not found: {student_id}') from None


def _check_category(category_id):
    try:
        exists = RecordCategory.objects.filter(id=category_id).exists()
    except (TypeError, ValueError):
        exists = False
    if not exists:
        raise NotFoundError(f'Category not found: {category_id}')


def eligible_records(category_id=None, include_inactive=False):
    records = MedicalRecord.objects.all()
    if not include_inactive:
        records = records.filter(is_active=True)
    if category_id is not None:
        records = records.filter(category_id=category_id)
    return records


def iter_record_chunks(records, chunk_size):
    """Yield ``(record_id, category_id)`` lists in id order using keyset pagination."""
    rows = records.order_by('id').values_list('id', 'category_id')
    last_id = 0
    while True:
        chunk = list(rows.filter(id__gt=last_id)[:chunk_size])
        if not chunk:
            return
        yield chunk
        last_id = chunk[-1][0]


def insert_assignments(student, rows, max_attempts) -> int:
    """Insert-or-ignore one batch of ``(record_id, category_id)`` rows; return rows written."""
    if not rows:
        return 0
    batch = uuid.uuid4()
    staged = [
        Assignment(
            student=student,
            record_id=record_id,
            category_id=category_id,
            status=Assignment.Status.ASSIGNED,
            attempts_used=0,
            max_attempts=max_attempts,
            allocation_batch=batch,
        )
        for record_id, category_id in rows
    ]
    with transaction.atomic():
        Assignment.objects.bulk_create(staged, ignore_conflicts=True)
        return Assignment.objects.filter(allocation_batch=batch).count()


def _allocate_chunk(student, chunk, max_attempts):
    record_ids = [record_id for record_id, _ in chunk]
    retried = False
    while True:
        already = set(
            Assignment.objects.filter(student=student, record_id__in=record_ids).values_list('record_id', flat=True)
        )
        staged = [row for row in chunk if row[0] not in already]
        try:
            inserted = insert_assignments(student, staged, max_attempts)
        except IntegrityError as exc:
            if retried:
                raise ConflictError('Allocation kept conflicting with a concurrent write.') from exc
            logger.warning('Allocation chunk for student %s conflicted; retrying once', student.id, exc_info=exc)
            retried = True
            continue
        return inserted, len(already) + len(staged) - inserted


def assign_all(
    student_id,
    category_id=None,
    include_inactive=False,
    max_attempts=None,
    chunk_size=None,
    cancel=None,
):
    """
    Assign every eligible record to the student, skipping ones already assigned.

    ``cancel`` is anything with ``is_set()`` (e.g. ``threading.Event``); it is
    checked between chunks and stops the walk with ``interrupted`` set.
    Chunks written before the stop stay committed.
    """
    max_attempts = resolve_max_attempts(max_attempts)
    student = load_student(student_id)
    if category_id is not None:
        _check_category(category_id)
    chunk_size = int(chunk_size or settings.PRACTICE_ALLOCATION_CHUNK_SIZE)
    if chunk_size < 1:
        raise ValidationError('chunk_size must be positive.')

    result = {'created': 0, 'skipped': 0, 'interrupted': False}
    records = eligible_records(category_id, include_inactive)
    for chunk in iter_record_chunks(records, chunk_size):
        if cancel is not None and cancel.is_set():
            result['interrupted'] = True
            break
        created, skipped = _allocate_chunk(student, chunk, max_attempts)
        result['created'] += created
        result['skipped'] += skipped

    logger.info(
        'assign_all student=%s category=%s created=%s skipped=%s interrupted=%s',
        student.id,
        category_id,
        result['created'],
        result['skipped'],
        result['interrupted'],
    )
    return result


def plan_assign_all(student_id, category_id=None, include_inactive=False):
    """Counts ``assign_all`` would report right now, without writing."""
    student = load_student(student_id)
    if category_id is not None:
        _check_category(category_id)
    records = eligible_records(category_id, include_inactive)
    total = records.count()
    already = Assignment.objects.filter(student=student, record__in=records).count()
    return {'created': total - already, 'skipped': already, 'interrupted': False}


def sample_ids(ids, k, rng):
    """Uniform sample of ``k`` items from an iterable of unknown length (reservoir sampling)."""
    reservoir = []
    if k <= 0:
        return reservoir
    for index, value in enumerate(ids):
        if index < k:
            reservoir.append(value)
            continue
        slot = rng.randrange(index + 1)
        if slot < k:
            reservoir[slot] = value
    return reservoir


def generate_for_student(student_id, rng=None, max_attempts=None):
    """
    Top up the student's assignments to the per-category counts in CategorySetting.

    Existing assignments are never removed. Records are picked uniformly at
    random among active records the student does not have yet; pass ``rng``
    (a ``random.Random``) for reproducible picks.
    """
    student = load_student(student_id)
    max_attempts = resolve_max_attempts(max_attempts)
    rng = rng if rng is not None else random.Random()

    created = 0
    by_category = {}
    with transaction.atomic():
        category_settings = CategorySetting.objects.filter(student=student).order_by('category_id')
        for setting in category_settings:
            category_id = setting.category_id
            desired = int(setting.questions_count)
            if desired <= 0:
                by_category[category_id] = {'desired': desired, 'existing': 0, 'added': 0}
                continue

            existing = Assignment.objects.filter(student=student, category_id=category_id).count()
            need = max(0, desired - existing)
            added = 0
            if need:
                already_assigned = Assignment.objects.filter(student=student, record_id=OuterRef('pk'))
                candidates = (
                    MedicalRecord.objects.filter(category_id=category_id, is_active=True)
                    .filter(~Exists(already_assigned))
                    .order_by('id')
                    .values_list('id', flat=True)
                )
                picked = sample_ids(
                    candidates.iterator(chunk_size=settings.PRACTICE_ALLOCATION_CHUNK_SIZE), need, rng
                )
                added = insert_assignments(student, [(record_id, category_id) for record_id in picked], max_attempts)
            created += added
            by_category[category_id] = {'desired': desired, 'existing': existing, 'added': added}

    logger.info('generate_for_student student=%s created=%s', student.id, created)
    return {'student_id': student.id, 'created': created, 'by_category': by_category}


def ensure_settings_for_all_categories(student_id, default_count=0) -> int:
    """Create a CategorySetting for every category the student lacks one for."""
    student = load_student(student_id)
    configured = CategorySetting.objects.filter(student=student).values('category_id')
    missing = RecordCategory.objects.exclude(id__in=configured).values_list('id', flat=True)
    rows = [
        CategorySetting(student=student, category_id=category_id, questions_count=default_count)
        for category_id in missing
    ]
    CategorySetting.objects.bulk_create(rows, ignore_conflicts=True)
    return len(rows)


def upsert_category_settings(student_id, entries):
    """
    Save desired question counts per category for a student.

    ``entries`` is a list of ``{'category_id': int, 'questions_count': int}``.
    All entries are validated before anything is written.
    """
    student = load_student(student_id)
    if not isinstance(entries, (list, tuple)) or not entries:
        raise ValidationError('settings must be a non-empty list.')

    cleaned = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError('Each setting must be an object.')
        try:
            category_id = int(entry.get('category_id'))
            count = int(entry.get('questions_count'))
        except (TypeError, ValueError):
            raise ValidationError('category_id and questions_count must be integers.') from None
        if count < 0 or count > MAX_QUESTIONS_PER_CATEGORY:
            raise ValidationError(f'questions_count must be between 0 and {MAX_QUESTIONS_PER_CATEGORY}.')
        cleaned[category_id] = count

    known = set(RecordCategory.objects.filter(id__in=list(cleaned)).values_list('id', flat=True))
    unknown = sorted(set(cleaned) - known)
    if unknown:
        raise ValidationError(f'Unknown category id(s): {", ".join(str(value) for value in unknown)}.')

    with transaction.atomic():
        for category_id, count in cleaned.items():
            CategorySetting.objects.update_or_create(
                student=student,
                category_id=category_id,
                defaults={'questions_count': count},
            )
    return list(CategorySetting.objects.filter(student=student).select_related('category').order_by('category_id'))
