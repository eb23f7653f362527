"""Grading of submitted code sets against a record's answer key."""
from questionbank.models import RecordCode
from .exceptions import LockedError, ValidationError
from .models import Assignment

WRONG_CODE_COMMENT = 'The entered code is not correct for this record.'
MISSING_CODE_COMMENT = 'A required code is missing.'
WRONG_SUMMARY_COMMENT = 'One or more codes are incorrect.'


def normalize_code(code) -> str:
    if code is None:
        return ''
    return str(code).strip().upper()


def normalize_codes(codes):
    """Trim, uppercase, drop blanks and duplicates; first occurrence wins."""
    if isinstance(codes, (str, bytes)):
        raise ValidationError('codes must be a list of strings, not a single string.')
    normalized = (normalize_code(code) for code in codes or [])
    return list(dict.fromkeys(code for code in normalized if code))


def load_answer_key(record_id):
    return list(RecordCode.objects.filter(record_id=record_id, is_required=True).order_by('sort_order', 'id'))


def build_feedback(key_rows, required, correct, wrong, missing, is_correct):
    by_code = {normalize_code(row.code): row for row in key_rows}
    wrong_comment = None
    if wrong:
        wrong_comment = next((row.comment_wrong for row in key_rows if row.comment_wrong), None)
        wrong_comment = wrong_comment or WRONG_SUMMARY_COMMENT
    return {
        'correct_codes': list(required) if is_correct else list(correct),
        'wrong_codes': list(wrong),
        'missing_codes': list(missing),
        'wrong_comment': wrong_comment,
        'wrong_details': [{'code': code, 'comment': WRONG_CODE_COMMENT} for code in wrong],
        'missing_details': [
            {'code': code, 'comment': by_code[code].comment_missing or MISSING_CODE_COMMENT} for code in missing
        ],
    }


def grade(assignment, submitted_codes, key_rows=None):
    """
    Grade a submission for ``assignment``.

    Correct and wrong codes keep submission order; missing codes keep answer key
    order. Raises LockedError for a locked assignment and ValidationError when
    nothing usable was submitted. Does not write anything.
    """
    if assignment.status == Assignment.Status.LOCKED:
        raise LockedError()
    submitted = normalize_codes(submitted_codes)
    if not submitted:
        raise ValidationError('No valid codes provided.')

    rows = list(key_rows) if key_rows is not None else load_answer_key(assignment.record_id)
    required = list(dict.fromkeys(normalize_code(row.code) for row in rows))
    required_set = set(required)
    submitted_set = set(submitted)

    correct = [code for code in submitted if code in required_set]
    wrong = [code for code in submitted if code not in required_set]
    missing = [code for code in required if code not in submitted_set]
    is_correct = not wrong and not missing

    return {
        'is_correct': is_correct,
        'partial_correct': not is_correct and bool(correct),
        'submitted_codes': submitted,
        'correct_codes': correct,
        'wrong_codes': wrong,
        'missing_codes': missing,
        'feedback': build_feedback(rows, required, correct, wrong, missing, is_correct),
    }
