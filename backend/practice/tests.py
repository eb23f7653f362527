import random

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from api.tests.helpers import make_assignment, make_category, make_member, make_record
from questionbank.models import RecordCode
from .allocation import sample_ids
from .analytics import DateWindow, percent, round_half_up
from .exceptions import LockedError, ValidationError
from .grading import grade, normalize_codes
from .models import MAX_QUESTIONS_PER_CATEGORY, Assignment, Attempt, CategorySetting
from .submission import transition


class NormalizeCodesTests(SimpleTestCase):
    def test_trims_uppercases_and_dedupes(self):
        self.assertEqual(normalize_codes([' j15.0 ', 'J15.0', '', '  ', 'z86.43']), ['J15.0', 'Z86.43'])

    def test_none_and_empty(self):
        self.assertEqual(normalize_codes(None), [])
        self.assertEqual(normalize_codes([None, '']), [])

    def test_single_string_is_rejected(self):
        with self.assertRaises(ValidationError):
            normalize_codes('J15.0')
        with self.assertRaises(ValidationError):
            normalize_codes(b'J15.0')


class TransitionTests(SimpleTestCase):
    def test_correct_completes(self):
        self.assertEqual(transition('assigned', True, 1, 3), Assignment.Status.COMPLETED)
        self.assertEqual(transition('assigned', True, 3, 3), Assignment.Status.COMPLETED)

    def test_wrong_with_attempts_left_stays_assigned(self):
        self.assertEqual(transition('assigned', False, 2, 3), Assignment.Status.ASSIGNED)

    def test_last_wrong_attempt_locks(self):
        self.assertEqual(transition('assigned', False, 3, 3), Assignment.Status.LOCKED)

    def test_terminal_statuses_are_absorbing(self):
        self.assertEqual(transition('completed', False, 3, 3), 'completed')
        self.assertEqual(transition('locked', True, 3, 3), 'locked')


class RoundingTests(SimpleTestCase):
    def test_percent(self):
        self.assertEqual(percent(7, 10), 70.0)
        self.assertEqual(percent(0, 0), 0.0)
        self.assertEqual(percent(1, 3), 33.33)
        self.assertEqual(percent(2, 3), 66.67)

    def test_half_up(self):
        self.assertEqual(round_half_up(3.125), 3.13)
        self.assertEqual(round_half_up(2.5, places=0), 3.0)

    def test_window_parsing(self):
        window = DateWindow.from_dates('2024-01-01', '2024-01-31')
        self.assertEqual(window.start.hour, 0)
        self.assertEqual(window.end.hour, 23)
        self.assertEqual(window.end.second, 59)
        self.assertFalse(window.is_all_time)
        self.assertTrue(DateWindow.from_dates().is_all_time)

    def test_window_rejects_reversed_bounds(self):
        with self.assertRaises(ValidationError):
            DateWindow.from_dates('2024-02-01', '2024-01-01')

    def test_window_rejects_bad_dates(self):
        with self.assertRaises(ValidationError):
            DateWindow.from_dates('01/02/2024')


class SampleIdsTests(SimpleTestCase):
    def test_sample_is_distinct_subset(self):
        picked = sample_ids(range(100), 10, random.Random(7))
        self.assertEqual(len(picked), 10)
        self.assertEqual(len(set(picked)), 10)
        self.assertTrue(set(picked) <= set(range(100)))

    def test_short_population_is_taken_whole(self):
        self.assertEqual(sorted(sample_ids([3, 1, 2], 5, random.Random(1))), [1, 2, 3])
        self.assertEqual(sample_ids([1, 2], 0, random.Random(1)), [])

    def test_every_item_can_be_picked(self):
        rng = random.Random(42)
        seen = set()
        for _ in range(200):
            seen.update(sample_ids(range(20), 2, rng))
        self.assertEqual(seen, set(range(20)))


class GradeTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.category = make_category()
        self.record = make_record(self.category, codes=('J15.0', 'Z86.43'))
        self.assignment = make_assignment(self.student, self.record)

    def test_exact_match_is_correct(self):
        result = grade(self.assignment, ['J15.0', 'Z86.43'])
        self.assertTrue(result['is_correct'])
        self.assertFalse(result['partial_correct'])
        self.assertEqual(result['feedback']['correct_codes'], ['J15.0', 'Z86.43'])
        self.assertIsNone(result['feedback']['wrong_comment'])

    def test_normalization_applies_before_grading(self):
        result = grade(self.assignment, [' z86.43', ' j15.0 '])
        self.assertTrue(result['is_correct'])
        self.assertEqual(result['submitted_codes'], ['Z86.43', 'J15.0'])

    def test_partial_submission(self):
        result = grade(self.assignment, ['J15.0'])
        self.assertFalse(result['is_correct'])
        self.assertTrue(result['partial_correct'])
        self.assertEqual(result['missing_codes'], ['Z86.43'])
        self.assertEqual(result['wrong_codes'], [])
        self.assertEqual(
            result['feedback']['missing_details'],
            [{'code': 'Z86.43', 'comment': 'A required code is missing.'}],
        )

    def test_wrong_code_keeps_submission_order(self):
        result = grade(self.assignment, ['J15.0', 'Z86.43', 'R05', 'A00'])
        self.assertFalse(result['is_correct'])
        self.assertTrue(result['partial_correct'])
        self.assertEqual(result['wrong_codes'], ['R05', 'A00'])
        self.assertEqual(result['feedback']['wrong_comment'], 'One or more codes are incorrect.')
        self.assertEqual(result['feedback']['correct_codes'], ['J15.0', 'Z86.43'])

    def test_all_wrong_is_not_partial(self):
        result = grade(self.assignment, ['R05'])
        self.assertFalse(result['partial_correct'])
        self.assertEqual(result['missing_codes'], ['J15.0', 'Z86.43'])

    def test_record_comments_are_used(self):
        RecordCode.objects.filter(record=self.record, code='Z86.43').update(
            comment_missing='Include the history code.', comment_wrong='Check the pneumonia guidance.'
        )
        result = grade(self.assignment, ['R05'])
        self.assertEqual(result['feedback']['wrong_comment'], 'Check the pneumonia guidance.')
        self.assertIn({'code': 'Z86.43', 'comment': 'Include the history code.'}, result['feedback']['missing_details'])
        self.assertEqual(
            result['feedback']['wrong_details'],
            [{'code': 'R05', 'comment': 'The entered code is not correct for this record.'}],
        )

    def test_optional_codes_are_not_required(self):
        RecordCode.objects.filter(record=self.record, code='Z86.43').update(is_required=False)
        self.assertTrue(grade(self.assignment, ['J15.0'])['is_correct'])

    def test_empty_submission_is_rejected(self):
        with self.assertRaises(ValidationError):
            grade(self.assignment, ['', '   '])

    def test_locked_assignment_is_rejected(self):
        self.assignment.status = Assignment.Status.LOCKED
        with self.assertRaises(LockedError):
            grade(self.assignment, ['J15.0'])

    def test_grading_never_writes(self):
        grade(self.assignment, ['J15.0'])
        self.assertEqual(Attempt.objects.count(), 0)
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.attempts_used, 0)


class AssignmentConstraintTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.record = make_record(make_category())

    def test_student_record_pair_is_unique(self):
        make_assignment(self.student, self.record)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                make_assignment(self.student, self.record)

    def test_attempts_cannot_exceed_max(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                make_assignment(self.student, self.record, max_attempts=2, attempts_used=3)

    def test_attempts_remaining(self):
        assignment = make_assignment(self.student, self.record, max_attempts=3, attempts_used=1)
        self.assertEqual(assignment.attempts_remaining, 2)
        self.assertFalse(assignment.is_terminal)


class CategorySettingTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.category = make_category()

    def test_questions_count_is_capped(self):
        setting = CategorySetting(student=self.student, category=self.category, questions_count=MAX_QUESTIONS_PER_CATEGORY)
        setting.full_clean()
        setting.questions_count = MAX_QUESTIONS_PER_CATEGORY + 1
        with self.assertRaises(DjangoValidationError) as ctx:
            setting.full_clean()
        self.assertIn('questions_count', ctx.exception.message_dict)
