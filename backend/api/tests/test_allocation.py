import random
import threading
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase

from accounts.models import Member
from practice import allocation
from practice.allocation import (
    assign_all,
    ensure_settings_for_all_categories,
    generate_for_student,
    plan_assign_all,
    upsert_category_settings,
)
from practice.exceptions import ConflictError, NotFoundError, ValidationError
from practice.models import Assignment, CategorySetting
from .helpers import make_assignment, make_category, make_member, make_record


class StopAfter:
    """Cancellation flag that trips after ``checks`` calls to ``is_set``."""

    def __init__(self, checks):
        self.remaining = checks

    def is_set(self):
        if self.remaining <= 0:
            return True
        self.remaining -= 1
        return False


class AssignAllTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.cardio = make_category('Cardio')
        self.resp = make_category('Respiratory')
        self.records = [make_record(self.cardio) for _ in range(3)] + [make_record(self.resp) for _ in range(2)]
        self.inactive = make_record(self.resp, is_active=False)

    def test_assigns_every_active_record(self):
        result = assign_all(self.student.id)
        self.assertEqual(result, {'created': 5, 'skipped': 0, 'interrupted': False})
        assigned = set(Assignment.objects.filter(student=self.student).values_list('record_id', flat=True))
        self.assertEqual(assigned, {record.id for record in self.records})
        assignment = Assignment.objects.filter(student=self.student).first()
        self.assertEqual(assignment.status, Assignment.Status.ASSIGNED)
        self.assertEqual(assignment.attempts_used, 0)
        self.assertEqual(assignment.max_attempts, 3)
        self.assertIsNotNone(assignment.allocation_batch)

    def test_is_idempotent(self):
        assign_all(self.student.id)
        again = assign_all(self.student.id)
        self.assertEqual(again, {'created': 0, 'skipped': 5, 'interrupted': False})
        self.assertEqual(Assignment.objects.filter(student=self.student).count(), 5)

    def test_existing_assignments_are_skipped(self):
        make_assignment(self.student, self.records[0])
        result = assign_all(self.student.id)
        self.assertEqual(result['created'], 4)
        self.assertEqual(result['skipped'], 1)

    def test_category_filter_and_category_id_copied(self):
        result = assign_all(self.student.id, category_id=self.resp.id)
        self.assertEqual(result['created'], 2)
        categories = set(Assignment.objects.filter(student=self.student).values_list('category_id', flat=True))
        self.assertEqual(categories, {self.resp.id})

    def test_include_inactive(self):
        result = assign_all(self.student.id, include_inactive=True)
        self.assertEqual(result['created'], 6)

    def test_max_attempts_is_applied(self):
        assign_all(self.student.id, max_attempts=5)
        self.assertEqual(set(Assignment.objects.values_list('max_attempts', flat=True)), {5})

    def test_small_chunks_cover_every_record(self):
        result = assign_all(self.student.id, chunk_size=2)
        self.assertEqual(result['created'], 5)

    def test_cancel_before_start(self):
        cancel = threading.Event()
        cancel.set()
        result = assign_all(self.student.id, chunk_size=2, cancel=cancel)
        self.assertEqual(result, {'created': 0, 'skipped': 0, 'interrupted': True})
        self.assertFalse(Assignment.objects.exists())

    def test_cancel_between_chunks_keeps_finished_chunks(self):
        result = assign_all(self.student.id, chunk_size=2, cancel=StopAfter(1))
        self.assertTrue(result['interrupted'])
        self.assertEqual(result['created'], 2)
        self.assertEqual(Assignment.objects.filter(student=self.student).count(), 2)

    def test_unknown_category(self):
        with self.assertRaises(NotFoundError):
            assign_all(self.student.id, category_id=999999)

    def test_invalid_max_attempts(self):
        for value in (0, 11):
            with self.assertRaises(ValidationError):
                assign_all(self.student.id, max_attempts=value)
        self.assertFalse(Assignment.objects.exists())

    def test_non_student_is_rejected(self):
        staff = make_member('staff', role=Member.Role.PROVIDER_USER)
        with self.assertRaises(ValidationError):
            assign_all(staff.id)
        with self.assertRaises(ValidationError):
            assign_all(999999)

    def test_row_inserted_concurrently_counts_as_skipped(self):
        real_insert = allocation.insert_assignments
        competitor = self.records[1]

        def racing_insert(student, rows, max_attempts):
            if not Assignment.objects.filter(student=student, record=competitor).exists():
                make_assignment(student, competitor)
            return real_insert(student, rows, max_attempts)

        with mock.patch.object(allocation, 'insert_assignments', side_effect=racing_insert):
            result = assign_all(self.student.id)

        self.assertEqual(result['created'], 4)
        self.assertEqual(result['skipped'], 1)
        self.assertEqual(Assignment.objects.filter(student=self.student, record=competitor).count(), 1)
        self.assertEqual(Assignment.objects.filter(student=self.student).count(), 5)

    def test_each_chunk_rereads_existing_assignments(self):
        real_insert = allocation.insert_assignments
        late = self.records[3]
        staged = []

        def tracking_insert(student, rows, max_attempts):
            staged.append([record_id for record_id, _ in rows])
            if len(staged) == 1:
                make_assignment(student, late)
            return real_insert(student, rows, max_attempts)

        with mock.patch.object(allocation, 'insert_assignments', side_effect=tracking_insert):
            result = assign_all(self.student.id, chunk_size=2)

        self.assertEqual(len(staged), 3)
        self.assertNotIn(late.id, staged[1])
        self.assertEqual(result, {'created': 4, 'skipped': 1, 'interrupted': False})

    def test_integrity_error_is_retried_once(self):
        real_insert = allocation.insert_assignments
        calls = []

        def flaky_insert(student, rows, max_attempts):
            calls.append(len(rows))
            if len(calls) == 1:
                raise IntegrityError('simulated')
            return real_insert(student, rows, max_attempts)

        with mock.patch.object(allocation, 'insert_assignments', side_effect=flaky_insert):
            result = assign_all(self.student.id)
        self.assertEqual(result['created'], 5)
        self.assertEqual(len(calls), 2)

    def test_repeated_integrity_error_raises_conflict(self):
        with mock.patch.object(allocation, 'insert_assignments', side_effect=IntegrityError('simulated')):
            with self.assertRaises(ConflictError):
                assign_all(self.student.id)

    def test_plan_does_not_write(self):
        make_assignment(self.student, self.records[0])
        plan = plan_assign_all(self.student.id)
        self.assertEqual(plan['created'], 4)
        self.assertEqual(plan['skipped'], 1)
        self.assertEqual(Assignment.objects.count(), 1)


class GenerateForStudentTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.cardio = make_category('Cardio')
        self.resp = make_category('Respiratory')
        self.cardio_records = [make_record(self.cardio) for _ in range(6)]
        self.resp_records = [make_record(self.resp) for _ in range(2)]
        make_record(self.cardio, is_active=False)

    def configure(self, **counts):
        for category, count in ((self.cardio, counts.get('cardio', 0)), (self.resp, counts.get('resp', 0))):
            CategorySetting.objects.create(student=self.student, category=category, questions_count=count)

    def test_tops_up_to_desired_count(self):
        self.configure(cardio=4, resp=1)
        result = generate_for_student(self.student.id, rng=random.Random(3))
        self.assertEqual(result['created'], 5)
        self.assertEqual(result['by_category'][self.cardio.id], {'desired': 4, 'existing': 0, 'added': 4})
        self.assertEqual(result['by_category'][self.resp.id], {'desired': 1, 'existing': 0, 'added': 1})
        cardio_ids = set(
            Assignment.objects.filter(student=self.student, category=self.cardio).values_list('record_id', flat=True)
        )
        self.assertTrue(cardio_ids <= {record.id for record in self.cardio_records})

    def test_counts_existing_and_never_removes(self):
        make_assignment(self.student, self.cardio_records[0])
        make_assignment(self.student, self.cardio_records[1])
        self.configure(cardio=1)
        result = generate_for_student(self.student.id)
        self.assertEqual(result['created'], 0)
        self.assertEqual(result['by_category'][self.cardio.id], {'desired': 1, 'existing': 2, 'added': 0})
        self.assertEqual(Assignment.objects.filter(student=self.student).count(), 2)

    def test_rerun_adds_nothing(self):
        self.configure(cardio=3)
        generate_for_student(self.student.id, rng=random.Random(1))
        again = generate_for_student(self.student.id, rng=random.Random(2))
        self.assertEqual(again['created'], 0)

    def test_caps_at_available_active_records(self):
        self.configure(cardio=50, resp=50)
        result = generate_for_student(self.student.id)
        self.assertEqual(result['by_category'][self.cardio.id]['added'], 6)
        self.assertEqual(result['by_category'][self.resp.id]['added'], 2)
        self.assertFalse(
            Assignment.objects.filter(student=self.student, record__is_active=False).exists()
        )

    def test_zero_count_adds_nothing(self):
        self.configure()
        result = generate_for_student(self.student.id)
        self.assertEqual(result['created'], 0)
        self.assertEqual(result['by_category'][self.cardio.id]['added'], 0)

    def test_picks_are_spread_across_records(self):
        self.configure(cardio=1)
        rng = random.Random(11)
        picked = set()
        for _ in range(40):
            Assignment.objects.filter(student=self.student).delete()
            generate_for_student(self.student.id, rng=rng)
            picked.update(Assignment.objects.filter(student=self.student).values_list('record_id', flat=True))
        self.assertGreater(len(picked), 1)


class CategorySettingsTests(TestCase):
    def setUp(self):
        self.student = make_member('student')
        self.cardio = make_category('Cardio')
        self.resp = make_category('Respiratory')

    def test_ensure_settings_for_all_categories(self):
        CategorySetting.objects.create(student=self.student, category=self.cardio, questions_count=4)
        created = ensure_settings_for_all_categories(self.student.id)
        self.assertEqual(created, 1)
        self.assertEqual(ensure_settings_for_all_categories(self.student.id), 0)
        counts = dict(CategorySetting.objects.filter(student=self.student).values_list('category_id', 'questions_count'))
        self.assertEqual(counts, {self.cardio.id: 4, self.resp.id: 0})

    def test_upsert_creates_and_updates(self):
        upsert_category_settings(self.student.id, [{'category_id': self.cardio.id, 'questions_count': 5}])
        saved = upsert_category_settings(
            self.student.id,
            [
                {'category_id': self.cardio.id, 'questions_count': 2},
                {'category_id': self.resp.id, 'questions_count': 500},
            ],
        )
        self.assertEqual([(s.category_id, s.questions_count) for s in saved], [(self.cardio.id, 2), (self.resp.id, 500)])

    def test_upsert_validates_everything_first(self):
        for entries in (
            [{'category_id': self.cardio.id, 'questions_count': 501}],
            [{'category_id': self.cardio.id, 'questions_count': -1}],
            [{'category_id': self.cardio.id, 'questions_count': 1}, {'category_id': 999999, 'questions_count': 1}],
            [],
        ):
            with self.assertRaises(ValidationError):
                upsert_category_settings(self.student.id, entries)
        self.assertFalse(CategorySetting.objects.exists())
