from django.test import TestCase

from .models import MedicalRecord, RecordCategory, RecordCode
from .store import compute_source_uid, deactivate_missing, upsert_record


CASE = {
    'patient_name': 'Alex Doe',
    'age': 54,
    'gender': 'F',
    'chief_complaints': 'Cough',
    'case_description': 'Persistent cough for three weeks.',
}


class SourceUidTests(TestCase):
    def test_uid_ignores_surrounding_whitespace(self):
        padded = {**CASE, 'patient_name': '  Alex Doe  '}
        self.assertEqual(compute_source_uid(1, CASE), compute_source_uid(1, padded))

    def test_uid_depends_on_category(self):
        self.assertNotEqual(compute_source_uid(1, CASE), compute_source_uid(2, CASE))

    def test_uid_is_sha256_hex(self):
        uid = compute_source_uid(1, CASE)
        self.assertEqual(len(uid), 64)
        int(uid, 16)


class UpsertRecordTests(TestCase):
    def setUp(self):
        self.category = RecordCategory.objects.create(name='Respiratory', slug='respiratory')

    def test_upsert_is_idempotent(self):
        codes = [{'code': ' j15.0 '}, {'code': 'z86.43', 'comment_missing': 'History code needed.'}]
        record, created = upsert_record(self.category, CASE, codes)
        again, created_again = upsert_record(self.category, CASE, codes)
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(record.id, again.id)
        self.assertEqual(MedicalRecord.objects.count(), 1)
        stored = list(record.codes.values_list('code', 'sort_order'))
        self.assertEqual(stored, [('J15.0', 1), ('Z86.43', 2)])
        self.assertEqual(RecordCode.objects.get(code='Z86.43').comment_missing, 'History code needed.')

    def test_upsert_reactivates_record(self):
        record, _ = upsert_record(self.category, CASE)
        MedicalRecord.objects.filter(id=record.id).update(is_active=False)
        record, _ = upsert_record(self.category, CASE)
        self.assertTrue(record.is_active)

    def test_blank_codes_are_skipped(self):
        record, _ = upsert_record(self.category, CASE, [{'code': '  '}, {'code': 'r05'}])
        self.assertEqual(list(record.codes.values_list('code', flat=True)), ['R05'])

    def test_deactivate_missing(self):
        kept, _ = upsert_record(self.category, CASE)
        dropped, _ = upsert_record(self.category, {**CASE, 'patient_name': 'Sam Roe'})
        count = deactivate_missing(self.category, {kept.source_uid})
        self.assertEqual(count, 1)
        dropped.refresh_from_db()
        kept.refresh_from_db()
        self.assertFalse(dropped.is_active)
        self.assertTrue(kept.is_active)


class RecordCodeTests(TestCase):
    def test_code_is_normalized_on_save(self):
        category = RecordCategory.objects.create(name='Cardio', slug='cardio')
        record = MedicalRecord.objects.create(category=category, patient_name='Pat')
        code = RecordCode.objects.create(record=record, code=' i10 ')
        self.assertEqual(code.code, 'I10')
