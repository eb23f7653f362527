from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Member
from practice.models import Assignment, Attempt
from questionbank.models import MedicalRecord
from .helpers import make_assignment, make_category, make_member, make_record


class GameplayTests(APITestCase):
    def setUp(self):
        self.student = make_member('student')
        self.other = make_member('other')
        self.category = make_category('Respiratory')
        self.record = make_record(
            self.category,
            codes=('J15.0', 'Z86.43'),
            patient_name='Alex Doe',
            case_description='Fever and productive cough.',
        )
        self.assignment = make_assignment(self.student, self.record, max_attempts=3)
        self.submit_url = reverse('assignment-submit', args=[self.assignment.id])
        self.question_url = reverse('assignment-question', args=[self.assignment.id])
        self.client.force_authenticate(user=self.student.user)

    def test_staff_cannot_submit(self):
        staff = make_member('staff', Member.Role.PROVIDER_USER)
        self.client.force_authenticate(user=staff.user)
        response = self.client.post(self.submit_url, {'codes': ['J15.0']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_question_hides_answer_key(self):
        response = self.client.get(self.question_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['record']['patient_name'], 'Alex Doe')
        self.assertEqual(response.data['assignment']['status'], 'assigned')
        self.assertNotIn('codes', response.data['record'])
        self.assertNotIn('J15.0', str(response.data))

    def test_question_of_deactivated_record_is_gone(self):
        MedicalRecord.objects.filter(id=self.record.id).update(is_active=False)
        response = self.client.get(self.question_url)
        self.assertEqual(response.status_code, status.HTTP_410_GONE)

    def test_question_of_other_student_is_not_found(self):
        self.client.force_authenticate(user=self.other.user)
        response = self.client.get(self.question_url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_correct_submission(self):
        response = self.client.post(self.submit_url, {'codes': ['j15.0', ' Z86.43 ']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['result']['is_correct'])
        self.assertEqual(response.data['result']['status'], 'completed')
        self.assertEqual(response.data['result']['attempts_remaining'], 2)
        self.assertEqual(response.data['feedback']['correct_codes'], ['J15.0', 'Z86.43'])

        response = self.client.post(self.submit_url, {'codes': ['J15.0', 'Z86.43']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'completed')

    def test_lock_flow(self):
        for expected in ('assigned', 'assigned', 'locked'):
            response = self.client.post(self.submit_url, {'codes': ['R05']}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['result']['status'], expected)
            self.assertFalse(response.data['result']['partial_correct'])

        response = self.client.post(self.submit_url, {'codes': ['J15.0', 'Z86.43']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_423_LOCKED)
        self.assertEqual(response.data['code'], 'locked')
        self.assertEqual(Attempt.objects.filter(assignment=self.assignment).count(), 3)

    def test_partial_feedback(self):
        response = self.client.post(self.submit_url, {'codes': ['J15.0', 'R05']}, format='json')
        self.assertTrue(response.data['result']['partial_correct'])
        self.assertEqual(response.data['feedback']['wrong_codes'], ['R05'])
        self.assertEqual(response.data['feedback']['missing_codes'], ['Z86.43'])
        self.assertEqual(response.data['feedback']['wrong_comment'], 'One or more codes are incorrect.')

    def test_raw_codes_are_stored(self):
        self.client.post(self.submit_url, {'codes': [' j15.0 ']}, format='json')
        attempt = Attempt.objects.get(assignment=self.assignment)
        self.assertEqual(attempt.submitted_codes, [' j15.0 '])

    def test_blank_submission(self):
        response = self.client.post(self.submit_url, {'codes': ['', '  ']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(self.submit_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Attempt.objects.exists())

    def test_submit_to_other_students_assignment(self):
        self.client.force_authenticate(user=self.other.user)
        response = self.client.post(self.submit_url, {'codes': ['J15.0']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_my_assignments_filters(self):
        cardio = make_category('Cardio')
        done = make_assignment(self.student, make_record(cardio), status=Assignment.Status.COMPLETED, attempts_used=1)
        make_assignment(self.other, make_record(cardio))
        url = reverse('my-assignments')

        response = self.client.get(url)
        self.assertEqual([row['id'] for row in response.data], [self.assignment.id, done.id])

        response = self.client.get(url, {'category_id': cardio.id})
        self.assertEqual([row['id'] for row in response.data], [done.id])

        response = self.client.get(url, {'status': 'assigned'})
        self.assertEqual([row['id'] for row in response.data], [self.assignment.id])

        response = self.client.get(url, {'status': 'bogus'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_categories(self):
        make_category('Unused')
        response = self.client.get(reverse('my-categories'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['category_name'] for row in response.data], ['Respiratory'])
        self.assertEqual(response.data[0]['remaining'], 1)


class DashboardTests(APITestCase):
    def setUp(self):
        self.student = make_member('student')
        self.record = make_record(make_category('Respiratory'), codes=('J15.0',))
        self.assignment = make_assignment(self.student, self.record)
        self.client.force_authenticate(user=self.student.user)
        self.client.post(reverse('assignment-submit', args=[self.assignment.id]), {'codes': ['R05']}, format='json')
        self.client.post(reverse('assignment-submit', args=[self.assignment.id]), {'codes': ['J15.0']}, format='json')

    def test_summary(self):
        response = self.client.get(reverse('my-dashboard-summary'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['filters']['default_all_time'])
        self.assertEqual(response.data['cards']['total_attempts'], 2)
        self.assertEqual(response.data['cards']['accuracy_percent'], 50.0)
        self.assertEqual(response.data['cards']['completed'], 1)
        self.assertEqual(response.data['cards']['avg_attempts_per_completed_question'], 2.0)

    def test_summary_rejects_reversed_window(self):
        response = self.client.get(reverse('my-dashboard-summary'), {'from': '2024-02-01', 'to': '2024-01-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mistakes(self):
        response = self.client.get(reverse('my-dashboard-mistakes'), {'type': 'wrong'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['wrong_top'], [{'code': 'R05', 'count': 1}])
        self.assertNotIn('missing_top', response.data)

        response = self.client.get(reverse('my-dashboard-mistakes'), {'limit': '0'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
