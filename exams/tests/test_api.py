"""
API tests for the public attempt flow and grader endpoints.
"""
from django.conf import settings
from django.contrib.auth.models import Group, User
from django.core.cache import cache
from rest_framework import status
from rest_framework.test import APITestCase

from exams.choices import ResultsVisibility
from exams.models import AuditLog, ExamAnswer, ExamAttempt
from exams.permissions import GRADERS_GROUP
from .fixtures import create_exam


class ApiTestCase(APITestCase):

    def setUp(self):
        cache.clear()
        self.data = create_exam(slug='api-exam')
        self.exam = self.data['exam']

    def start(self, email='ada@example.com', name='Ada'):
        return self.client.post(f'/api/public/{self.exam.slug}/start/', {'name': name, 'email': email}, format='json')

    def start_anonymous(self, **extra):
        return self.client.post(f'/api/public/{self.exam.slug}/start/', {}, format='json', **extra)

    def save(self, attempt_id, **body):
        return self.client.put(f'/api/attempts/{attempt_id}/answer/', body, format='json')

    def as_grader(self):
        user = User.objects.create_user('grader', 'grader@example.com')
        user.groups.add(Group.objects.create(name=GRADERS_GROUP))
        self.client.force_authenticate(user=user)
        return user


class PublicFlowTests(ApiTestCase):

    def test_can_take_before_and_after_start(self):
        url = f'/api/public/{self.exam.slug}/can-take/'
        response = self.client.get(url, {'email': 'ada@example.com'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['can_take'])
        self.assertEqual(response.data['attempts_remaining'], 2)

        attempt_id = self.start().data['id']
        response = self.client.get(url, {'email': 'ada@example.com'})
        self.assertEqual(response.data['pending_attempt']['id'], attempt_id)

    def test_start_returns_sanitized_exam(self):
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['attempt_number'], 1)
        self.assertEqual(response.data['max_score'], 7.0)

        questions = response.data['exam_version']['sections'][0]['questions']
        self.assertEqual(len(questions), 3)
        for option in questions[0]['options']:
            self.assertNotIn('is_correct', option)
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.ATTEMPT_START).exists())

    def test_quota_exceeded(self):
        self.start()
        self.start()
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'quota_exceeded')
        self.assertEqual(response.data['max_attempts'], 2)
        self.assertEqual(response.data['attempts_used'], 2)
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.QUOTA_REJECTED).exists())

    def test_forwarded_header_ignored_without_proxies(self):
        response = self.start_anonymous(HTTP_X_FORWARDED_FOR='203.0.113.5')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ExamAttempt.objects.get(pk=response.data['id']).identity_key, 'ip:127.0.0.1')

        # A new header value is not a new identity.
        self.start_anonymous(HTTP_X_FORWARDED_FOR='198.51.100.1')
        response = self.start_anonymous(HTTP_X_FORWARDED_FOR='198.51.100.2')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'quota_exceeded')

    def test_ip_identity_behind_trusted_proxy(self):
        with self.settings(REST_FRAMEWORK={**settings.REST_FRAMEWORK, 'NUM_PROXIES': 1}):
            response = self.start_anonymous(HTTP_X_FORWARDED_FOR='198.51.100.7, 203.0.113.5')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ExamAttempt.objects.get(pk=response.data['id']).identity_key, 'ip:203.0.113.5')

    def test_non_ip_forwarded_value_is_not_an_identity(self):
        with self.settings(REST_FRAMEWORK={**settings.REST_FRAMEWORK, 'NUM_PROXIES': 1}):
            response = self.start_anonymous(HTTP_X_FORWARDED_FOR='not-an-ip')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'validation_error')
        self.assertFalse(ExamAttempt.objects.exists())

    def test_unknown_and_private_exam(self):
        self.assertEqual(self.client.post('/api/public/missing/start/', {}, format='json').status_code,
                         status.HTTP_404_NOT_FOUND)

        self.exam.is_public = False
        self.exam.save()
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'forbidden')

    def test_answer_submit_result(self):
        attempt_id = self.start().data['id']

        response = self.save(attempt_id, question_id=self.data['radio'].id,
                             selected_option_ids=[self.data['radio_right'].id])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['selected_option_ids'], [self.data['radio_right'].id])

        response = self.client.post(f'/api/attempts/{attempt_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['auto_graded'])
        self.assertEqual(response.data['score'], 2.0)

        response = self.client.get(f'/api/attempts/{attempt_id}/result/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['available'])
        self.assertEqual(response.data['score'], 2.0)

    def test_second_submit_conflicts(self):
        attempt_id = self.start().data['id']
        self.client.post(f'/api/attempts/{attempt_id}/submit/')
        response = self.client.post(f'/api/attempts/{attempt_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'conflict')

    def test_answer_after_submit_conflicts(self):
        attempt_id = self.start().data['id']
        self.client.post(f'/api/attempts/{attempt_id}/submit/')
        response = self.save(attempt_id, question_id=self.data['essay'].id, text_value='late')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_option(self):
        attempt_id = self.start().data['id']
        response = self.save(attempt_id, question_id=self.data['radio'].id,
                             selected_option_ids=[self.data['primes'][0].id])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'selected_option_ids')

    def test_expired_attempt_is_submitted(self):
        self.exam.time_limit = 5
        self.exam.save()
        attempt_id = self.start().data['id']
        ExamAttempt.objects.filter(pk=attempt_id).update(
            started_at=ExamAttempt.objects.get(pk=attempt_id).started_at.replace(year=2020)
        )

        response = self.save(attempt_id, question_id=self.data['essay'].id, text_value='too late')
        self.assertEqual(response.status_code, status.HTTP_410_GONE)
        self.assertEqual(response.data['error'], 'time_expired')
        self.assertIsNotNone(ExamAttempt.objects.get(pk=attempt_id).completed_at)
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.ATTEMPT_EXPIRED).exists())

    def test_resume(self):
        attempt_id = self.start().data['id']
        self.save(attempt_id, question_id=self.data['essay'].id, text_value='draft')
        response = self.client.get(f'/api/attempts/{attempt_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['answers'][0]['text_value'], 'draft')

    def test_result_withheld(self):
        self.exam.show_results = ResultsVisibility.NEVER
        self.exam.save()
        attempt_id = self.start().data['id']
        self.client.post(f'/api/attempts/{attempt_id}/submit/')
        response = self.client.get(f'/api/attempts/{attempt_id}/result/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['available'])


class GraderEndpointTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.attempt_id = self.start().data['id']
        self.save(self.attempt_id, question_id=self.data['radio'].id,
                  selected_option_ids=[self.data['radio_right'].id])
        self.save(self.attempt_id, question_id=self.data['essay'].id, text_value='An essay')
        self.client.post(f'/api/attempts/{self.attempt_id}/submit/')
        self.essay_answer = ExamAnswer.objects.get(attempt_id=self.attempt_id, question=self.data['essay'])

    def test_requires_grader(self):
        url = f'/api/exams/{self.exam.id}/stats/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.force_authenticate(user=User.objects.create_user('student', 'student@example.com'))
        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_counts_as_grader(self):
        self.client.force_authenticate(user=User.objects.create_user('boss', is_staff=True))
        self.assertEqual(self.client.get(f'/api/exams/{self.exam.id}/stats/').status_code, status.HTTP_200_OK)

    def test_list_attempts_with_filter(self):
        self.as_grader()
        self.start(email='grace@example.com')

        response = self.client.get(f'/api/exams/{self.exam.id}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(f'/api/exams/{self.exam.id}/attempts/', {'completed': 'true'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], self.attempt_id)

        response = self.client.get(f'/api/exams/{self.exam.id}/attempts/', {'completed': 'false'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['student_email'], 'grace@example.com')

    def test_list_unknown_exam(self):
        self.as_grader()
        self.assertEqual(self.client.get('/api/exams/999/attempts/').status_code, status.HTTP_404_NOT_FOUND)

    def test_review(self):
        self.as_grader()
        response = self.client.get(f'/api/exams/{self.exam.id}/attempts/{self.attempt_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        questions = {q['question_id']: q for q in response.data['sections'][0]['questions']}
        self.assertTrue(questions[self.data['essay'].id]['needs_review'])
        self.assertEqual(questions[self.data['essay'].id]['answer_id'], self.essay_answer.id)

    def test_manual_grade(self):
        self.as_grader()
        response = self.client.put(f'/api/answers/{self.essay_answer.id}/grade/',
                                   {'points_earned': 3, 'feedback': 'Solid.'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['attempt_score'], 5.0)
        self.assertTrue(response.data['passed'])
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.MANUAL_GRADE,
                                                actor='grader').exists())

    def test_manual_grade_out_of_range(self):
        self.as_grader()
        response = self.client.put(f'/api/answers/{self.essay_answer.id}/grade/',
                                   {'points_earned': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'validation_error')
        self.assertEqual(response.data['max_points'], 3.0)

    def test_stats(self):
        self.as_grader()
        response = self.client.get(f'/api/exams/{self.exam.id}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_attempts'], 1)
        self.assertEqual(response.data['average_score'], 2.0)
        self.assertEqual(response.data['pass_rate'], 0.0)

    def test_stats_unknown_exam(self):
        self.as_grader()
        response = self.client.get('/api/exams/999/stats/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')
