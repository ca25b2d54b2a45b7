from io import StringIO

from django.contrib.auth.models import User
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework.authtoken.models import Token

from exams.choices import QuestionType
from exams.models import Exam, ExamQuestion


class SetupDemoCommandTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_seeds_grader_and_exam(self):
        call_command('setup_demo', stdout=StringIO())

        grader = User.objects.get(username='grader')
        self.assertTrue(grader.groups.filter(name='graders').exists())
        self.assertTrue(Token.objects.filter(user=grader).exists())

        exam = Exam.objects.get(slug='python-basics')
        self.assertTrue(exam.is_public)
        # The essay question keeps the exam out of auto-grading.
        self.assertFalse(exam.auto_grade)
        types = set(ExamQuestion.objects.filter(section__version__exam=exam).values_list('type', flat=True))
        self.assertEqual(types, set(QuestionType.values))
        self.assertEqual(exam.latest_version().total_points, 18)

    def test_is_idempotent(self):
        call_command('setup_demo', stdout=StringIO())
        call_command('setup_demo', stdout=StringIO())
        self.assertEqual(Exam.objects.filter(slug='python-basics').count(), 1)
        self.assertEqual(User.objects.filter(username='grader').count(), 1)
