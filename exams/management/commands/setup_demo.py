"""
Management command to set up demo data for the exam engine.
Creates a grader account and a public exam covering every question type.
"""
from decimal import Decimal

from django.contrib.auth.models import Group, User
from django.core.management.base import BaseCommand
from django.db import transaction
from rest_framework.authtoken.models import Token

from exams.choices import QuestionType, ResultsVisibility
from exams.models import Exam, ExamQuestion, ExamSection, ExamVersion, QuestionOption
from exams.permissions import GRADERS_GROUP
from exams.repositories.django_orm import DjangoDefinitionProvider
from exams.snapshot import is_auto_gradable

DEMO_SLUG = 'python-basics'


class Command(BaseCommand):
    help = 'Set up demo data for testing'

    def handle(self, *args, **options):
        self.stdout.write(self.style.NOTICE('\nSetting up exam engine demo data...\n'))

        grader, created = User.objects.get_or_create(
            username='grader',
            defaults={'email': 'grader@example.com', 'first_name': 'Demo', 'last_name': 'Grader'}
        )
        if created:
            grader.set_password('grader123')
            grader.save()
            self.stdout.write(self.style.SUCCESS('✓ Created grader: grader / grader123'))
        else:
            self.stdout.write('  Grader user already exists')

        group, _ = Group.objects.get_or_create(name=GRADERS_GROUP)
        grader.groups.add(group)
        token, _ = Token.objects.get_or_create(user=grader)

        exam, created = Exam.objects.get_or_create(
            slug=DEMO_SLUG,
            defaults={
                'title': 'Python Basics Quiz',
                'description': 'Test your Python knowledge with this quiz',
                'is_public': True,
                'max_attempts': 3,
                'time_limit': 30,
                'passing_score': 60,
                'shuffle_questions': True,
                'shuffle_options': True,
                'show_results': ResultsVisibility.IMMEDIATE,
            }
        )
        if created:
            with transaction.atomic():
                self._create_version(exam)
            snapshot = DjangoDefinitionProvider(cache_timeout=0).get_latest_version(exam.id)
            exam.auto_grade = is_auto_gradable(snapshot)
            exam.save(update_fields=['auto_grade'])
            self.stdout.write(self.style.SUCCESS(
                f'✓ Exam: {exam.title} ({snapshot.total_points} points, auto_grade={exam.auto_grade})'
            ))
        else:
            self.stdout.write(f'  Exam already exists: {exam.title}')

        self.stdout.write(self.style.SUCCESS('\n' + '=' * 60))
        self.stdout.write(self.style.SUCCESS('Demo Setup Complete!'))
        self.stdout.write(self.style.SUCCESS('=' * 60))

        self.stdout.write(f'\nGrader token: {token.key}')

        self.stdout.write('\nAPI Documentation:')
        self.stdout.write('  Swagger UI: http://localhost:8000/api/docs/')
        self.stdout.write('  ReDoc:      http://localhost:8000/api/redoc/')

        self.stdout.write('\nTry it:')
        self.stdout.write(f'  curl http://localhost:8000/api/public/{DEMO_SLUG}/can-take/?email=you@example.com')
        self.stdout.write(f'  curl -H "Authorization: Token {token.key}" http://localhost:8000/api/exams/{exam.id}/stats/')
        self.stdout.write('')

    def _create_version(self, exam):
        version = ExamVersion.objects.create(exam=exam, version=1)

        basics = ExamSection.objects.create(version=version, title='Basics', order=1)
        self._question(basics, 1, QuestionType.RADIO, 'What is the output of print(type([]))?', 2, options=[
            ("<class 'list'>", True), ("<class 'tuple'>", False), ("<class 'dict'>", False), ("<class 'set'>", False),
        ])
        self._question(basics, 2, QuestionType.TRUE_FALSE, 'Python is a statically typed programming language.', 1,
                       options=[('True', False), ('False', True)])
        self._question(basics, 3, QuestionType.CHECKBOX, 'Which of these types are immutable?', 3, options=[
            ('tuple', True), ('list', False), ('frozenset', True), ('dict', False),
        ])

        structure = ExamSection.objects.create(version=version, title='Language Structure', order=2)
        self._question(structure, 1, QuestionType.TEXT, 'Which keyword defines a function?', 1,
                       correct_answer={'keywords': ['def'], 'exactMatch': True})
        self._question(structure, 2, QuestionType.MATCHING, 'Match each literal to its type.', 3,
                       correct_answer={'matches': {'[]': 'list', '()': 'tuple', '{}': 'dict'}})
        self._question(structure, 3, QuestionType.ORDERING, 'Order these from narrowest to widest scope.', 3,
                       correct_answer={'order': ['local', 'enclosing', 'global', 'builtin']})
        self._question(structure, 4, QuestionType.TEXTAREA,
                       'Compare and contrast Python lists and tuples. Include examples.', 5)

        version.total_points = sum(
            (q.points for q in ExamQuestion.objects.filter(section__version=version)), Decimal('0')
        )
        version.save(update_fields=['total_points'])
        return version

    @staticmethod
    def _question(section, order, qtype, text, points, options=(), correct_answer=None):
        question = ExamQuestion.objects.create(
            section=section,
            type=qtype,
            text=text,
            points=points,
            order=order,
            correct_answer=correct_answer,
        )
        for index, (option_text, is_correct) in enumerate(options, start=1):
            QuestionOption.objects.create(question=question, text=option_text, order=index, is_correct=is_correct)
        return question
