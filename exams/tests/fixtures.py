"""
Database fixtures shared by the ORM and API tests.
"""
from decimal import Decimal

from exams.choices import QuestionType
from exams.models import Exam, ExamQuestion, ExamSection, ExamVersion, QuestionOption


def create_exam(slug='orm-exam', version=1, exam=None, **settings):
    """Exam with one version: RADIO (2 pts), CHECKBOX (2 pts) and TEXTAREA (3 pts)."""
    if exam is None:
        values = dict(title='ORM Exam', slug=slug, is_public=True, max_attempts=2, auto_grade=True)
        values.update(settings)
        exam = Exam.objects.create(**values)

    exam_version = ExamVersion.objects.create(exam=exam, version=version, total_points=Decimal('7'))
    section = ExamSection.objects.create(version=exam_version, title='Only section', order=1)

    radio = ExamQuestion.objects.create(section=section, type=QuestionType.RADIO, text='Capital of France?',
                                        points=2, order=1)
    radio_right = QuestionOption.objects.create(question=radio, text='Paris', order=1, is_correct=True)
    radio_wrong = QuestionOption.objects.create(question=radio, text='Rome', order=2)

    checkbox = ExamQuestion.objects.create(section=section, type=QuestionType.CHECKBOX, text='Primes?',
                                           points=2, order=2)
    primes = [
        QuestionOption.objects.create(question=checkbox, text='2', order=1, is_correct=True),
        QuestionOption.objects.create(question=checkbox, text='3', order=2, is_correct=True),
        QuestionOption.objects.create(question=checkbox, text='4', order=3),
    ]

    essay = ExamQuestion.objects.create(section=section, type=QuestionType.TEXTAREA, text='Explain.',
                                        points=3, order=3)
    return {
        'exam': exam,
        'version': exam_version,
        'radio': radio,
        'radio_right': radio_right,
        'radio_wrong': radio_wrong,
        'checkbox': checkbox,
        'primes': primes,
        'essay': essay,
    }
