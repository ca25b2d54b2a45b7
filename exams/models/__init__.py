from .exam import Exam
from .version import ExamVersion, ExamSection, ExamQuestion, QuestionOption
from .attempt import ExamAttempt
from .answer import ExamAnswer
from .audit import AuditLog

__all__ = [
    'Exam', 'ExamVersion', 'ExamSection', 'ExamQuestion', 'QuestionOption',
    'ExamAttempt', 'ExamAnswer', 'AuditLog'
]
