from django.db import models


class QuestionType(models.TextChoices):
    RADIO = 'RADIO', 'Single Choice'
    CHECKBOX = 'CHECKBOX', 'Multiple Choice'
    TRUE_FALSE = 'TRUE_FALSE', 'True/False'
    TEXT = 'TEXT', 'Short Text'
    TEXTAREA = 'TEXTAREA', 'Long Text'
    MATCHING = 'MATCHING', 'Matching'
    ORDERING = 'ORDERING', 'Ordering'


class ResultsVisibility(models.TextChoices):
    IMMEDIATE = 'IMMEDIATE', 'Immediately'
    AFTER_DEADLINE = 'AFTER_DEADLINE', 'After Deadline'
    MANUAL = 'MANUAL', 'After Manual Release'
    NEVER = 'NEVER', 'Never'


CHOICE_TYPES = frozenset({QuestionType.RADIO, QuestionType.CHECKBOX, QuestionType.TRUE_FALSE})
SINGLE_CHOICE_TYPES = frozenset({QuestionType.RADIO, QuestionType.TRUE_FALSE})

# TEXT is gradable per question (keywords) but never makes a whole exam auto-gradable.
AUTO_GRADABLE_TYPES = frozenset({
    QuestionType.RADIO, QuestionType.CHECKBOX, QuestionType.TRUE_FALSE,
    QuestionType.MATCHING, QuestionType.ORDERING,
})
