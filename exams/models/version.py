"""
Versioned exam content. Rows here are written by the authoring side and are
read-only to the attempt engine; an attempt points at one ExamVersion forever.
"""
from django.db import models
from django.core.validators import MinValueValidator

from exams.choices import QuestionType


class ExamVersion(models.Model):
    exam = models.ForeignKey(
        'Exam',
        on_delete=models.CASCADE,
        related_name='versions',
        db_index=True
    )
    version = models.PositiveIntegerField(default=1)
    total_points = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-version']
        constraints = [
            models.UniqueConstraint(fields=['exam', 'version'], name='unique_exam_version')
        ]

    def __str__(self):
        return f"{self.exam.title} v{self.version}"


class ExamSection(models.Model):
    version = models.ForeignKey(
        'ExamVersion',
        on_delete=models.CASCADE,
        related_name='sections'
    )
    title = models.CharField(max_length=300)
    description = models.TextField(blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.title


class ExamQuestion(models.Model):
    section = models.ForeignKey(
        'ExamSection',
        on_delete=models.CASCADE,
        related_name='questions'
    )
    type = models.CharField(max_length=20, choices=QuestionType.choices, db_index=True)
    text = models.TextField()
    help_text = models.TextField(blank=True)
    points = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=1.00,
        validators=[MinValueValidator(0.01)]
    )
    order = models.PositiveIntegerField(default=0)
    correct_answer = models.JSONField(null=True, blank=True)
    feedback = models.TextField(blank=True)

    class Meta:
        ordering = ['order', 'id']
        indexes = [
            models.Index(fields=['section', 'order']),
        ]

    def __str__(self):
        return f"Q{self.order}: {self.text[:50]}..."


class QuestionOption(models.Model):
    question = models.ForeignKey(
        'ExamQuestion',
        on_delete=models.CASCADE,
        related_name='options'
    )
    text = models.CharField(max_length=500)
    order = models.PositiveIntegerField(default=0)
    is_correct = models.BooleanField(default=False)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.text
