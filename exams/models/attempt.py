from django.db import models
from django.utils import timezone


class ExamAttempt(models.Model):
    exam = models.ForeignKey(
        'Exam',
        on_delete=models.CASCADE,
        related_name='attempts',
        db_index=True
    )
    exam_version = models.ForeignKey(
        'ExamVersion',
        on_delete=models.PROTECT,
        related_name='attempts'
    )
    attempt_number = models.PositiveIntegerField(default=1)

    # "email:<address>" when the taker gave an email, otherwise "ip:<address>"
    identity_key = models.CharField(max_length=300, db_index=True)
    student_name = models.CharField(max_length=200, blank=True)
    student_email = models.EmailField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)

    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    time_spent = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")

    score = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    max_score = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    passed = models.BooleanField(null=True)
    auto_graded = models.BooleanField(default=False)
    manually_graded = models.BooleanField(default=False)

    # Randomized presentation order: {"questions": {section_id: [...]}, "options": {question_id: [...]}}
    layout = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-started_at']
        indexes = [
            models.Index(fields=['exam', 'identity_key']),
            models.Index(fields=['exam', 'completed_at']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['exam', 'identity_key', 'attempt_number'],
                name='unique_exam_identity_attempt'
            )
        ]

    def __str__(self):
        return f"{self.identity_key} - {self.exam.title} (Attempt {self.attempt_number})"

    @property
    def is_completed(self):
        return self.completed_at is not None
