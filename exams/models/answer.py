from django.db import models


class ExamAnswer(models.Model):
    attempt = models.ForeignKey(
        'ExamAttempt',
        on_delete=models.CASCADE,
        related_name='answers',
        db_index=True
    )
    question = models.ForeignKey(
        'ExamQuestion',
        on_delete=models.PROTECT,
        related_name='answers',
        db_index=True
    )

    text_value = models.TextField(null=True, blank=True)
    selected_option_ids = models.JSONField(default=list, blank=True)
    structured_value = models.JSONField(null=True, blank=True)

    # null = not graded yet, or needs manual review
    is_correct = models.BooleanField(null=True)
    points_earned = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    feedback = models.TextField(blank=True)
    manually_graded = models.BooleanField(default=False)
    graded_at = models.DateTimeField(null=True, blank=True)
    answered_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['question__section__order', 'question__order', 'id']
        indexes = [
            models.Index(fields=['attempt', 'question']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['attempt', 'question'],
                name='unique_attempt_question'
            )
        ]

    def __str__(self):
        return f"Answer to Q{self.question.order} in attempt {self.attempt_id}"
