from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from exams.choices import ResultsVisibility


class Exam(models.Model):
    title = models.CharField(max_length=300)
    slug = models.SlugField(max_length=200, unique=True)
    description = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)
    is_public = models.BooleanField(default=False)

    max_attempts = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    time_limit = models.PositiveIntegerField(null=True, blank=True, help_text="Minutes; empty means no limit")
    passing_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=60.00,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Percentage of the maximum score required to pass"
    )
    auto_grade = models.BooleanField(
        default=False,
        help_text="Set at authoring time when every question type is auto-gradable"
    )

    shuffle_questions = models.BooleanField(default=False)
    shuffle_options = models.BooleanField(default=False)
    show_results = models.CharField(
        max_length=20,
        choices=ResultsVisibility.choices,
        default=ResultsVisibility.IMMEDIATE
    )
    allow_review = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'is_public']),
        ]

    def __str__(self):
        return self.title

    def latest_version(self):
        return self.versions.order_by('-version').first()
