from django.db import models

from exams.throttling import get_client_ip


class AuditLog(models.Model):
    class EventType(models.TextChoices):
        ATTEMPT_START = 'attempt_start', 'Attempt Started'
        QUOTA_REJECTED = 'quota_rejected', 'Attempt Quota Reached'
        ATTEMPT_SUBMIT = 'attempt_submit', 'Attempt Submitted'
        ATTEMPT_EXPIRED = 'attempt_expired', 'Attempt Expired'
        MANUAL_GRADE = 'manual_grade', 'Manual Grade Adjustment'

    actor = models.CharField(max_length=300, blank=True, help_text="Username or attempt identity")
    event_type = models.CharField(max_length=30, choices=EventType.choices, db_index=True)
    description = models.TextField()
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['actor', 'event_type']),
            models.Index(fields=['created_at', 'event_type']),
        ]

    def __str__(self):
        return f"{self.event_type} - {self.actor} - {self.created_at}"

    @classmethod
    def log(cls, event_type, description, request=None, actor='', metadata=None):
        ip_address = None
        user_agent = ''

        if request:
            ip_address = get_client_ip(request)
            user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]

            if not actor and hasattr(request, 'user') and request.user.is_authenticated:
                actor = request.user.get_username()

        return cls.objects.create(
            actor=actor or '',
            event_type=event_type,
            description=description,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata=metadata or {}
        )
