from rest_framework import serializers

from exams.models import ExamAttempt


class StartAttemptSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True, default=None)


class CanTakeQuerySerializer(serializers.Serializer):
    email = serializers.EmailField(required=False, allow_blank=True, default='')


class SaveAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField(min_value=1)
    text_value = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None,
                                       trim_whitespace=False)
    selected_option_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list
    )
    structured_value = serializers.JSONField(required=False, allow_null=True, default=None)


class ManualGradeSerializer(serializers.Serializer):
    points_earned = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0)
    feedback = serializers.CharField(required=False, allow_blank=True, default='')


class ExamAttemptSerializer(serializers.ModelSerializer):
    is_completed = serializers.BooleanField(read_only=True)
    version = serializers.IntegerField(source='exam_version.version', read_only=True)

    class Meta:
        model = ExamAttempt
        fields = [
            'id', 'exam', 'version', 'attempt_number', 'identity_key', 'student_name',
            'student_email', 'ip_address', 'started_at', 'completed_at', 'time_spent',
            'score', 'max_score', 'passed', 'auto_graded', 'manually_graded', 'is_completed'
        ]
        read_only_fields = fields
