"""
API Views for the exam attempt engine.

Public endpoints drive an attempt through its lifecycle (eligibility, start,
autosave, submit, result). Grader endpoints cover attempt listing, full
review, manual grading and exam statistics.
"""
import django_filters
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import (
    extend_schema, OpenApiParameter, OpenApiExample, OpenApiResponse
)

from exams.engine import get_engine
from exams.exceptions import NotFound, QuotaExceeded, TimeExpired
from exams.models import AuditLog, Exam, ExamAttempt
from exams.permissions import IsGraderOrAdmin
from exams.repositories.base import ClientMeta, Identity
from exams.services import AnswerPayload
from exams.throttling import AnswerSaveThrottle, AttemptStartThrottle, SubmissionRateThrottle, get_client_ip
from .serializers import (
    CanTakeQuerySerializer, ExamAttemptSerializer, ManualGradeSerializer,
    SaveAnswerSerializer, StartAttemptSerializer
)


def _identity(request, email):
    return Identity(email=email or None, ip_address=get_client_ip(request))


# =============================================================================
# PUBLIC ATTEMPT LIFECYCLE
# =============================================================================

@extend_schema(tags=['Attempts'])
class CanTakeExamView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Check attempt eligibility",
        description="""
Reports whether the caller may start another attempt.

The caller is identified by `email` when given, otherwise by client IP.
An open attempt, if any, is returned in `pending_attempt` so it can be resumed.
""",
        parameters=[
            OpenApiParameter(name='email', type=str, location='query', description='Test-taker email'),
        ],
        responses={
            200: OpenApiResponse(
                description="Eligibility",
                examples=[
                    OpenApiExample(
                        'Response Example',
                        value={
                            "can_take": True,
                            "attempts_used": 1,
                            "max_attempts": 3,
                            "attempts_remaining": 2,
                            "pending_attempt": None
                        }
                    )
                ]
            ),
            404: OpenApiResponse(description="Exam not found")
        }
    )
    def get(self, request, slug):
        query = CanTakeQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        identity = _identity(request, query.validated_data['email'])
        return Response(get_engine().attempts.check_can_take(slug, identity))


@extend_schema(tags=['Attempts'])
class StartAttemptView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [AttemptStartThrottle]

    @extend_schema(
        summary="Start exam attempt",
        description="""
Creates a new attempt against the exam's latest version.

Questions and options are shuffled per attempt when the exam enables it.
The returned exam version never contains correct answers.

**Errors:** `403` when the exam is unavailable or the attempt limit is reached.
""",
        request=StartAttemptSerializer,
        examples=[
            OpenApiExample(
                'Request Example',
                value={"name": "Ada Lovelace", "email": "ada@example.com"},
                request_only=True
            )
        ],
        responses={201: dict, 403: dict, 404: dict}
    )
    def post(self, request, slug):
        serializer = StartAttemptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        identity = _identity(request, data.get('email'))
        client = ClientMeta(name=data.get('name', ''), user_agent=request.META.get('HTTP_USER_AGENT', ''))

        try:
            handle = get_engine().attempts.start_attempt(slug, identity, client)
        except QuotaExceeded as exc:
            AuditLog.log(
                event_type=AuditLog.EventType.QUOTA_REJECTED,
                description=f"Attempt limit reached on {slug}",
                request=request,
                actor=identity.key,
                metadata={'exam_slug': slug, **exc.fields}
            )
            raise

        AuditLog.log(
            event_type=AuditLog.EventType.ATTEMPT_START,
            description=f"Started: {handle['exam']['title']} (Attempt {handle['attempt_number']})",
            request=request,
            actor=identity.key,
            metadata={'exam_id': handle['exam']['id'], 'attempt_id': handle['id']}
        )
        return Response(handle, status=status.HTTP_201_CREATED)


@extend_schema(tags=['Attempts'])
class AttemptDetailView(APIView):
    """Resume an open attempt in its original question order."""
    permission_classes = [AllowAny]

    @extend_schema(summary="Resume attempt", responses={200: dict, 404: dict, 409: dict})
    def get(self, request, attempt_id):
        return Response(get_engine().attempts.resume_attempt(attempt_id))


@extend_schema(tags=['Attempts'])
class SaveAnswerView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [AnswerSaveThrottle]

    @extend_schema(
        summary="Save answer",
        description="""
Creates or fully replaces the answer to one question.

Send only the field that fits the question type:
- `selected_option_ids` for RADIO, CHECKBOX and TRUE_FALSE
- `text_value` for TEXT and TEXTAREA
- `structured_value` for MATCHING (`{"matches": {...}}`) and ORDERING (`{"order": [...]}`)

**Errors:** `409` once the attempt is completed; `410` when the time limit has
passed, in which case the attempt is submitted automatically.
""",
        request=SaveAnswerSerializer,
        examples=[
            OpenApiExample(
                'Request Example',
                value={"question_id": 12, "selected_option_ids": [41, 43]},
                request_only=True
            )
        ],
        responses={200: dict, 400: dict, 404: dict, 409: dict, 410: dict}
    )
    def put(self, request, attempt_id):
        serializer = SaveAnswerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payload = AnswerPayload(
            text_value=data.get('text_value'),
            selected_option_ids=tuple(data.get('selected_option_ids') or ()),
            structured_value=data.get('structured_value'),
        )
        try:
            answer = get_engine().answers.save_answer(attempt_id, data['question_id'], payload)
        except TimeExpired as exc:
            AuditLog.log(
                event_type=AuditLog.EventType.ATTEMPT_EXPIRED,
                description=f"Attempt {attempt_id} expired and was submitted automatically",
                request=request,
                metadata={'attempt_id': attempt_id, 'deadline': exc.as_dict().get('deadline')}
            )
            raise

        return Response({
            'id': answer.id,
            'attempt_id': answer.attempt_id,
            'question_id': answer.question_id,
            'text_value': answer.text_value,
            'selected_option_ids': sorted(answer.selected_option_ids),
            'structured_value': answer.structured_value,
        })


@extend_schema(tags=['Attempts'])
class SubmitAttemptView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [SubmissionRateThrottle]

    @extend_schema(
        summary="Submit attempt",
        description="""
Completes the attempt. Exams flagged for auto-grading are graded immediately
and the score is returned; otherwise the attempt waits for a grader.

Submitting twice returns `409`.
""",
        request=None,
        responses={200: dict, 404: dict, 409: dict}
    )
    def post(self, request, attempt_id):
        outcome = get_engine().submissions.submit(attempt_id)

        AuditLog.log(
            event_type=AuditLog.EventType.ATTEMPT_SUBMIT,
            description=f"Submitted attempt {attempt_id}",
            request=request,
            metadata={
                'attempt_id': attempt_id,
                'auto_graded': outcome.auto_graded,
                'score': outcome.score,
                'time_spent': outcome.time_spent,
            }
        )
        return Response(outcome.as_dict())


@extend_schema(tags=['Results'])
class AttemptResultView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get attempt result",
        description="Result of a completed attempt, subject to the exam's results policy.",
        responses={200: dict, 404: dict, 409: dict}
    )
    def get(self, request, attempt_id):
        return Response(get_engine().results.get_result(attempt_id))


# =============================================================================
# GRADER ENDPOINTS
# =============================================================================

class ExamAttemptFilter(django_filters.FilterSet):
    completed = django_filters.BooleanFilter(field_name='completed_at', lookup_expr='isnull', exclude=True)
    passed = django_filters.BooleanFilter()
    student_email = django_filters.CharFilter(lookup_expr='icontains')
    started_after = django_filters.IsoDateTimeFilter(field_name='started_at', lookup_expr='gte')
    started_before = django_filters.IsoDateTimeFilter(field_name='started_at', lookup_expr='lte')

    class Meta:
        model = ExamAttempt
        fields = ['completed', 'passed', 'student_email', 'auto_graded', 'manually_graded']


@extend_schema(
    tags=['Grading'],
    summary="List exam attempts",
    description="All attempts of an exam. Filter with `completed`, `passed`, `student_email` and date bounds."
)
class ExamAttemptListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsGraderOrAdmin]
    serializer_class = ExamAttemptSerializer
    filterset_class = ExamAttemptFilter
    search_fields = ['student_name', 'student_email', 'identity_key']
    ordering_fields = ['started_at', 'completed_at', 'score', 'attempt_number']
    ordering = ['-started_at']

    def get_queryset(self):
        exam_id = self.kwargs['exam_id']
        if not Exam.objects.filter(pk=exam_id).exists():
            raise NotFound('exam', exam_id)
        return ExamAttempt.objects.filter(exam_id=exam_id).select_related('exam_version')


@extend_schema(tags=['Grading'])
class AttemptReviewView(APIView):
    permission_classes = [IsAuthenticated, IsGraderOrAdmin]

    @extend_schema(
        summary="Review attempt",
        description="Full answer breakdown with correct answers and answer ids, regardless of results policy.",
        responses={200: dict, 404: dict}
    )
    def get(self, request, exam_id, attempt_id):
        review = get_engine().results.get_attempt_review(attempt_id)
        if review['exam']['id'] != exam_id:
            raise NotFound('attempt', attempt_id)
        return Response(review)


@extend_schema(tags=['Grading'])
class ManualGradeView(APIView):
    """Manual grade adjustment."""
    permission_classes = [IsAuthenticated, IsGraderOrAdmin]

    @extend_schema(
        summary="Grade answer manually",
        description="""
Sets the points for one answer of a completed attempt and recalculates the
attempt score. `points_earned` must lie between 0 and the question's points.
""",
        request=ManualGradeSerializer,
        examples=[
            OpenApiExample(
                'Request Example',
                value={"points_earned": 4, "feedback": "Good structure, missing one example."},
                request_only=True
            )
        ],
        responses={200: dict, 400: dict, 404: dict, 409: dict}
    )
    def put(self, request, answer_id):
        serializer = ManualGradeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_engine().manual_grading.grade_manually(
            answer_id,
            serializer.validated_data['points_earned'],
            serializer.validated_data.get('feedback', ''),
        )

        AuditLog.log(
            event_type=AuditLog.EventType.MANUAL_GRADE,
            description=f"Manual grade adjustment: {result['previous_points']} -> {result['points_earned']}",
            request=request,
            metadata={'answer_id': result['answer_id'], 'attempt_id': result['attempt_id']}
        )
        return Response(result)


@extend_schema(tags=['Grading'])
class ExamStatsView(APIView):
    permission_classes = [IsAuthenticated, IsGraderOrAdmin]

    @extend_schema(
        summary="Exam statistics",
        description="Score distribution, pass rate and per-question performance over completed attempts.",
        responses={
            200: OpenApiResponse(
                description="Statistics",
                examples=[
                    OpenApiExample(
                        'Response Example',
                        value={
                            "total_attempts": 4,
                            "average_score": 7.5,
                            "median_score": 8.0,
                            "std_deviation": 1.66,
                            "highest_score": 9.0,
                            "lowest_score": 5.0,
                            "pass_count": 3,
                            "pass_rate": 75.0,
                            "question_stats": [
                                {
                                    "question_id": 12,
                                    "question_text": "Pick the prime numbers",
                                    "question_type": "CHECKBOX",
                                    "total_answers": 4,
                                    "correct_answers": 2,
                                    "pending_review": 0,
                                    "average_points": 1.5,
                                    "correct_rate": 50.0
                                }
                            ]
                        }
                    )
                ]
            ),
            404: OpenApiResponse(description="Exam not found")
        }
    )
    def get(self, request, exam_id):
        return Response(get_engine().stats.exam_stats(exam_id))
