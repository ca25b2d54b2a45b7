from django.urls import path
from .api.views import (
    # Public attempt lifecycle
    CanTakeExamView, StartAttemptView, AttemptDetailView,
    SaveAnswerView, SubmitAttemptView, AttemptResultView,
    # Grading
    ExamAttemptListView, AttemptReviewView, ManualGradeView, ExamStatsView,
)

urlpatterns = [
    # ============================================
    # PUBLIC ATTEMPT LIFECYCLE
    # ============================================
    path('public/<slug:slug>/can-take/', CanTakeExamView.as_view(), name='exam-can-take'),
    path('public/<slug:slug>/start/', StartAttemptView.as_view(), name='exam-start'),
    path('attempts/<int:attempt_id>/', AttemptDetailView.as_view(), name='attempt-detail'),
    path('attempts/<int:attempt_id>/answer/', SaveAnswerView.as_view(), name='attempt-answer'),
    path('attempts/<int:attempt_id>/submit/', SubmitAttemptView.as_view(), name='attempt-submit'),
    path('attempts/<int:attempt_id>/result/', AttemptResultView.as_view(), name='attempt-result'),

    # ============================================
    # GRADING
    # ============================================
    path('exams/<int:exam_id>/attempts/', ExamAttemptListView.as_view(), name='exam-attempts'),
    path('exams/<int:exam_id>/attempts/<int:attempt_id>/', AttemptReviewView.as_view(), name='exam-attempt-review'),
    path('answers/<int:answer_id>/grade/', ManualGradeView.as_view(), name='answer-grade'),
    path('exams/<int:exam_id>/stats/', ExamStatsView.as_view(), name='exam-stats'),
]
