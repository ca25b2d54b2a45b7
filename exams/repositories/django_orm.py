"""
Django ORM implementations of the engine's storage interfaces.
"""
import logging
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Prefetch

from exams.exceptions import Conflict, NotFound, QuotaExceeded
from exams.models import Exam, ExamAnswer, ExamAttempt, ExamQuestion, ExamSection, ExamVersion
from exams.snapshot import (
    ExamDefinitionSnapshot, ExamMeta, OptionSnapshot, QuestionSnapshot, SectionSnapshot
)
from .base import AnswerRecord, AnswerRepository, AttemptRecord, AttemptRepository, DefinitionProvider

logger = logging.getLogger(__name__)


def _float(value):
    return float(value) if value is not None else None


class DjangoDefinitionProvider(DefinitionProvider):
    """Exam settings are read fresh; frozen versions are cached since they never change."""

    def __init__(self, cache_timeout=None):
        if cache_timeout is None:
            cache_timeout = settings.EXAM_ENGINE.get('SNAPSHOT_CACHE_TIMEOUT', 300)
        self.cache_timeout = cache_timeout

    def get_exam_by_slug(self, slug):
        exam = Exam.objects.filter(slug=slug).first()
        return self._to_meta(exam) if exam else None

    def get_exam_meta(self, exam_id):
        exam = Exam.objects.filter(pk=exam_id).first()
        return self._to_meta(exam) if exam else None

    def get_latest_version(self, exam_id):
        version_id = (
            ExamVersion.objects.filter(exam_id=exam_id)
            .order_by('-version')
            .values_list('id', flat=True)
            .first()
        )
        return self.get_version(version_id) if version_id else None

    def get_version(self, version_id):
        cache_key = f"exams:version-snapshot:{version_id}"
        snapshot = cache.get(cache_key)
        if snapshot is None:
            snapshot = self._build_snapshot(version_id)
            if snapshot is not None and self.cache_timeout:
                cache.set(cache_key, snapshot, self.cache_timeout)
        return snapshot

    def _build_snapshot(self, version_id):
        version = (
            ExamVersion.objects.filter(pk=version_id)
            .prefetch_related(
                Prefetch('sections', queryset=ExamSection.objects.order_by('order', 'id')),
                Prefetch('sections__questions', queryset=ExamQuestion.objects.order_by('order', 'id')),
                'sections__questions__options',
            )
            .first()
        )
        if version is None:
            return None

        sections = []
        for section in version.sections.all():
            questions = tuple(
                QuestionSnapshot(
                    id=question.id,
                    type=question.type,
                    text=question.text,
                    help_text=question.help_text,
                    points=float(question.points),
                    order=question.order,
                    options=tuple(
                        OptionSnapshot(id=o.id, text=o.text, order=o.order, is_correct=o.is_correct)
                        for o in question.options.all()
                    ),
                    correct_answer=question.correct_answer,
                    feedback=question.feedback,
                )
                for question in section.questions.all()
            )
            sections.append(SectionSnapshot(
                id=section.id,
                title=section.title,
                description=section.description,
                order=section.order,
                questions=questions,
            ))

        return ExamDefinitionSnapshot(
            exam_id=version.exam_id,
            version_id=version.id,
            version=version.version,
            total_points=float(version.total_points),
            sections=tuple(sections),
        )

    @staticmethod
    def _to_meta(exam):
        return ExamMeta(
            id=exam.id,
            slug=exam.slug,
            title=exam.title,
            description=exam.description,
            is_active=exam.is_active,
            is_public=exam.is_public,
            max_attempts=exam.max_attempts,
            time_limit=exam.time_limit,
            passing_score=float(exam.passing_score),
            auto_grade=exam.auto_grade,
            shuffle_questions=exam.shuffle_questions,
            shuffle_options=exam.shuffle_options,
            show_results=exam.show_results,
            allow_review=exam.allow_review,
        )


class DjangoAttemptRepository(AttemptRepository):

    def get(self, attempt_id):
        attempt = ExamAttempt.objects.filter(pk=attempt_id).first()
        return self._to_record(attempt) if attempt else None

    def list_for_identity(self, exam_id, identity_key):
        queryset = ExamAttempt.objects.filter(exam_id=exam_id, identity_key=identity_key).order_by('-started_at', '-id')
        return [self._to_record(a) for a in queryset]

    def list_for_exam(self, exam_id, completed_only=False):
        queryset = ExamAttempt.objects.filter(exam_id=exam_id)
        if completed_only:
            queryset = queryset.filter(completed_at__isnull=False)
        return [self._to_record(a) for a in queryset.order_by('-started_at', '-id')]

    def create_within_quota(self, *, exam_id, version_id, identity, client, max_attempts,
                            max_score, layout, started_at):
        identity_key = identity.key
        with transaction.atomic():
            # Row lock on the exam serializes concurrent starts; the unique
            # constraint on (exam, identity_key, attempt_number) backs it up.
            if not Exam.objects.select_for_update().filter(pk=exam_id).exists():
                raise NotFound('exam', exam_id)

            used = ExamAttempt.objects.filter(exam_id=exam_id, identity_key=identity_key).count()
            if used >= max_attempts:
                raise QuotaExceeded(max_attempts=max_attempts, attempts_used=used)

            try:
                with transaction.atomic():
                    attempt = ExamAttempt.objects.create(
                        exam_id=exam_id,
                        exam_version_id=version_id,
                        attempt_number=used + 1,
                        identity_key=identity_key,
                        student_name=(client.name or '')[:200],
                        student_email=identity.email or None,
                        ip_address=identity.ip_address or None,
                        user_agent=(client.user_agent or '')[:500],
                        started_at=started_at,
                        max_score=max_score,
                        layout=layout,
                    )
            except IntegrityError:
                logger.warning("Concurrent attempt start for %s on exam %s", identity_key, exam_id)
                raise Conflict("Another attempt was started at the same time; please retry.")

        return self._to_record(attempt)

    def mark_completed(self, attempt_id, completed_at, time_spent):
        updated = ExamAttempt.objects.filter(pk=attempt_id, completed_at__isnull=True).update(
            completed_at=completed_at,
            time_spent=time_spent,
        )
        return updated == 1

    def update_score(self, attempt_id, *, score, passed, auto_graded=None, manually_graded=None):
        fields = {'score': score, 'passed': passed}
        if auto_graded is not None:
            fields['auto_graded'] = auto_graded
        if manually_graded is not None:
            fields['manually_graded'] = manually_graded
        ExamAttempt.objects.filter(pk=attempt_id).update(**fields)

    @contextmanager
    def lock(self, attempt_id):
        with transaction.atomic():
            list(ExamAttempt.objects.select_for_update().filter(pk=attempt_id).values_list('id', flat=True))
            yield

    @staticmethod
    def _to_record(attempt):
        return AttemptRecord(
            id=attempt.id,
            exam_id=attempt.exam_id,
            version_id=attempt.exam_version_id,
            attempt_number=attempt.attempt_number,
            identity_key=attempt.identity_key,
            started_at=attempt.started_at,
            max_score=float(attempt.max_score),
            student_name=attempt.student_name,
            student_email=attempt.student_email,
            ip_address=attempt.ip_address,
            user_agent=attempt.user_agent,
            completed_at=attempt.completed_at,
            time_spent=attempt.time_spent,
            score=_float(attempt.score),
            passed=attempt.passed,
            auto_graded=attempt.auto_graded,
            manually_graded=attempt.manually_graded,
            layout=attempt.layout or {},
        )


class DjangoAnswerRepository(AnswerRepository):

    def get(self, answer_id):
        answer = ExamAnswer.objects.filter(pk=answer_id).first()
        return self._to_record(answer) if answer else None

    def list_for_attempt(self, attempt_id):
        return [self._to_record(a) for a in ExamAnswer.objects.filter(attempt_id=attempt_id).order_by('id')]

    def list_for_attempts(self, attempt_ids):
        queryset = ExamAnswer.objects.filter(attempt_id__in=list(attempt_ids)).order_by('question_id', 'id')
        return [self._to_record(a) for a in queryset]

    def upsert(self, attempt_id, question_id, *, text_value, selected_option_ids, structured_value):
        with transaction.atomic():
            attempt = ExamAttempt.objects.select_for_update().filter(pk=attempt_id).first()
            if attempt is None:
                raise NotFound('attempt', attempt_id)
            if attempt.completed_at is not None:
                raise Conflict()

            answer, _ = ExamAnswer.objects.update_or_create(
                attempt_id=attempt_id,
                question_id=question_id,
                defaults={
                    'text_value': text_value,
                    'selected_option_ids': list(selected_option_ids),
                    'structured_value': structured_value,
                }
            )
        return self._to_record(answer)

    def save_grade(self, answer_id, *, is_correct, points_earned, feedback, graded_at, manually_graded=False):
        ExamAnswer.objects.filter(pk=answer_id).update(
            is_correct=is_correct,
            points_earned=points_earned,
            feedback=feedback,
            graded_at=graded_at,
            manually_graded=manually_graded,
        )

    @staticmethod
    def _to_record(answer):
        return AnswerRecord(
            id=answer.id,
            attempt_id=answer.attempt_id,
            question_id=answer.question_id,
            text_value=answer.text_value,
            selected_option_ids=frozenset(answer.selected_option_ids or ()),
            structured_value=answer.structured_value,
            is_correct=answer.is_correct,
            points_earned=float(answer.points_earned or 0),
            feedback=answer.feedback,
            manually_graded=answer.manually_graded,
        )
