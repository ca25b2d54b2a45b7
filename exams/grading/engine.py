import logging
from typing import Optional

from exams.clock import Clock, SystemClock
from exams.exceptions import NotFound
from exams.repositories.base import AnswerRepository, AttemptRepository, DefinitionProvider
from .base import GradingResult, GradingService, ScoreSummary
from .rules import RuleBasedGradingService

logger = logging.getLogger(__name__)


def percentage_of(score: float, max_score: float) -> float:
    if not max_score:
        return 0.0
    return round(score / max_score * 100, 2)


def is_passing(score: float, max_score: float, passing_score: float) -> bool:
    """``passing_score`` is a percentage of the attempt's maximum score.

    Compared on the exact ratio; ``percentage_of`` rounds for display only.
    """
    if not max_score:
        return float(passing_score) <= 0
    return float(score) * 100 >= float(passing_score) * float(max_score)


class GradingEngine:
    """Grades whole attempts and keeps ``attempt.score`` equal to the sum of its answers."""

    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository, grader: Optional[GradingService] = None,
                 clock: Optional[Clock] = None):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers
        self.grader = grader or RuleBasedGradingService()
        self.clock = clock or SystemClock()

    def grade_attempt(self, attempt_id) -> ScoreSummary:
        with self.attempts.lock(attempt_id):
            attempt = self._require_attempt(attempt_id)
            # Always the version frozen at start time, never the exam's current one.
            snapshot = self.definitions.get_version(attempt.version_id)
            if snapshot is None:
                raise NotFound('exam version', attempt.version_id)

            graded_at = self.clock.now()
            pending_review = 0
            for answer in self.answers.list_for_attempt(attempt_id):
                question = snapshot.get_question(answer.question_id)
                if question is None:
                    result = GradingResult(0.0, 0.0, None, "Question is not part of this exam version.",
                                           needs_review=True)
                else:
                    result = self.grader.grade_answer(question, answer)
                pending_review += int(result.needs_review)
                self.answers.save_grade(
                    answer.id,
                    is_correct=result.is_correct,
                    points_earned=result.points_earned,
                    feedback=result.feedback,
                    graded_at=graded_at,
                )

            summary = self._store_total(attempt, auto_graded=True)

        logger.info(
            "Graded attempt %s with %s: %s/%s (passed=%s, pending review=%s)",
            attempt_id, self.grader.get_service_name(), summary.score, summary.max_score,
            summary.passed, pending_review
        )
        return summary

    def recalculate(self, attempt_id, manually_graded: bool = False) -> ScoreSummary:
        """Re-sum stored answer points; callers hold ``attempts.lock`` when writing answers first."""
        attempt = self._require_attempt(attempt_id)
        return self._store_total(attempt, manually_graded=manually_graded or None)

    def _store_total(self, attempt, auto_graded=None, manually_graded=None) -> ScoreSummary:
        answers = self.answers.list_for_attempt(attempt.id)
        score = round(sum(a.points_earned or 0 for a in answers), 2)
        meta = self.definitions.get_exam_meta(attempt.exam_id)
        if meta is None:
            raise NotFound('exam', attempt.exam_id)

        passed = is_passing(score, attempt.max_score, meta.passing_score)
        self.attempts.update_score(
            attempt.id,
            score=score,
            passed=passed,
            auto_graded=auto_graded,
            manually_graded=manually_graded,
        )
        return ScoreSummary(
            score=score,
            max_score=attempt.max_score,
            passed=passed,
            percentage=percentage_of(score, attempt.max_score),
        )

    def _require_attempt(self, attempt_id):
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound('attempt', attempt_id)
        return attempt
