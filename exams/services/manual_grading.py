import logging
import math
from typing import Optional

from exams.clock import Clock, SystemClock
from exams.exceptions import Conflict, NotFound, ValidationError
from exams.grading import GradingEngine
from exams.repositories.base import AnswerRepository, AttemptRepository, DefinitionProvider

logger = logging.getLogger(__name__)


class ManualGradingOverride:
    """Grader-supplied points for a single answer, followed by an attempt recalculation."""

    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository, grading: GradingEngine, clock: Optional[Clock] = None):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers
        self.grading = grading
        self.clock = clock or SystemClock()

    def grade_manually(self, answer_id, points_earned, feedback: str = '') -> dict:
        answer = self.answers.get(answer_id)
        if answer is None:
            raise NotFound('answer', answer_id)

        with self.attempts.lock(answer.attempt_id):
            attempt = self.attempts.get(answer.attempt_id)
            if attempt is None:
                raise NotFound('attempt', answer.attempt_id)
            if not attempt.is_completed:
                raise Conflict("This attempt is still in progress and cannot be graded yet.")

            snapshot = self.definitions.get_version(attempt.version_id)
            question = snapshot.get_question(answer.question_id) if snapshot else None
            if question is None:
                raise NotFound('question', answer.question_id)

            points = self._validate_points(points_earned, question.points)
            # Binary on the manual path, even for partial-credit question types.
            is_correct = points == round(float(question.points), 2)

            old_points = answer.points_earned
            self.answers.save_grade(
                answer.id,
                is_correct=is_correct,
                points_earned=points,
                feedback=feedback or '',
                graded_at=self.clock.now(),
                manually_graded=True,
            )
            summary = self.grading.recalculate(attempt.id, manually_graded=True)

        logger.info("Manual grade on answer %s: %s -> %s (attempt %s now %s/%s)",
                    answer.id, old_points, points, attempt.id, summary.score, summary.max_score)
        return {
            'answer_id': answer.id,
            'attempt_id': attempt.id,
            'is_correct': is_correct,
            'points_earned': points,
            'previous_points': old_points,
            'feedback': feedback or '',
            'attempt_score': summary.score,
            'attempt_max_score': summary.max_score,
            'attempt_percentage': summary.percentage,
            'passed': summary.passed,
        }

    @staticmethod
    def _validate_points(points_earned, max_points) -> float:
        try:
            points = float(points_earned)
        except (TypeError, ValueError):
            raise ValidationError("Points must be a number.", field='points_earned')
        if not math.isfinite(points) or points < 0 or points > float(max_points):
            raise ValidationError(
                f"Points must be between 0 and {max_points}.",
                field='points_earned',
                max_points=float(max_points),
            )
        return round(points, 2)
