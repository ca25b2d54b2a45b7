import logging
from dataclasses import dataclass
from typing import Optional

from exams.clock import Clock, SystemClock
from exams.exceptions import Conflict, NotFound
from exams.grading import GradingEngine
from exams.repositories.base import AttemptRepository, DefinitionProvider

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    attempt_id: int
    auto_graded: bool
    time_spent: int
    forced: bool = False
    score: Optional[float] = None
    max_score: Optional[float] = None
    passed: Optional[bool] = None
    percentage: Optional[float] = None

    def as_dict(self):
        data = {
            'attempt_id': self.attempt_id,
            'completed': True,
            'auto_graded': self.auto_graded,
            'time_spent': self.time_spent,
        }
        if self.auto_graded:
            data.update({
                'score': self.score,
                'max_score': self.max_score,
                'passed': self.passed,
                'percentage': self.percentage,
            })
        else:
            data['message'] = 'Your exam has been submitted and will be graded manually.'
        return data


class SubmissionController:
    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 grading: GradingEngine, clock: Optional[Clock] = None):
        self.definitions = definitions
        self.attempts = attempts
        self.grading = grading
        self.clock = clock or SystemClock()

    def submit(self, attempt_id, forced: bool = False) -> SubmissionOutcome:
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound('attempt', attempt_id)
        if attempt.is_completed:
            raise Conflict()

        exam = self.definitions.get_exam_meta(attempt.exam_id)
        if exam is None:
            raise NotFound('exam', attempt.exam_id)

        now = self.clock.now()
        time_spent = max(0, int((now - attempt.started_at).total_seconds()))

        # Completion and grading commit together; a failed grade leaves the attempt open.
        with self.attempts.lock(attempt_id):
            # Compare-and-set on completed_at: only one concurrent submit gets past here.
            if not self.attempts.mark_completed(attempt_id, now, time_spent):
                raise Conflict()
            summary = self.grading.grade_attempt(attempt_id) if exam.auto_grade else None

        logger.info("Attempt %s submitted after %ss%s", attempt_id, time_spent, " (forced)" if forced else "")

        if summary is None:
            return SubmissionOutcome(attempt_id=attempt_id, auto_graded=False,
                                     time_spent=time_spent, forced=forced)

        return SubmissionOutcome(
            attempt_id=attempt_id,
            auto_graded=True,
            time_spent=time_spent,
            forced=forced,
            score=summary.score,
            max_score=summary.max_score,
            passed=summary.passed,
            percentage=summary.percentage,
        )
