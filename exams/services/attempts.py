"""
Attempt lifecycle: eligibility checks, creation against a frozen exam
version with per-attempt randomization, and resuming an open attempt.
"""
import logging
import random
from typing import Optional

from exams.clock import Clock, SystemClock, deadline_for
from exams.exceptions import Conflict, Forbidden, NotFound
from exams.repositories.base import (
    AnswerRepository, AttemptRecord, AttemptRepository, ClientMeta, DefinitionProvider, Identity
)
from exams.snapshot import apply_layout, layout_of, randomize, sanitize

logger = logging.getLogger(__name__)


class AttemptManager:
    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository, clock: Optional[Clock] = None,
                 rng: Optional[random.Random] = None):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers
        self.clock = clock or SystemClock()
        self.rng = rng or random.SystemRandom()

    def check_can_take(self, exam_slug: str, identity: Identity) -> dict:
        exam = self._require_exam(exam_slug)
        if not exam.is_available:
            return {'can_take': False, 'reason': 'This exam is not available.'}

        history = self.attempts.list_for_identity(exam.id, identity.key)
        used = len(history)
        pending = next((a for a in history if not a.is_completed), None)

        result = {
            'can_take': used < exam.max_attempts,
            'attempts_used': used,
            'max_attempts': exam.max_attempts,
            'attempts_remaining': max(0, exam.max_attempts - used),
            'pending_attempt': self._pending_summary(pending),
        }
        if not result['can_take']:
            result['reason'] = f"You have reached the limit of {exam.max_attempts} attempt(s)."
        return result

    def start_attempt(self, exam_slug: str, identity: Identity, client: Optional[ClientMeta] = None) -> dict:
        exam = self._require_exam(exam_slug)
        if not exam.is_available:
            raise Forbidden()

        snapshot = self.definitions.get_latest_version(exam.id)
        if snapshot is None:
            raise NotFound('exam version', exam.slug, message="This exam has no published version.")

        presented = randomize(
            snapshot, self.rng,
            shuffle_questions=exam.shuffle_questions,
            shuffle_options=exam.shuffle_options,
        )
        attempt = self.attempts.create_within_quota(
            exam_id=exam.id,
            version_id=snapshot.version_id,
            identity=identity,
            client=client or ClientMeta(),
            max_attempts=exam.max_attempts,
            max_score=snapshot.total_points,
            layout=layout_of(presented),
            started_at=self.clock.now(),
        )
        logger.info("Started attempt %s (#%s) on exam %s for %s",
                    attempt.id, attempt.attempt_number, exam.slug, attempt.identity_key)
        return self._handle(attempt, exam, presented)

    def resume_attempt(self, attempt_id) -> dict:
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound('attempt', attempt_id)
        if attempt.is_completed:
            raise Conflict()

        exam = self.definitions.get_exam_meta(attempt.exam_id)
        snapshot = self.definitions.get_version(attempt.version_id)
        if exam is None or snapshot is None:
            raise NotFound('exam', attempt.exam_id)

        handle = self._handle(attempt, exam, apply_layout(snapshot, attempt.layout))
        handle['answers'] = [
            {
                'question_id': answer.question_id,
                'text_value': answer.text_value,
                'selected_option_ids': sorted(answer.selected_option_ids),
                'structured_value': answer.structured_value,
            }
            for answer in self.answers.list_for_attempt(attempt.id)
        ]
        return handle

    def _handle(self, attempt: AttemptRecord, exam, presented) -> dict:
        deadline = deadline_for(attempt.started_at, exam.time_limit)
        time_remaining = None
        if deadline is not None:
            time_remaining = max(0, int((deadline - self.clock.now()).total_seconds()))

        return {
            'id': attempt.id,
            'attempt_number': attempt.attempt_number,
            'student_name': attempt.student_name,
            'student_email': attempt.student_email,
            'started_at': attempt.started_at,
            'time_limit': exam.time_limit,
            'deadline': deadline,
            'time_remaining': time_remaining,
            'max_score': attempt.max_score,
            'exam': {
                'id': exam.id,
                'title': exam.title,
                'description': exam.description,
                'slug': exam.slug,
                'time_limit': exam.time_limit,
                'shuffle_questions': exam.shuffle_questions,
                'shuffle_options': exam.shuffle_options,
            },
            'exam_version': sanitize(presented),
        }

    def _require_exam(self, exam_slug: str):
        exam = self.definitions.get_exam_by_slug(exam_slug)
        if exam is None:
            raise NotFound('exam', exam_slug)
        return exam

    @staticmethod
    def _pending_summary(attempt: Optional[AttemptRecord]):
        if attempt is None:
            return None
        return {
            'id': attempt.id,
            'started_at': attempt.started_at,
            'attempt_number': attempt.attempt_number,
        }
