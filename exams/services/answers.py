import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from exams.choices import CHOICE_TYPES, SINGLE_CHOICE_TYPES, QuestionType
from exams.clock import Clock, SystemClock, deadline_for, is_past_deadline
from exams.exceptions import Conflict, NotFound, TimeExpired, ValidationError
from exams.repositories.base import AnswerRecord, AnswerRepository, AttemptRepository, DefinitionProvider
from .submission import SubmissionController

logger = logging.getLogger(__name__)

# Accepted shapes: {key: value} or the bare value.
STRUCTURED_SHAPES = {
    QuestionType.MATCHING: ('matches', dict),
    QuestionType.ORDERING: ('order', list),
}


@dataclass(frozen=True)
class AnswerPayload:
    text_value: Optional[str] = None
    selected_option_ids: Tuple[int, ...] = ()
    structured_value: Any = None


class AnswerStore:
    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository, submissions: SubmissionController,
                 clock: Optional[Clock] = None):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers
        self.submissions = submissions
        self.clock = clock or SystemClock()

    def save_answer(self, attempt_id, question_id, payload: AnswerPayload) -> AnswerRecord:
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound('attempt', attempt_id)
        if attempt.is_completed:
            raise Conflict()

        exam = self.definitions.get_exam_meta(attempt.exam_id)
        if exam is None:
            raise NotFound('exam', attempt.exam_id)

        if is_past_deadline(attempt.started_at, exam.time_limit, self.clock.now()):
            self._force_submit(attempt_id)
            raise TimeExpired(attempt_id, deadline_for(attempt.started_at, exam.time_limit))

        snapshot = self.definitions.get_version(attempt.version_id)
        question = snapshot.get_question(question_id) if snapshot else None
        if question is None:
            raise NotFound('question', question_id)

        selected = tuple(dict.fromkeys(payload.selected_option_ids or ()))
        if selected:
            if question.type not in CHOICE_TYPES:
                raise ValidationError("This question does not take option selections.",
                                      field='selected_option_ids')
            unknown = [option_id for option_id in selected if option_id not in question.option_ids]
            if unknown:
                raise ValidationError(f"Options {unknown} do not belong to question {question_id}.",
                                      field='selected_option_ids')
            if question.type in SINGLE_CHOICE_TYPES and len(selected) > 1:
                raise ValidationError("Only one option can be selected for this question.",
                                      field='selected_option_ids')

        if payload.structured_value is not None and question.type in STRUCTURED_SHAPES:
            self._check_structured(question, payload.structured_value)

        # Full replacement of every answer field, never a merge.
        return self.answers.upsert(
            attempt_id,
            question_id,
            text_value=payload.text_value or None,
            selected_option_ids=selected,
            structured_value=payload.structured_value,
        )

    @staticmethod
    def _check_structured(question, value):
        key, expected_type = STRUCTURED_SHAPES[question.type]
        if isinstance(value, dict) and key in value:
            value = value[key]
        if not isinstance(value, expected_type):
            raise ValidationError(
                f"{QuestionType(question.type).label} answers must be a {expected_type.__name__} or {{'{key}': ...}}.",
                field='structured_value',
            )

    def _force_submit(self, attempt_id):
        try:
            self.submissions.submit(attempt_id, forced=True)
        except Conflict:
            # Another request already completed the attempt.
            logger.info("Attempt %s expired but was already submitted", attempt_id)
        else:
            logger.warning("Attempt %s expired; forced submission", attempt_id)
