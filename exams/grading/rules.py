"""
Deterministic, rule-based grading for every question type.

Choice questions compare option ids against the options flagged correct at
authoring time; TEXT matches configured keywords; MATCHING and ORDERING award
proportional partial credit. Types that cannot be graded automatically come
back with ``is_correct=None`` and ``needs_review=True``.
"""
from typing import Any, Optional

from exams.choices import QuestionType
from exams.repositories.base import AnswerRecord
from exams.snapshot import QuestionSnapshot
from .base import GradingService, GradingResult


class RuleBasedGradingService(GradingService):

    def get_service_name(self) -> str:
        return "rule_based"

    def grade_answer(self, question: QuestionSnapshot, answer: AnswerRecord) -> GradingResult:
        """Route to the grading rule for the question type."""
        qtype = question.type

        if qtype in (QuestionType.RADIO, QuestionType.TRUE_FALSE):
            return self._grade_single_choice(question, answer)
        elif qtype == QuestionType.CHECKBOX:
            return self._grade_checkbox(question, answer)
        elif qtype == QuestionType.TEXT:
            return self._grade_text(question, answer)
        elif qtype == QuestionType.MATCHING:
            return self._grade_matching(question, answer)
        elif qtype == QuestionType.ORDERING:
            return self._grade_ordering(question, answer)

        return self._manual_review(question, "This question type requires manual grading.")

    # =========================================================================
    # RADIO / TRUE-FALSE
    # =========================================================================

    def _grade_single_choice(self, question, answer) -> GradingResult:
        selected = answer.selected_option_ids
        if not selected:
            return self._result(question, 0, False, "No option selected.")

        correct_option = next((o for o in question.options if o.is_correct), None)
        is_correct = correct_option is not None and set(selected) == {correct_option.id}

        if is_correct:
            feedback = question.feedback or "Correct answer."
        elif correct_option is not None:
            feedback = question.feedback or f"The correct answer is: {correct_option.text}"
        else:
            feedback = question.feedback or "Incorrect answer."

        return self._result(question, question.points if is_correct else 0, is_correct, feedback)

    # =========================================================================
    # CHECKBOX (partial credit)
    # =========================================================================

    def _grade_checkbox(self, question, answer) -> GradingResult:
        selected = set(answer.selected_option_ids)
        correct = question.correct_option_ids

        if not selected:
            return self._result(question, 0, False, "No option selected.")
        if not correct:
            return self._result(question, 0, False, question.feedback or "Incorrect answer.")

        correct_selected = len(selected & correct)
        incorrect_selected = len(selected - correct)
        missed = len(correct - selected)
        total_correct = len(correct)

        all_correct = correct_selected == total_correct and incorrect_selected == 0
        if all_correct:
            return self._result(question, question.points, True, question.feedback or "Correct answer.")

        partial = (correct_selected - incorrect_selected) / total_correct
        points = max(0.0, partial * question.points)
        return self._result(
            question, points, False,
            f"Partial credit: {correct_selected} correct, {incorrect_selected} incorrect, "
            f"{missed} not selected."
        )

    # =========================================================================
    # TEXT (keyword matching)
    # =========================================================================

    def _grade_text(self, question, answer) -> GradingResult:
        config = question.correct_answer if isinstance(question.correct_answer, dict) else {}
        raw_keywords = config.get('keywords')
        keywords = []
        if isinstance(raw_keywords, (list, tuple)):
            keywords = [self._normalize_text(k) for k in raw_keywords if self._normalize_text(k)]

        if not keywords:
            return self._manual_review(question, "This question requires manual grading.")

        exact = bool(config.get('exactMatch', config.get('exact_match', False)))
        student = self._normalize_text(answer.text_value)

        if exact:
            is_correct = any(student == keyword for keyword in keywords)
        else:
            is_correct = bool(student) and any(keyword in student for keyword in keywords)

        feedback = question.feedback or ("Correct answer." if is_correct else "Incorrect answer.")
        return self._result(question, question.points if is_correct else 0, is_correct, feedback)

    # =========================================================================
    # MATCHING
    # =========================================================================

    def _grade_matching(self, question, answer) -> GradingResult:
        correct_matches = self._extract(question.correct_answer, 'matches', dict) or {}
        student_matches = self._extract(answer.structured_value, 'matches', dict)

        if not correct_matches:
            return self._manual_review(question, "No correct matches configured; requires manual grading.")
        if not student_matches:
            return self._result(question, 0, False, "Incomplete answer.")

        total_pairs = len(correct_matches)
        correct_count = sum(
            1 for key, value in correct_matches.items()
            if str(key) in student_matches and student_matches[str(key)] == value
        )

        is_correct = correct_count == total_pairs
        points = (correct_count / total_pairs) * question.points
        feedback = (question.feedback or "All pairs are correct.") if is_correct \
            else f"{correct_count} of {total_pairs} pairs correct."
        return self._result(question, points, is_correct, feedback)

    # =========================================================================
    # ORDERING
    # =========================================================================

    def _grade_ordering(self, question, answer) -> GradingResult:
        correct_order = self._extract(question.correct_answer, 'order', list) or []
        student_order = self._extract(answer.structured_value, 'order', list)

        if not correct_order:
            return self._manual_review(question, "No correct order configured; requires manual grading.")
        if not student_order:
            return self._result(question, 0, False, "Incomplete answer.")
        if len(student_order) != len(correct_order):
            return self._result(question, 0, False, "Incomplete order.")

        # Position by position, not permutation distance.
        matching = sum(1 for expected, given in zip(correct_order, student_order) if expected == given)

        is_correct = matching == len(correct_order)
        points = (matching / len(correct_order)) * question.points
        feedback = (question.feedback or "Correct order.") if is_correct \
            else f"{matching} of {len(correct_order)} items in the correct position."
        return self._result(question, points, is_correct, feedback)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _result(self, question, points: float, is_correct: Optional[bool], feedback: str) -> GradingResult:
        max_points = float(question.points)
        bounded = round(min(max(float(points), 0.0), max_points), 2)
        return GradingResult(
            points_earned=bounded,
            max_points=max_points,
            is_correct=is_correct,
            feedback=feedback,
        )

    def _manual_review(self, question, feedback: str) -> GradingResult:
        return GradingResult(
            points_earned=0.0,
            max_points=float(question.points),
            is_correct=None,
            feedback=feedback,
            needs_review=True,
        )

    @staticmethod
    def _extract(payload: Any, key: str, expected_type: type):
        """Read ``payload[key]``; a bare value of the expected type is accepted too."""
        if isinstance(payload, dict) and key in payload:
            value = payload[key]
        else:
            value = payload
        return value if isinstance(value, expected_type) else None

    @staticmethod
    def _normalize_text(text) -> str:
        return str(text or '').strip().lower()
