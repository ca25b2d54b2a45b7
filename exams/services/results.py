"""
Result views for completed attempts, gated by the exam's results policy.
"""
from typing import Optional

from exams.choices import ResultsVisibility
from exams.exceptions import Conflict, NotFound
from exams.grading import percentage_of
from exams.repositories.base import AnswerRepository, AttemptRepository, DefinitionProvider
from exams.snapshot import apply_layout


class ResultsService:
    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers

    def get_result(self, attempt_id) -> dict:
        attempt, exam = self._load(attempt_id)
        if not attempt.is_completed:
            raise Conflict("This attempt has not been completed yet.")

        if exam.show_results == ResultsVisibility.NEVER:
            return self._withheld(attempt, "Results are not available for this exam.")

        if exam.show_results == ResultsVisibility.MANUAL and not (attempt.auto_graded or attempt.manually_graded):
            return self._withheld(attempt, "Results will be available once the instructor releases them.")

        # AFTER_DEADLINE has no behaviour of its own yet and is served like IMMEDIATE.
        result = self._summary(attempt, exam)
        if exam.allow_review:
            result['sections'] = self._review(attempt, include_answer_ids=False)
        return result

    def get_attempt_review(self, attempt_id) -> dict:
        """Full review for graders, regardless of the results policy."""
        attempt, exam = self._load(attempt_id)
        result = self._summary(attempt, exam)
        result.update({
            'identity_key': attempt.identity_key,
            'ip_address': attempt.ip_address,
            'manually_graded': attempt.manually_graded,
            'sections': self._review(attempt, include_answer_ids=True),
        })
        return result

    def _load(self, attempt_id):
        attempt = self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFound('attempt', attempt_id)
        exam = self.definitions.get_exam_meta(attempt.exam_id)
        if exam is None:
            raise NotFound('exam', attempt.exam_id)
        return attempt, exam

    @staticmethod
    def _withheld(attempt, message):
        return {'attempt_id': attempt.id, 'available': False, 'message': message}

    def _summary(self, attempt, exam) -> dict:
        score = attempt.score or 0
        return {
            'attempt_id': attempt.id,
            'available': True,
            'attempt_number': attempt.attempt_number,
            'student_name': attempt.student_name,
            'student_email': attempt.student_email,
            'started_at': attempt.started_at,
            'completed_at': attempt.completed_at,
            'time_spent': attempt.time_spent,
            'score': attempt.score,
            'max_score': attempt.max_score,
            'percentage': percentage_of(score, attempt.max_score),
            'passed': attempt.passed,
            'passing_score': exam.passing_score,
            'auto_graded': attempt.auto_graded,
            'exam': {
                'id': exam.id,
                'title': exam.title,
                'show_results': str(exam.show_results),
                'allow_review': exam.allow_review,
            },
            'sections': [],
        }

    def _review(self, attempt, include_answer_ids: bool) -> list:
        snapshot = self.definitions.get_version(attempt.version_id)
        if snapshot is None:
            return []
        snapshot = apply_layout(snapshot, attempt.layout)
        by_question = {a.question_id: a for a in self.answers.list_for_attempt(attempt.id)}

        sections = []
        for section in snapshot.sections:
            questions = []
            for question in section.questions:
                answer = by_question.get(question.id)
                options = {o.id: o for o in question.options}
                entry = {
                    'question_id': question.id,
                    'text': question.text,
                    'type': str(question.type),
                    'points': question.points,
                    'points_earned': answer.points_earned if answer else 0,
                    'is_correct': answer.is_correct if answer else None,
                    'feedback': answer.feedback if answer else None,
                    'student_answer': self._student_answer(answer, options),
                    'correct_options': [
                        {'id': o.id, 'text': o.text} for o in question.options if o.is_correct
                    ],
                    'correct_answer': question.correct_answer,
                }
                if include_answer_ids:
                    entry['answer_id'] = answer.id if answer else None
                    entry['needs_review'] = answer is not None and answer.is_correct is None
                    entry['manually_graded'] = answer.manually_graded if answer else False
                questions.append(entry)
            sections.append({
                'id': section.id,
                'title': section.title,
                'description': section.description,
                'questions': questions,
            })
        return sections

    @staticmethod
    def _student_answer(answer, options: dict) -> Optional[dict]:
        if answer is None:
            return None
        return {
            'text_value': answer.text_value,
            'selected_options': [
                {'id': option_id, 'text': options[option_id].text if option_id in options else None}
                for option_id in sorted(answer.selected_option_ids)
            ],
            'structured_value': answer.structured_value,
        }
