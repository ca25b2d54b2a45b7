"""
Exam Statistics Service.
Aggregates scores and per-question performance over completed attempts.
"""
from collections import OrderedDict

import numpy as np

from exams.exceptions import NotFound
from exams.repositories.base import AnswerRepository, AttemptRepository, DefinitionProvider


class StatsAggregator:
    def __init__(self, definitions: DefinitionProvider, attempts: AttemptRepository,
                 answers: AnswerRepository):
        self.definitions = definitions
        self.attempts = attempts
        self.answers = answers

    def exam_stats(self, exam_id) -> dict:
        if self.definitions.get_exam_meta(exam_id) is None:
            raise NotFound('exam', exam_id)

        attempts = self.attempts.list_for_exam(exam_id, completed_only=True)
        if not attempts:
            return self._empty_stats()

        scores = np.array([float(a.score or 0) for a in attempts])
        pass_count = sum(1 for a in attempts if a.passed)

        return {
            'total_attempts': len(attempts),
            'average_score': round(float(np.mean(scores)), 2),
            'median_score': round(float(np.median(scores)), 2),
            'std_deviation': round(float(np.std(scores)), 2),
            'highest_score': round(float(scores.max()), 2),
            'lowest_score': round(float(scores.min()), 2),
            'pass_count': pass_count,
            'pass_rate': round(pass_count / len(attempts) * 100, 2),
            'question_stats': self._question_stats(attempts),
        }

    def _question_stats(self, attempts):
        questions = {}
        for version_id in {a.version_id for a in attempts}:
            snapshot = self.definitions.get_version(version_id)
            if snapshot is not None:
                questions.update({q.id: q for q in snapshot.iter_questions()})

        stats = OrderedDict()
        for answer in self.answers.list_for_attempts([a.id for a in attempts]):
            entry = stats.get(answer.question_id)
            if entry is None:
                question = questions.get(answer.question_id)
                entry = stats[answer.question_id] = {
                    'question_id': answer.question_id,
                    'question_text': question.text if question else '',
                    'question_type': str(question.type) if question else None,
                    'total_answers': 0,
                    'correct_answers': 0,
                    'pending_review': 0,
                    'total_points': 0.0,
                }
            entry['total_answers'] += 1
            if answer.is_correct:
                entry['correct_answers'] += 1
            elif answer.is_correct is None:
                entry['pending_review'] += 1
            entry['total_points'] += float(answer.points_earned or 0)

        results = []
        for entry in stats.values():
            total = entry.pop('total_points')
            entry['average_points'] = round(total / entry['total_answers'], 2)
            entry['correct_rate'] = round(entry['correct_answers'] / entry['total_answers'] * 100, 2)
            results.append(entry)
        return results

    @staticmethod
    def _empty_stats():
        return {
            'total_attempts': 0,
            'average_score': 0,
            'median_score': 0,
            'std_deviation': 0,
            'highest_score': 0,
            'lowest_score': 0,
            'pass_count': 0,
            'pass_rate': 0,
            'question_stats': [],
        }
