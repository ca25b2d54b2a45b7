from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from exams.repositories.base import AnswerRecord
from exams.snapshot import QuestionSnapshot


@dataclass
class GradingResult:
    points_earned: float
    max_points: float
    is_correct: Optional[bool]
    feedback: str
    needs_review: bool = False

    @property
    def percentage(self) -> float:
        if self.max_points == 0:
            return 0.0
        return (self.points_earned / self.max_points) * 100


@dataclass
class ScoreSummary:
    score: float
    max_score: float
    passed: bool
    percentage: float

    def as_dict(self):
        return {
            'score': self.score,
            'max_score': self.max_score,
            'passed': self.passed,
            'percentage': self.percentage,
        }


class GradingService(ABC):
    @abstractmethod
    def grade_answer(self, question: QuestionSnapshot, answer: AnswerRecord) -> GradingResult:
        pass

    @abstractmethod
    def get_service_name(self) -> str:
        pass
