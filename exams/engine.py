"""
Service wiring. Views obtain the ORM-backed engine through ``get_engine()``;
tests call ``build_engine()`` with in-memory repositories and a fixed clock.
"""
import random
from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings

from exams.grading import GradingEngine
from exams.services import (
    AnswerStore, AttemptManager, ManualGradingOverride, ResultsService,
    StatsAggregator, SubmissionController
)


@dataclass
class ExamEngine:
    attempts: AttemptManager
    answers: AnswerStore
    submissions: SubmissionController
    grading: GradingEngine
    manual_grading: ManualGradingOverride
    results: ResultsService
    stats: StatsAggregator


def build_engine(definitions, attempts, answers, clock=None, rng=None, grader=None) -> ExamEngine:
    grading = GradingEngine(definitions, attempts, answers, grader=grader, clock=clock)
    submissions = SubmissionController(definitions, attempts, grading, clock=clock)
    return ExamEngine(
        attempts=AttemptManager(definitions, attempts, answers, clock=clock, rng=rng),
        answers=AnswerStore(definitions, attempts, answers, submissions, clock=clock),
        submissions=submissions,
        grading=grading,
        manual_grading=ManualGradingOverride(definitions, attempts, answers, grading, clock=clock),
        results=ResultsService(definitions, attempts, answers),
        stats=StatsAggregator(definitions, attempts, answers),
    )


@lru_cache(maxsize=1)
def get_engine() -> ExamEngine:
    from exams.repositories.django_orm import (
        DjangoAnswerRepository, DjangoAttemptRepository, DjangoDefinitionProvider
    )

    seed = settings.EXAM_ENGINE.get('SHUFFLE_SEED')
    rng = random.Random(seed) if seed is not None else None
    return build_engine(
        DjangoDefinitionProvider(),
        DjangoAttemptRepository(),
        DjangoAnswerRepository(),
        rng=rng,
    )
