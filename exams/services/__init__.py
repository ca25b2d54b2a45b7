from .attempts import AttemptManager
from .answers import AnswerPayload, AnswerStore
from .submission import SubmissionController, SubmissionOutcome
from .manual_grading import ManualGradingOverride
from .results import ResultsService
from .stats import StatsAggregator

__all__ = [
    'AttemptManager', 'AnswerPayload', 'AnswerStore',
    'SubmissionController', 'SubmissionOutcome',
    'ManualGradingOverride', 'ResultsService', 'StatsAggregator'
]
