from .base import GradingService, GradingResult, ScoreSummary
from .rules import RuleBasedGradingService
from .engine import GradingEngine, percentage_of, is_passing

__all__ = [
    'GradingService', 'GradingResult', 'ScoreSummary', 'RuleBasedGradingService',
    'GradingEngine', 'percentage_of', 'is_passing'
]
