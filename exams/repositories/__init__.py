from .base import (
    Identity, ClientMeta, AttemptRecord, AnswerRecord,
    DefinitionProvider, AttemptRepository, AnswerRepository
)

__all__ = [
    'Identity', 'ClientMeta', 'AttemptRecord', 'AnswerRecord',
    'DefinitionProvider', 'AttemptRepository', 'AnswerRepository'
]
