"""
Storage interfaces used by the engine.

Services only talk to these abstractions, so they can run against the Django
ORM in production and against in-memory doubles in tests.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from exams.exceptions import ValidationError
from exams.snapshot import ExamDefinitionSnapshot, ExamMeta


@dataclass(frozen=True)
class Identity:
    email: Optional[str] = None
    ip_address: Optional[str] = None

    @property
    def key(self) -> str:
        email = (self.email or '').strip().lower()
        if email:
            return f"email:{email}"
        if self.ip_address:
            return f"ip:{self.ip_address}"
        raise ValidationError("An email address or client IP is required to identify the test-taker.",
                              field='email')


@dataclass(frozen=True)
class ClientMeta:
    name: str = ''
    user_agent: str = ''


@dataclass
class AttemptRecord:
    id: int
    exam_id: int
    version_id: int
    attempt_number: int
    identity_key: str
    started_at: datetime
    max_score: float
    student_name: str = ''
    student_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: str = ''
    completed_at: Optional[datetime] = None
    time_spent: Optional[int] = None
    score: Optional[float] = None
    passed: Optional[bool] = None
    auto_graded: bool = False
    manually_graded: bool = False
    layout: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


@dataclass
class AnswerRecord:
    id: int
    attempt_id: int
    question_id: int
    text_value: Optional[str] = None
    selected_option_ids: frozenset = frozenset()
    structured_value: Any = None
    is_correct: Optional[bool] = None
    points_earned: float = 0.0
    feedback: str = ''
    manually_graded: bool = False


class DefinitionProvider(ABC):
    """Read-only access to exam settings and frozen exam versions."""

    @abstractmethod
    def get_exam_by_slug(self, slug: str) -> Optional[ExamMeta]:
        pass

    @abstractmethod
    def get_exam_meta(self, exam_id) -> Optional[ExamMeta]:
        pass

    @abstractmethod
    def get_latest_version(self, exam_id) -> Optional[ExamDefinitionSnapshot]:
        pass

    @abstractmethod
    def get_version(self, version_id) -> Optional[ExamDefinitionSnapshot]:
        pass


class AttemptRepository(ABC):

    @abstractmethod
    def get(self, attempt_id) -> Optional[AttemptRecord]:
        pass

    @abstractmethod
    def list_for_identity(self, exam_id, identity_key: str) -> List[AttemptRecord]:
        """Attempts of one identity, newest first."""

    @abstractmethod
    def list_for_exam(self, exam_id, completed_only: bool = False) -> List[AttemptRecord]:
        pass

    @abstractmethod
    def create_within_quota(self, *, exam_id, version_id, identity: Identity, client: ClientMeta,
                            max_attempts: int, max_score: float, layout: dict,
                            started_at: datetime) -> AttemptRecord:
        """Count the identity's attempts and create the next one as one atomic step.

        Raises QuotaExceeded when ``max_attempts`` is already used.
        """

    @abstractmethod
    def mark_completed(self, attempt_id, completed_at: datetime, time_spent: int) -> bool:
        """Set ``completed_at`` only if it is still NULL. Returns whether this call won."""

    @abstractmethod
    def update_score(self, attempt_id, *, score: float, passed: bool,
                     auto_graded: Optional[bool] = None, manually_graded: Optional[bool] = None) -> None:
        pass

    @contextmanager
    def lock(self, attempt_id):
        """Serialize read-modify-write sequences on one attempt.

        Database-backed implementations also make the block atomic, so writes
        inside it are rolled back together when it raises.
        """
        yield


class AnswerRepository(ABC):

    @abstractmethod
    def get(self, answer_id) -> Optional[AnswerRecord]:
        pass

    @abstractmethod
    def list_for_attempt(self, attempt_id) -> List[AnswerRecord]:
        pass

    @abstractmethod
    def list_for_attempts(self, attempt_ids: Iterable) -> List[AnswerRecord]:
        pass

    @abstractmethod
    def upsert(self, attempt_id, question_id, *, text_value: Optional[str],
               selected_option_ids: Iterable[int], structured_value: Any) -> AnswerRecord:
        """Create or fully replace the answer for ``(attempt_id, question_id)``.

        Raises Conflict if the attempt was completed in the meantime.
        """

    @abstractmethod
    def save_grade(self, answer_id, *, is_correct: Optional[bool], points_earned: float,
                   feedback: str, graded_at: datetime, manually_graded: bool = False) -> None:
        pass
