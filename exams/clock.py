from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from django.utils import timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    def now(self) -> datetime:
        return timezone.now()


def deadline_for(started_at: datetime, time_limit: Optional[int]) -> Optional[datetime]:
    """Wall-clock deadline of an attempt; ``None`` when the exam has no limit (minutes)."""
    if not time_limit:
        return None
    return started_at + timedelta(minutes=time_limit)


def is_past_deadline(started_at: datetime, time_limit: Optional[int], now: datetime) -> bool:
    deadline = deadline_for(started_at, time_limit)
    return deadline is not None and now > deadline
