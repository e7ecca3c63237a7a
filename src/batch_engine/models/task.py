"""
Модели задач для пула воркеров.
"""

from enum import Enum
from typing import Any, Optional
from dataclasses import dataclass, field
from datetime import datetime

from ..exceptions import ErrorKind


class TaskState(Enum):
    """Состояния задач."""
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Classification:
    """Решение классификатора по ошибке."""
    kind: ErrorKind
    retryable: bool
    backoff_ms: int


@dataclass(frozen=True)
class ClassifiedError:
    """Ошибка задачи вместе с ее классификацией."""
    exception: BaseException
    classification: Classification
    attempt: int

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def message(self) -> str:
        return str(self.exception) or type(self.exception).__name__


@dataclass
class Task:
    """Представление задачи."""

    id: int
    payload: Any
    priority: int = 0
    max_retries: int = 3
    retry_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    state: TaskState = TaskState.QUEUED
    result: Optional[Any] = None
    error: Optional[ClassifiedError] = None
    # Монотонное время, раньше которого повторная попытка не выдается
    available_at: float = 0.0

    def __post_init__(self):
        """Валидация после инициализации."""
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")

    def is_terminal(self) -> bool:
        return self.state in (TaskState.COMPLETED, TaskState.FAILED)

    def get_duration(self) -> Optional[float]:
        """Длительность последней попытки в секундах."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass(frozen=True)
class FailedTask:
    """Задача, завершившаяся окончательной ошибкой."""
    task: Task
    error: ClassifiedError

    @property
    def id(self) -> int:
        return self.task.id

    @property
    def payload(self) -> Any:
        return self.task.payload
