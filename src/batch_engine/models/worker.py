"""
Модели воркеров для пула.
"""

from enum import Enum
from typing import Optional
from dataclasses import dataclass
from datetime import datetime


class WorkerStatus(Enum):
    """Статусы воркеров."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class WorkerMetrics:
    """Метрики воркера."""

    tasks_completed: int = 0
    tasks_failed: int = 0
    tasks_retried: int = 0
    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    last_task_at: Optional[datetime] = None

    def update_success(self, execution_time: float):
        """Учет успешной задачи."""
        self.tasks_completed += 1
        self.total_execution_time += execution_time
        self.average_execution_time = self.total_execution_time / self.tasks_completed
        self.last_task_at = datetime.now()

    def update_failure(self):
        """Учет окончательной ошибки."""
        self.tasks_failed += 1
        self.last_task_at = datetime.now()

    def update_retry(self):
        """Учет повторной постановки задачи."""
        self.tasks_retried += 1
        self.last_task_at = datetime.now()

    def get_success_rate(self) -> float:
        """Получение процента успешных задач."""
        total = self.tasks_completed + self.tasks_failed
        if total == 0:
            return 0.0
        return (self.tasks_completed / total) * 100
