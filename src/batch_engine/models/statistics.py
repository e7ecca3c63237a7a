"""
Статистика и итоговые результаты пула воркеров.
"""

from enum import Enum
from typing import Any, Dict, Tuple
from dataclasses import dataclass, asdict, field

from .task import FailedTask, Task


class PoolStatus(Enum):
    """Статусы пула."""
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class Statistics:
    """Снимок статистики пула. Вычисляется по запросу."""

    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    active_tasks: int = 0
    queued_tasks: int = 0
    average_processing_time_ms: float = 0.0
    throughput_per_sec: float = 0.0
    total_retries: int = 0

    @property
    def success_rate(self) -> float:
        """Процент успешных задач среди завершенных."""
        finished = self.completed_tasks + self.failed_tasks
        if finished == 0:
            return 0.0
        return (self.completed_tasks / finished) * 100

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['success_rate'] = self.success_rate
        return data


@dataclass(frozen=True)
class BatchResult:
    """Итог прогона пакета."""

    successful: Tuple[Any, ...] = ()
    failed: Tuple[FailedTask, ...] = ()
    statistics: Statistics = field(default_factory=Statistics)
    completed_tasks: Tuple[Task, ...] = ()

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    @property
    def success_rate(self) -> float:
        """Доля успешных задач (0-1)."""
        if self.total == 0:
            return 0.0
        return len(self.successful) / self.total
