"""
Модели данных для движка пакетной обработки.
"""

from .task import Task, TaskState, Classification, ClassifiedError, FailedTask
from .worker import WorkerStatus, WorkerMetrics
from .statistics import Statistics, BatchResult, PoolStatus

__all__ = [
    "Task",
    "TaskState",
    "Classification",
    "ClassifiedError",
    "FailedTask",
    "WorkerStatus",
    "WorkerMetrics",
    "Statistics",
    "BatchResult",
    "PoolStatus"
]
