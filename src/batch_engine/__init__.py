"""
Движок пакетной обработки: пул воркеров с приоритетной очередью,
ограничением частоты, классификацией ошибок и ретраями с backoff.

Основные компоненты:
- WorkerPool: пул воркеров (submit/start/await_completion/stop)
- TaskQueue: приоритетная очередь задач
- RateLimiter: минимальный интервал и квота на окно
- ErrorClassifier: вид ошибки и решение о повторе
- BatchProcessor: прогон списка входных данных с итоговым отчетом
"""

from .core.worker_pool import WorkerPool, WorkerPoolConfig
from .core.task_queue import TaskQueue
from .core.rate_limiter import RateLimiter, RateLimitConfig
from .core.error_classifier import ErrorClassifier, BackoffPolicy
from .core.batch_processor import BatchProcessor
from .models.task import Task, TaskState, Classification, ClassifiedError, FailedTask
from .models.statistics import Statistics, BatchResult, PoolStatus
from .utils.config import Config, load_config, load_config_from_env
from .utils.progress import ProgressReporter, ProgressSnapshot, ProgressConfig
from .utils.logger import get_logger, setup_logging
from .exceptions import (
    ErrorKind,
    WorkerPoolError,
    ValidationError,
    ConfigurationError,
    BatchProcessingError,
    TaskFailure,
    RateLimitFailure,
    TimeoutFailure,
    ServerFailure,
    NotFoundFailure
)

__version__ = "1.0.0"
__author__ = "Worker Pool Team"

__all__ = [
    "WorkerPool",
    "WorkerPoolConfig",
    "TaskQueue",
    "RateLimiter",
    "RateLimitConfig",
    "ErrorClassifier",
    "BackoffPolicy",
    "BatchProcessor",
    "Task",
    "TaskState",
    "Classification",
    "ClassifiedError",
    "FailedTask",
    "Statistics",
    "BatchResult",
    "PoolStatus",
    "Config",
    "load_config",
    "load_config_from_env",
    "ProgressReporter",
    "ProgressSnapshot",
    "ProgressConfig",
    "get_logger",
    "setup_logging",
    "ErrorKind",
    "WorkerPoolError",
    "ValidationError",
    "ConfigurationError",
    "BatchProcessingError",
    "TaskFailure",
    "RateLimitFailure",
    "TimeoutFailure",
    "ServerFailure",
    "NotFoundFailure"
]
