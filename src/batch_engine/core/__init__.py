"""
Основные компоненты движка пакетной обработки.
"""

from .task_queue import TaskQueue
from .rate_limiter import RateLimiter, RateLimitConfig
from .error_classifier import ErrorClassifier, BackoffPolicy, kind_from_exception
from .aggregator import ResultAggregator
from .worker import Worker
from .worker_pool import WorkerPool, WorkerPoolConfig
from .batch_processor import BatchProcessor

__all__ = [
    "TaskQueue",
    "RateLimiter",
    "RateLimitConfig",
    "ErrorClassifier",
    "BackoffPolicy",
    "kind_from_exception",
    "ResultAggregator",
    "Worker",
    "WorkerPool",
    "WorkerPoolConfig",
    "BatchProcessor"
]
