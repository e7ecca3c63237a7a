"""
Исключения для движка пакетной обработки.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Виды ошибок задач."""
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class WorkerPoolError(Exception):
    """Базовое исключение для пула воркеров."""
    pass


class ValidationError(WorkerPoolError, ValueError):
    """Ошибка валидации параметров."""
    pass


class ConfigurationError(WorkerPoolError):
    """Ошибка конфигурации."""
    pass


class BatchProcessingError(WorkerPoolError):
    """Доля успешных задач пакета ниже допустимой."""

    def __init__(self, failed_task_ids: List[int], total_tasks: int, details: str):
        super().__init__(
            f"Batch processing error: {len(failed_task_ids)}/{total_tasks} tasks failed - {details}"
        )
        self.failed_task_ids = failed_task_ids
        self.total_tasks = total_tasks
        self.details = details


class TaskFailure(Exception):
    """
    Размеченная ошибка функции обработки.

    Функция обработки поднимает наследника этого класса, чтобы классификатор
    знал вид ошибки без разбора текста сообщения.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str = "", original_error: Optional[Exception] = None):
        super().__init__(message or self.kind.value)
        self.original_error = original_error

    def __str__(self):
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (caused by: {self.original_error})"
        return base_msg


class RateLimitFailure(TaskFailure):
    """Удаленная сторона ответила 429."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.retry_after = retry_after


class TimeoutFailure(TaskFailure):
    """Истек таймаут операции."""

    kind = ErrorKind.TIMEOUT


class ServerFailure(TaskFailure):
    """Ошибка сервера (5xx)."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(self, message: str = "", status_code: int = 500,
                 original_error: Optional[Exception] = None):
        super().__init__(message or f"Server error: {status_code}", original_error)
        self.status_code = status_code


class NotFoundFailure(TaskFailure):
    """Ресурс не существует (404), повтор бесполезен."""

    kind = ErrorKind.NOT_FOUND
