"""
Классификатор ошибок задач.

Ошибка функции обработки превращается в вид (ErrorKind) и решение о
повторе с задержкой. Вид берется из размеченной ошибки (TaskFailure), а для
неразмеченных исключений определяется по их типу и коду статуса.
"""

import asyncio
from typing import Optional
from dataclasses import dataclass

import requests

from ..exceptions import ErrorKind, TaskFailure
from ..models.task import Classification


@dataclass
class BackoffPolicy:
    """Параметры задержек перед повтором (в миллисекундах)."""
    rate_limit_step_ms: int = 2000
    rate_limit_max_ms: int = 10000
    timeout_step_ms: int = 1000
    server_error_step_ms: int = 2000
    unknown_step_ms: int = 1000


def kind_from_exception(error: BaseException) -> ErrorKind:
    """
    Определение вида ошибки.

    Args:
        error: Исключение, поднятое функцией обработки

    Returns:
        Вид ошибки
    """
    if isinstance(error, TaskFailure):
        return error.kind

    # Таймауты
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, requests.Timeout)):
        return ErrorKind.TIMEOUT

    status = _status_code(error)
    if status is not None:
        if status == 429:
            return ErrorKind.RATE_LIMIT
        if status == 404:
            return ErrorKind.NOT_FOUND
        if 500 <= status < 600:
            return ErrorKind.SERVER_ERROR

    return ErrorKind.UNKNOWN


def _status_code(error: BaseException) -> Optional[int]:
    """Код HTTP-статуса из исключения, если он там есть."""
    for holder in (error, getattr(error, 'response', None)):
        if holder is None:
            continue
        for attr in ('status_code', 'status'):
            value = getattr(holder, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    return None


class ErrorClassifier:
    """Чистая функция: (ошибка, номер попытки) -> Classification."""

    def __init__(self, policy: Optional[BackoffPolicy] = None):
        self.policy = policy or BackoffPolicy()

    def classify(self, error: BaseException, attempt_number: int) -> Classification:
        """
        Классификация ошибки.

        Args:
            error: Исключение
            attempt_number: Номер неудачной попытки (начиная с 1)

        Returns:
            Вид ошибки, возможность повтора и задержка
        """
        attempt = max(1, attempt_number)
        kind = kind_from_exception(error)
        policy = self.policy

        if kind == ErrorKind.RATE_LIMIT:
            backoff = min(attempt * policy.rate_limit_step_ms, policy.rate_limit_max_ms)
            return Classification(kind, True, backoff)

        if kind == ErrorKind.TIMEOUT:
            return Classification(kind, True, attempt * policy.timeout_step_ms)

        if kind == ErrorKind.SERVER_ERROR:
            return Classification(kind, True, attempt * policy.server_error_step_ms)

        if kind == ErrorKind.NOT_FOUND:
            return Classification(kind, False, 0)

        # Неизвестные ошибки повторяем
        return Classification(ErrorKind.UNKNOWN, True, attempt * policy.unknown_step_ms)

    def __repr__(self) -> str:
        return f"ErrorClassifier(policy={self.policy})"
