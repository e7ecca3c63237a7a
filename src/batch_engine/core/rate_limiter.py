"""
Ограничитель частоты операций для пула воркеров.

Ограничитель общий на весь пул: воркеры конкурируют за один и тот же слот.
Соблюдаются два независимых ограничения:

- минимальный интервал между началами операций (min_interval_ms);
- не более max_ops_per_window операций за окно window_ms.

Операция никогда не отклоняется: acquire() только откладывает ее.
"""

import asyncio
import time
from typing import Any, Dict, Optional
from dataclasses import dataclass

from ..utils.logger import get_logger


logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Конфигурация ограничителя частоты."""
    min_interval_ms: int = 200      # Минимальный интервал между операциями
    max_ops_per_window: int = 60    # Максимум операций за окно
    window_ms: int = 60000          # Длина окна


class RateLimiter:
    """Ограничитель с минимальным интервалом и квотой на окно."""

    def __init__(self, config: Optional[RateLimitConfig] = None):
        self.config = config or RateLimitConfig()
        self._lock = asyncio.Lock()

        self._last_operation_at: Optional[float] = None
        self._window_start: Optional[float] = None
        self._ops_in_window = 0
        self._total_wait = 0.0

        logger.debug(f"RateLimiter initialized with config: {self.config}")

    @property
    def min_interval(self) -> float:
        return max(0, self.config.min_interval_ms) / 1000

    @property
    def window(self) -> float:
        return max(0, self.config.window_ms) / 1000

    async def acquire(self) -> None:
        """
        Дождаться разрешения на одну операцию и зарегистрировать ее.

        Лок удерживается на время ожидания, поэтому воркеры получают
        разрешения по одному.
        """
        async with self._lock:
            await self._wait_for_interval()
            await self._wait_for_window()

            now = time.monotonic()
            if self._window_start is None:
                self._window_start = now
            self._last_operation_at = now
            self._ops_in_window += 1

    async def _wait_for_interval(self):
        if self._last_operation_at is None or self.min_interval <= 0:
            return

        wait_time = self._last_operation_at + self.min_interval - time.monotonic()
        if wait_time > 0:
            await self._sleep(wait_time)

    async def _wait_for_window(self):
        if self.config.max_ops_per_window <= 0 or self._window_start is None:
            return

        now = time.monotonic()
        if now - self._window_start >= self.window:
            self._reset_window(now)
            return

        if self._ops_in_window >= self.config.max_ops_per_window:
            wait_time = self._window_start + self.window - now
            logger.info(
                f"Rate limit reached ({self._ops_in_window}/{self.config.max_ops_per_window}), "
                f"waiting {wait_time:.2f}s for the next window"
            )
            await self._sleep(wait_time)
            self._reset_window(time.monotonic())

    def _reset_window(self, now: float):
        self._window_start = now
        self._ops_in_window = 0

    async def _sleep(self, seconds: float):
        self._total_wait += seconds
        await asyncio.sleep(seconds)

    def get_state(self) -> Dict[str, Any]:
        """Снимок состояния ограничителя (только для чтения)."""
        return {
            'last_operation_at': self._last_operation_at,
            'window_start': self._window_start,
            'ops_in_window': self._ops_in_window,
            'min_interval_ms': self.config.min_interval_ms,
            'max_ops_per_window': self.config.max_ops_per_window,
            'window_ms': self.config.window_ms,
            'total_wait_seconds': self._total_wait
        }

    def reset(self):
        """Сброс состояния ограничителя."""
        self._last_operation_at = None
        self._window_start = None
        self._ops_in_window = 0
        self._total_wait = 0.0

    def __repr__(self) -> str:
        return (f"RateLimiter(ops_in_window={self._ops_in_window}/"
                f"{self.config.max_ops_per_window}, window_ms={self.config.window_ms})")
