"""
Основной класс конкурентного пула воркеров.
"""

import asyncio
import itertools
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime

from .task_queue import TaskQueue
from .rate_limiter import RateLimiter, RateLimitConfig
from .error_classifier import ErrorClassifier, BackoffPolicy
from .aggregator import ResultAggregator
from .worker import Worker

from ..models.task import FailedTask, Task
from ..models.statistics import BatchResult, PoolStatus, Statistics

from ..utils.logger import get_logger
from ..exceptions import ValidationError, WorkerPoolError


logger = get_logger(__name__)


ProcessFunc = Callable[[Any], Union[Awaitable[Any], Any]]


@dataclass
class WorkerPoolConfig:
    """Конфигурация пула воркеров."""

    # Основные параметры
    concurrency: int = 5
    inter_task_delay_ms: int = 200   # Пауза воркера после каждой задачи
    idle_wait_ms: int = 50           # Ожидание при пустой очереди
    poll_interval_ms: int = 100      # Период опроса в await_completion
    default_max_retries: int = 3
    auto_start: bool = True

    # Конфигурации компонентов
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)


class WorkerPool:
    """Конкурентный пул воркеров с приоритетной очередью, ограничением частоты и ретраями."""

    def __init__(
        self,
        process: ProcessFunc,
        concurrency: Optional[int] = None,
        config: Optional[WorkerPoolConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        classifier: Optional[ErrorClassifier] = None
    ):
        if not callable(process):
            raise ValidationError("process must be callable")

        self.config = config or WorkerPoolConfig()
        if concurrency is None:
            concurrency = self.config.concurrency
        if concurrency < 1:
            logger.warning(f"Concurrency {concurrency} is not positive, using 1")
            concurrency = 1
        self.concurrency = concurrency

        self.process = process
        self.rate_limiter = rate_limiter or RateLimiter(self.config.rate_limit)
        self.classifier = classifier or ErrorClassifier(self.config.backoff)

        self._queue = TaskQueue()
        self._aggregator = ResultAggregator()
        self._task_ids = itertools.count(1)

        self._status = PoolStatus.STOPPED
        self._stop_event = asyncio.Event()
        self._workers: List[Worker] = []
        self._worker_tasks: List[asyncio.Task] = []
        self._started_at: Optional[datetime] = None

        logger.info(f"WorkerPool initialized (concurrency={self.concurrency})")

    def submit(self, payload: Any, priority: int = 0, max_retries: Optional[int] = None) -> int:
        """
        Отправка задачи в пул.

        Args:
            payload: Входные данные для функции обработки
            priority: Приоритет (больше - раньше)
            max_retries: Максимальное количество попыток (>= 1)

        Returns:
            ID задачи
        """
        if max_retries is None:
            max_retries = self.config.default_max_retries
        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 1:
            raise ValidationError(f"max_retries must be an integer >= 1, got {max_retries!r}")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError(f"priority must be an integer, got {priority!r}")

        task = Task(
            id=next(self._task_ids),
            payload=payload,
            priority=priority,
            max_retries=max_retries
        )
        self._queue.enqueue(task)
        logger.debug(f"Task {task.id} submitted to pool")

        if self.config.auto_start and self._status == PoolStatus.STOPPED:
            self._auto_start()

        return task.id

    def add_batch(self, payloads: Iterable[Any], priority: int = 0,
                  max_retries: Optional[int] = None) -> List[int]:
        """Отправка нескольких задач с одинаковым приоритетом и бюджетом."""
        return [self.submit(payload, priority, max_retries) for payload in payloads]

    def _auto_start(self):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # Нет event loop: воркеры запустятся в start()
            return
        self._spawn_workers()

    async def start(self):
        """Запуск пула воркеров. Повторный вызов ничего не делает."""
        if self._status == PoolStatus.RUNNING:
            return
        if self._status == PoolStatus.STOPPING:
            raise WorkerPoolError("Pool is stopping")

        self._spawn_workers()
        # Даем воркерам войти в цикл
        await asyncio.sleep(0)

    def _spawn_workers(self):
        logger.info(f"Starting WorkerPool with {self.concurrency} workers...")

        self._stop_event = asyncio.Event()
        self._workers = [Worker(self, f"worker-{index + 1}") for index in range(self.concurrency)]
        self._worker_tasks = [
            asyncio.get_running_loop().create_task(worker.run(), name=worker.name)
            for worker in self._workers
        ]
        self._started_at = self._started_at or datetime.now()
        self._status = PoolStatus.RUNNING

    async def stop(self):
        """
        Остановка пула.

        Воркеры выходят из цикла после текущей задачи; задачи в очереди
        остаются в ней и не выполняются.
        """
        if self._status != PoolStatus.RUNNING:
            return

        logger.info("Stopping WorkerPool...")
        self._status = PoolStatus.STOPPING
        self._stop_event.set()

        try:
            await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        finally:
            self._worker_tasks = []
            self._status = PoolStatus.STOPPED

        if len(self._queue):
            logger.info(f"WorkerPool stopped, {len(self._queue)} queued tasks abandoned")
        else:
            logger.info("WorkerPool stopped")

    async def await_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Ожидание завершения всех задач.

        Args:
            timeout: Таймаут ожидания в секундах (None - без ограничения)

        Returns:
            True если очередь пуста и активных задач нет, False если таймаут
        """
        if self._status != PoolStatus.RUNNING and not self._is_idle():
            if not self.config.auto_start:
                raise WorkerPoolError(f"Pool is not running (current status: {self._status.value})")
            if self._status == PoolStatus.STOPPED and self._workers:
                logger.warning(
                    f"Restarting stopped WorkerPool to finish {len(self._queue)} queued tasks"
                )
            await self.start()

        interval = self.config.poll_interval_ms / 1000
        deadline = None if timeout is None else time.monotonic() + timeout

        while not self._is_idle():
            if deadline is not None and time.monotonic() >= deadline:
                return False
            await asyncio.sleep(interval)

        return True

    def _is_idle(self) -> bool:
        return len(self._queue) == 0 and self._aggregator.active_count() == 0

    def _take_next_task(self) -> Optional[Task]:
        task = self._queue.dequeue()
        if task is not None:
            self._aggregator.mark_active(task)
        return task

    async def _sleep_unless_stopped(self, delay_ms: int):
        """Пауза, прерываемая сигналом остановки."""
        if delay_ms <= 0:
            # Уступаем управление другим воркерам
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            pass

    def get_statistics(self) -> Statistics:
        """Получение статистики пула."""
        return self._aggregator.get_statistics(queued_tasks=len(self._queue))

    def get_results(self) -> List[Any]:
        """Результаты успешно выполненных задач в порядке завершения."""
        return self._aggregator.get_results()

    def get_completed_tasks(self) -> List[Task]:
        return self._aggregator.get_completed_tasks()

    def get_failed_tasks(self) -> List[FailedTask]:
        """Задачи, завершившиеся окончательной ошибкой."""
        return self._aggregator.get_failed_tasks()

    def get_batch_result(self) -> BatchResult:
        """Неизменяемый итог. Вызывать после await_completion()."""
        return self._aggregator.build_result(self.get_statistics())

    def generate_statistics_report(self) -> str:
        """Подробный текстовый отчет о работе пула."""
        return self._aggregator.generate_report(
            self.get_statistics(),
            concurrency=self.concurrency,
            inter_task_delay_ms=self.config.inter_task_delay_ms,
            started_at=self._started_at
        )

    def clear_queue(self) -> int:
        """Удаление всех задач из очереди. Возвращает число удаленных задач."""
        return len(self._queue.clear())

    def reset_statistics(self):
        """Сброс накопленных результатов и статистики."""
        self._aggregator.reset()
        self._started_at = None

    def get_status(self) -> PoolStatus:
        return self._status

    def is_running(self) -> bool:
        return self._status == PoolStatus.RUNNING

    def get_workers(self) -> List[Worker]:
        return list(self._workers)

    def get_queue_size(self) -> int:
        return len(self._queue)

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def __repr__(self) -> str:
        return (f"WorkerPool(status={self._status.value}, "
                f"workers={len(self._workers)}, "
                f"queue_size={self.get_queue_size()})")
