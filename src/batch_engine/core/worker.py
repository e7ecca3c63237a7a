"""
Воркер пула: цикл получения, выполнения и учета задач.
"""

import asyncio
import inspect
import time
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from ..models.task import ClassifiedError, Task
from ..models.worker import WorkerMetrics, WorkerStatus
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .worker_pool import WorkerPool


logger = get_logger(__name__)


class Worker:
    """
    Единица конкурентного выполнения.

    Воркер хранит только ссылку на пул и текущую задачу. Ошибка отдельной
    задачи никогда не выходит из цикла; цикл завершается только по сигналу
    остановки пула.
    """

    def __init__(self, pool: "WorkerPool", name: str):
        self.pool = pool
        self.name = name
        self.status = WorkerStatus.IDLE
        self.metrics = WorkerMetrics()
        self.current_task: Optional[Task] = None
        self.started_at: Optional[datetime] = None

    async def run(self):
        """Основной цикл воркера."""
        self.started_at = datetime.now()
        logger.debug(f"{self.name} started")

        try:
            while not self.pool._stop_event.is_set():
                task = self.pool._take_next_task()
                if task is None:
                    await self.pool._sleep_unless_stopped(self.pool.config.idle_wait_ms)
                    continue

                self.current_task = task
                self.status = WorkerStatus.BUSY
                try:
                    await self._execute_task(task)
                finally:
                    self.current_task = None
                    self.status = WorkerStatus.IDLE

                # Пауза вежливости, отдельно от ограничителя частоты
                await self.pool._sleep_unless_stopped(self.pool.config.inter_task_delay_ms)
        finally:
            self.status = WorkerStatus.STOPPED
            logger.debug(f"{self.name} stopped")

    async def _execute_task(self, task: Task):
        try:
            await self.pool.rate_limiter.acquire()
        except asyncio.CancelledError:
            self._return_to_queue(task)
            raise

        logger.debug(f"{self.name}: task {task.id} started (attempt {task.retry_count + 1})")
        start_time = time.monotonic()

        try:
            result = self.pool.process(task.payload)
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError as e:
            if asyncio.current_task().cancelling():
                # Отменен сам воркер
                self._return_to_queue(task)
                raise
            # Отмена внутри функции обработки - обычная ошибка задачи
            self._handle_failure(task, e)
            return
        except Exception as e:
            self._handle_failure(task, e)
            return

        processing_time = time.monotonic() - start_time
        self.pool._aggregator.record_success(task, result, processing_time)
        self.metrics.update_success(processing_time)
        logger.debug(f"{self.name}: task {task.id} completed in {processing_time * 1000:.0f}ms")

    def _return_to_queue(self, task: Task):
        """Незавершенная задача возвращается в очередь без расхода попытки."""
        task.started_at = None
        self.pool._queue.enqueue(task)
        self.pool._aggregator.release(task)
        logger.info(f"{self.name}: cancelled, task {task.id} returned to queue")

    def _handle_failure(self, task: Task, error: BaseException):
        attempt = task.retry_count + 1
        classification = self.pool.classifier.classify(error, attempt)

        if classification.retryable and attempt < task.max_retries:
            task.retry_count = attempt
            if task.priority > 0:
                task.priority -= 1
            task.started_at = None
            task.available_at = time.monotonic() + classification.backoff_ms / 1000

            self.pool._queue.enqueue(task)
            self.pool._aggregator.record_retry(task)
            self.metrics.update_retry()

            logger.warning(
                f"{self.name}: task {task.id} failed ({classification.kind.value}: {error}), "
                f"retry {attempt}/{task.max_retries - 1} in {classification.backoff_ms}ms"
            )
            return

        if classification.retryable:
            # Бюджет исчерпан: последняя попытка тоже считается
            task.retry_count = task.max_retries

        self.pool._aggregator.record_failure(
            task,
            ClassifiedError(exception=error, classification=classification, attempt=attempt)
        )
        self.metrics.update_failure()

        logger.error(
            f"{self.name}: task {task.id} failed permanently "
            f"({classification.kind.value}, attempt {attempt}/{task.max_retries}): {error}"
        )

    def __repr__(self) -> str:
        return f"Worker(name={self.name}, status={self.status.value})"
