"""
Сбор результатов и статистики пула воркеров.
"""

import threading
import time
from collections import deque
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.task import ClassifiedError, FailedTask, Task, TaskState
from ..models.statistics import BatchResult, Statistics
from ..utils.logger import get_logger


logger = get_logger(__name__)


# Размер кольцевого буфера длительностей
TIMING_SAMPLE_SIZE = 100
# Минимальная длина окна замера пропускной способности
THROUGHPUT_WINDOW = 1.0


class ResultAggregator:
    """Учет активных, завершенных и упавших задач."""

    def __init__(self, sample_size: int = TIMING_SAMPLE_SIZE):
        self._lock = threading.Lock()

        self._active: Dict[int, Task] = {}
        self._completed: List[Task] = []
        self._failed: List[FailedTask] = []
        self._total_retries = 0

        self._processing_times: deque = deque(maxlen=sample_size)
        self._last_throughput_check = time.monotonic()
        self._finished_since_last_check = 0
        self._last_throughput = 0.0

    def mark_active(self, task: Task):
        with self._lock:
            self._active[task.id] = task

    def record_success(self, task: Task, result: Any, processing_time: float):
        """
        Учет успешного выполнения.

        Args:
            task: Задача
            result: Результат функции обработки
            processing_time: Длительность попытки в секундах
        """
        with self._lock:
            task.result = result
            task.completed_at = datetime.now()
            task.state = TaskState.COMPLETED

            self._active.pop(task.id, None)
            self._completed.append(task)
            self._processing_times.append(processing_time * 1000)
            self._finished_since_last_check += 1

    def record_retry(self, task: Task):
        """Задача возвращается в очередь: снимаем ее с учета активных."""
        with self._lock:
            self._active.pop(task.id, None)
            self._total_retries += 1

    def release(self, task: Task):
        with self._lock:
            self._active.pop(task.id, None)

    def record_failure(self, task: Task, error: ClassifiedError):
        """Учет окончательной ошибки."""
        with self._lock:
            task.error = error
            task.completed_at = datetime.now()
            task.state = TaskState.FAILED

            self._active.pop(task.id, None)
            self._failed.append(FailedTask(task=task, error=error))

    def get_statistics(self, queued_tasks: int) -> Statistics:
        """
        Снимок статистики.

        Пропускная способность (успешные задачи в секунду) считается по окну
        не короче секунды; окно сбрасывается при чтении, до истечения нового
        окна возвращается последнее вычисленное значение.
        """
        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_throughput_check
            if elapsed >= THROUGHPUT_WINDOW:
                self._last_throughput = self._finished_since_last_check / elapsed
                self._last_throughput_check = now
                self._finished_since_last_check = 0

            if self._processing_times:
                average = sum(self._processing_times) / len(self._processing_times)
            else:
                average = 0.0

            completed = len(self._completed)
            failed = len(self._failed)
            active = len(self._active)

            return Statistics(
                total_tasks=completed + failed + active + queued_tasks,
                completed_tasks=completed,
                failed_tasks=failed,
                active_tasks=active,
                queued_tasks=queued_tasks,
                average_processing_time_ms=average,
                throughput_per_sec=self._last_throughput,
                total_retries=self._total_retries
            )

    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def get_results(self) -> List[Any]:
        with self._lock:
            return [task.result for task in self._completed]

    def get_completed_tasks(self) -> List[Task]:
        with self._lock:
            return list(self._completed)

    def get_failed_tasks(self) -> List[FailedTask]:
        with self._lock:
            return list(self._failed)

    def build_result(self, statistics: Statistics) -> BatchResult:
        """Неизменяемый итог прогона."""
        with self._lock:
            return BatchResult(
                successful=tuple(task.result for task in self._completed),
                failed=tuple(self._failed),
                statistics=statistics,
                completed_tasks=tuple(self._completed)
            )

    def reset(self):
        """Сброс накопленных результатов и замеров."""
        with self._lock:
            self._completed.clear()
            self._failed.clear()
            self._processing_times.clear()
            self._total_retries = 0
            self._last_throughput_check = time.monotonic()
            self._finished_since_last_check = 0
            self._last_throughput = 0.0

        logger.info("Statistics reset")

    def generate_report(self, statistics: Statistics, concurrency: int,
                        inter_task_delay_ms: int, started_at: Optional[datetime] = None,
                        max_failures_listed: int = 10) -> str:
        """Человекочитаемый отчет. Формат не стабилен."""
        lines = [
            "# Worker pool statistics",
            "",
            "## Tasks",
            f"- Total: {statistics.total_tasks}",
            f"- Completed: {statistics.completed_tasks}",
            f"- Failed: {statistics.failed_tasks}",
            f"- Active: {statistics.active_tasks}",
            f"- Queued: {statistics.queued_tasks}",
            f"- Retries: {statistics.total_retries}",
            f"- Success rate: {statistics.success_rate:.0f}%",
            "",
            "## Performance",
            f"- Average processing time: {statistics.average_processing_time_ms:.0f}ms",
            f"- Throughput: {statistics.throughput_per_sec:.2f} tasks/sec",
            f"- Concurrency: {concurrency}",
            f"- Inter-task delay: {inter_task_delay_ms}ms",
        ]

        if started_at:
            total_time = (datetime.now() - started_at).total_seconds()
            lines += [
                "",
                "## Timing",
                f"- Started at: {started_at:%Y-%m-%d %H:%M:%S}",
                f"- Elapsed: {format_duration(total_time)}",
            ]

        failed = self.get_failed_tasks()
        if failed:
            lines += ["", "## Failed tasks"]
            for index, failed_task in enumerate(failed[:max_failures_listed], start=1):
                lines.append(
                    f"{index}. task {failed_task.id} [{failed_task.error.kind.value}]: "
                    f"{failed_task.error.message}"
                )
            if len(failed) > max_failures_listed:
                lines.append(f"... and {len(failed) - max_failures_listed} more")

        return "\n".join(lines) + "\n"


def format_duration(seconds: float) -> str:
    """Длительность в виде 1h 2m 3s."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
