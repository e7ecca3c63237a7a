"""
Отчеты о ходе выполнения пакета.

ProgressReporter только наблюдает за пулом: периодически снимает статистику
и передает снимок подписчикам. На выполнение задач он не влияет.
"""

import asyncio
import os
from typing import TYPE_CHECKING, Callable, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

import psutil

from .logger import get_logger

if TYPE_CHECKING:
    from ..core.worker_pool import WorkerPool


logger = get_logger(__name__)


@dataclass
class ProgressConfig:
    """Конфигурация отчетов о прогрессе."""
    enabled: bool = True
    interval_ms: int = 1000
    show_memory_usage: bool = True
    bar_width: int = 40


@dataclass(frozen=True)
class ProgressSnapshot:
    """Снимок прогресса."""
    current: int
    total: int
    percentage: float
    completed: int
    failed: int
    active: int
    queued: int
    retries: int
    elapsed_seconds: float
    estimated_remaining_seconds: Optional[float]
    throughput_per_sec: float
    average_processing_time_ms: float
    memory_rss_mb: Optional[float] = None
    timestamp: datetime = field(default_factory=datetime.now)


ProgressCallback = Callable[[ProgressSnapshot], None]


class ProgressReporter:
    """Периодический наблюдатель за пулом."""

    def __init__(self, pool: "WorkerPool", config: Optional[ProgressConfig] = None):
        self.pool = pool
        self.config = config or ProgressConfig()
        self._callbacks: List[ProgressCallback] = []
        self._report_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._started_at = datetime.now()
        self._process = psutil.Process(os.getpid()) if self.config.show_memory_usage else None

    def add_callback(self, callback: ProgressCallback):
        """Подписка на снимки прогресса."""
        self._callbacks.append(callback)

    def snapshot(self) -> ProgressSnapshot:
        """Построение снимка по текущей статистике пула."""
        stats = self.pool.get_statistics()
        current = stats.completed_tasks + stats.failed_tasks
        total = stats.total_tasks
        percentage = (current / total * 100) if total > 0 else 0.0
        elapsed = (datetime.now() - self._started_at).total_seconds()

        # Оценка оставшегося времени по средней скорости
        remaining = None
        if 0 < current < total:
            remaining = elapsed / current * (total - current)

        return ProgressSnapshot(
            current=current,
            total=total,
            percentage=percentage,
            completed=stats.completed_tasks,
            failed=stats.failed_tasks,
            active=stats.active_tasks,
            queued=stats.queued_tasks,
            retries=stats.total_retries,
            elapsed_seconds=elapsed,
            estimated_remaining_seconds=remaining,
            throughput_per_sec=stats.throughput_per_sec,
            average_processing_time_ms=stats.average_processing_time_ms,
            memory_rss_mb=self._memory_rss_mb()
        )

    def _memory_rss_mb(self) -> Optional[float]:
        if self._process is None:
            return None
        try:
            return self._process.memory_info().rss / (1024 * 1024)
        except psutil.Error as e:
            logger.debug(f"Unable to read memory usage: {e}")
            return None

    def format_snapshot(self, snapshot: ProgressSnapshot) -> str:
        """Однострочное представление снимка с полосой прогресса."""
        width = max(1, self.config.bar_width)
        filled = int(width * snapshot.percentage / 100)
        bar = "#" * filled + "-" * (width - filled)

        line = (f"[{bar}] {snapshot.current}/{snapshot.total} ({snapshot.percentage:.0f}%) "
                f"ok={snapshot.completed} failed={snapshot.failed} active={snapshot.active} "
                f"queued={snapshot.queued} retries={snapshot.retries} "
                f"{snapshot.throughput_per_sec:.2f} tasks/s")
        if snapshot.estimated_remaining_seconds is not None:
            line += f" eta={snapshot.estimated_remaining_seconds:.0f}s"
        if snapshot.memory_rss_mb is not None:
            line += f" mem={snapshot.memory_rss_mb:.1f}MB"
        return line

    def report(self) -> ProgressSnapshot:
        """Снять снимок и разослать подписчикам."""
        snapshot = self.snapshot()
        if not self._callbacks:
            logger.info(self.format_snapshot(snapshot))

        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Error in progress callback {callback}: {e}")

        return snapshot

    def start(self):
        """Запуск периодических отчетов в текущем event loop."""
        if self._report_task and not self._report_task.done():
            logger.warning("Progress reporting already running")
            return

        self._started_at = datetime.now()
        self._stop_event = asyncio.Event()
        self._report_task = asyncio.get_running_loop().create_task(
            self._report_loop(), name="progress-reporter"
        )

    async def stop(self):
        """Остановка отчетов с финальным снимком."""
        if self._report_task is None:
            return

        self._stop_event.set()
        await self._report_task
        self._report_task = None
        self.report()

    async def _report_loop(self):
        interval = max(1, self.config.interval_ms) / 1000
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                self.report()
