"""
Пакетная обработка поверх пула воркеров.
"""

from typing import Any, List, Optional, Sequence
from datetime import datetime

from .worker_pool import WorkerPool, ProcessFunc
from ..models.statistics import BatchResult
from ..utils.config import Config
from ..utils.progress import ProgressCallback, ProgressReporter
from ..utils.logger import get_logger
from ..exceptions import BatchProcessingError


logger = get_logger(__name__)


class BatchProcessor:
    """
    Прогон списка входных данных через пул воркеров.

    Каждый вызов process_all() создает свой пул, дожидается завершения всех
    задач, останавливает пул и возвращает неизменяемый BatchResult.
    """

    def __init__(self, process: ProcessFunc, config: Optional[Config] = None):
        self.process = process
        self.config = config or Config()
        self._progress_callbacks: List[ProgressCallback] = []

    def add_progress_callback(self, callback: ProgressCallback):
        """Подписка на снимки прогресса."""
        self._progress_callbacks.append(callback)

    async def process_all(self, payloads: Sequence[Any],
                          max_retries: Optional[int] = None) -> BatchResult:
        """
        Обработка всех входных данных.

        Args:
            payloads: Входные данные, по одной задаче на элемент
            max_retries: Бюджет попыток на задачу (по умолчанию из конфигурации)

        Returns:
            Итог прогона
        """
        payloads = list(payloads)
        started_at = datetime.now()

        logger.info(
            f"Batch processing started: {len(payloads)} items, "
            f"concurrency={self.config.pool.concurrency}"
        )

        pool = WorkerPool(self.process, config=self.config.pool)

        # Более ранние элементы получают более высокий приоритет
        for index, payload in enumerate(payloads):
            pool.submit(payload, priority=len(payloads) - index, max_retries=max_retries)

        reporter = None
        if self.config.progress.enabled:
            reporter = ProgressReporter(pool, self.config.progress)
            for callback in self._progress_callbacks:
                reporter.add_callback(callback)
            reporter.start()

        try:
            await pool.start()
            await pool.await_completion()
        finally:
            if reporter is not None:
                await reporter.stop()
            await pool.stop()

        result = pool.get_batch_result()
        logger.info(f"Worker pool statistics:\n{pool.generate_statistics_report()}")

        elapsed = (datetime.now() - started_at).total_seconds()
        logger.info(
            f"Batch processing finished in {elapsed:.1f}s: "
            f"{len(result.successful)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def retry_failed(self, previous: BatchResult,
                           max_retries: Optional[int] = None) -> BatchResult:
        """Повторная обработка только упавших элементов предыдущего прогона."""
        payloads = [failed_task.payload for failed_task in previous.failed]

        if not payloads:
            logger.info("No failed items to reprocess")
            return BatchResult()

        logger.info(f"Reprocessing {len(payloads)} failed items")
        return await self.process_all(payloads, max_retries=max_retries)

    def validate_result(self, result: BatchResult, min_success_rate: Optional[float] = None):
        """
        Проверка доли успешных задач.

        Raises:
            BatchProcessingError: Если доля успешных задач ниже порога
        """
        if min_success_rate is None:
            min_success_rate = self.config.min_success_rate

        if result.total == 0:
            return

        success_rate = result.success_rate
        if success_rate < min_success_rate:
            raise BatchProcessingError(
                [failed_task.id for failed_task in result.failed],
                result.total,
                f"success rate {success_rate * 100:.0f}% is below {min_success_rate * 100:.0f}%"
            )

        logger.info(f"Batch result validated: success rate {success_rate * 100:.0f}%")

    def generate_report(self, result: BatchResult) -> str:
        """Текстовый отчет о прогоне."""
        stats = result.statistics
        lines = [
            "# Batch processing report",
            "",
            "## Summary",
            f"- Total items: {result.total}",
            f"- Succeeded: {len(result.successful)}",
            f"- Failed: {len(result.failed)}",
            f"- Success rate: {result.success_rate * 100:.0f}%",
            f"- Retries: {stats.total_retries}",
            f"- Average processing time: {stats.average_processing_time_ms:.0f}ms",
        ]

        if result.failed:
            lines += ["", f"## Failed items ({len(result.failed)})"]
            for index, failed_task in enumerate(result.failed, start=1):
                lines.append(
                    f"{index}. task {failed_task.id} - {failed_task.error.kind.value}: "
                    f"{failed_task.error.message}"
                )

        return "\n".join(lines) + "\n"
