"""
Тесты для основного класса пула воркеров.
"""

import asyncio
import time
import pytest

from batch_engine import (
    WorkerPool, PoolStatus, TaskState, ErrorKind,
    NotFoundFailure, ServerFailure, RateLimitFailure, ValidationError, WorkerPoolError
)
from batch_engine.models.worker import WorkerStatus


class TestWorkerPool:
    """Тесты для пула воркеров."""

    def test_worker_pool_initialization(self, fast_config):
        """Тест инициализации пула."""
        pool = WorkerPool(lambda x: x, config=fast_config)

        assert pool.concurrency == 2
        assert pool.get_status() == PoolStatus.STOPPED
        assert not pool.is_running()
        assert pool.get_queue_size() == 0

    def test_non_positive_concurrency_is_coerced(self, fast_config):
        """Тест: concurrency < 1 заменяется на 1."""
        pool = WorkerPool(lambda x: x, concurrency=0, config=fast_config)
        assert pool.concurrency == 1

    def test_process_must_be_callable(self):
        """Тест отклонения невызываемой функции обработки."""
        with pytest.raises(ValidationError):
            WorkerPool("not a function")

    def test_submit_rejects_invalid_max_retries(self, fast_config):
        """Тест отклонения max_retries < 1."""
        pool = WorkerPool(lambda x: x, config=fast_config)

        with pytest.raises(ValidationError):
            pool.submit("x", max_retries=0)
        with pytest.raises(ValueError):
            pool.submit("x", max_retries=-2)
        assert pool.get_queue_size() == 0

    def test_submit_without_loop_defers_start(self, fast_config):
        """Тест: без event loop задачи ставятся в очередь без запуска воркеров."""
        pool = WorkerPool(lambda x: x, config=fast_config)
        ids = pool.add_batch(["a", "b", "c"])

        assert ids == [1, 2, 3]
        assert pool.get_queue_size() == 3
        assert pool.get_status() == PoolStatus.STOPPED

    @pytest.mark.asyncio
    async def test_start_stop(self, fast_config):
        """Тест запуска и остановки пула."""
        pool = WorkerPool(lambda x: x, config=fast_config)

        await pool.start()
        assert pool.is_running()
        assert len(pool.get_workers()) == 2

        # Повторный запуск ничего не делает
        await pool.start()
        assert len(pool.get_workers()) == 2

        await pool.stop()
        assert pool.get_status() == PoolStatus.STOPPED
        assert all(worker.status == WorkerStatus.STOPPED for worker in pool.get_workers())

    @pytest.mark.asyncio
    async def test_context_manager(self, fast_config):
        """Тест использования как асинхронного контекстного менеджера."""
        async with WorkerPool(lambda x: x * 2, config=fast_config) as pool:
            assert pool.is_running()
            pool.add_batch([1, 2, 3])
            assert await pool.await_completion(timeout=5)
            assert sorted(pool.get_results()) == [2, 4, 6]

        assert not pool.is_running()

    @pytest.mark.asyncio
    async def test_async_and_sync_process_functions(self, fast_config):
        """Тест поддержки синхронной и асинхронной функции обработки."""
        async def async_double(x):
            await asyncio.sleep(0)
            return x * 2

        for process in (async_double, lambda x: x * 2):
            pool = WorkerPool(process, config=fast_config)
            pool.add_batch(range(5))
            assert await pool.await_completion(timeout=5)
            await pool.stop()
            assert sorted(pool.get_results()) == [0, 2, 4, 6, 8]

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self, fast_config):
        """Тест: 10 задач, одна с 404 падает без повторов."""
        calls = []

        async def process(item):
            calls.append(item)
            if item == 3:
                raise NotFoundFailure(f"item {item} not found")
            return f"done-{item}"

        pool = WorkerPool(process, config=fast_config)
        pool.add_batch(range(1, 11), max_retries=3)
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        result = pool.get_batch_result()
        assert len(result.successful) == 9
        assert len(result.failed) == 1

        failed = result.failed[0]
        assert failed.payload == 3
        assert failed.error.kind == ErrorKind.NOT_FOUND
        assert failed.task.retry_count == 0
        assert calls.count(3) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_until_success(self, fast_config):
        """Тест: две ошибки 500 подряд, затем успех."""
        attempts = {"count": 0}

        async def process(item):
            attempts["count"] += 1
            if attempts["count"] <= 2:
                raise ServerFailure(status_code=500)
            return "ok"

        pool = WorkerPool(process, config=fast_config)
        pool.submit("flaky", max_retries=3)
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        completed = pool.get_completed_tasks()
        assert len(completed) == 1
        assert completed[0].retry_count == 2
        assert completed[0].result == "ok"
        assert pool.get_failed_tasks() == []
        assert pool.get_statistics().total_retries == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, fast_config):
        """Тест: упавшая задача израсходовала весь бюджет попыток."""
        calls = []

        def process(item):
            calls.append(item)
            raise RuntimeError("always broken")

        pool = WorkerPool(process, config=fast_config)
        pool.submit("broken", max_retries=3)
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        failed = pool.get_failed_tasks()
        assert len(failed) == 1
        assert failed[0].task.retry_count == failed[0].task.max_retries == 3
        assert failed[0].task.state == TaskState.FAILED
        assert failed[0].error.kind == ErrorKind.UNKNOWN
        assert failed[0].error.attempt == 3
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_task_priorities(self, config_factory):
        """Тест: один воркер выполняет задачи по убыванию приоритета."""
        order = []

        async def process(item):
            order.append(item)
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        for priority in [1, 5, 3]:
            pool.submit(priority, priority=priority)

        assert await pool.await_completion(timeout=5)
        await pool.stop()
        assert order == [5, 3, 1]

    @pytest.mark.asyncio
    async def test_retry_lowers_priority(self, config_factory):
        """Тест: повторная попытка теряет единицу приоритета."""
        order = []
        failed_once = set()

        async def process(item):
            order.append(item)
            if item == "a" and item not in failed_once:
                failed_once.add(item)
                raise RateLimitFailure()
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.submit("a", priority=1)
        pool.submit("b", priority=1)

        assert await pool.await_completion(timeout=5)
        await pool.stop()

        assert order == ["a", "b", "a"]
        task_a = next(task for task in pool.get_completed_tasks() if task.payload == "a")
        assert task_a.priority == 0
        assert task_a.retry_count == 1

    @pytest.mark.asyncio
    async def test_retry_priority_does_not_go_below_zero(self, fast_config):
        """Тест: приоритет 0 не уменьшается при повторе."""
        attempts = {"count": 0}

        def process(item):
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise ServerFailure()
            return item

        pool = WorkerPool(process, config=fast_config)
        pool.submit("x", priority=0)
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        assert pool.get_completed_tasks()[0].priority == 0

    @pytest.mark.asyncio
    async def test_no_task_is_lost(self, config_factory):
        """Тест: каждая задача завершается ровно один раз."""
        def process(item):
            if item % 7 == 0:
                raise NotFoundFailure()
            if item % 5 == 0:
                raise ServerFailure()
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=4))
        ids = pool.add_batch(range(1, 41), max_retries=2)
        assert await pool.await_completion(timeout=10)
        await pool.stop()

        stats = pool.get_statistics()
        assert stats.completed_tasks + stats.failed_tasks == len(ids)
        assert stats.active_tasks == 0
        assert stats.queued_tasks == 0

        finished_ids = [task.id for task in pool.get_completed_tasks()]
        finished_ids += [failed.id for failed in pool.get_failed_tasks()]
        assert sorted(finished_ids) == ids

        for failed in pool.get_failed_tasks():
            if failed.error.kind == ErrorKind.SERVER_ERROR:
                assert failed.task.retry_count == failed.task.max_retries

    @pytest.mark.asyncio
    async def test_concurrency_limit(self, config_factory):
        """Тест: одновременно выполняется не больше concurrency задач."""
        state = {"running": 0, "peak": 0}

        async def process(item):
            state["running"] += 1
            state["peak"] = max(state["peak"], state["running"])
            await asyncio.sleep(0.01)
            state["running"] -= 1
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=3))
        pool.add_batch(range(12))
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        assert state["peak"] <= 3
        assert len(pool.get_results()) == 12

    @pytest.mark.asyncio
    async def test_inter_task_delay(self, config_factory):
        """Тест паузы воркера между задачами."""
        pool = WorkerPool(lambda x: x, config=config_factory(concurrency=1, inter_task_delay_ms=50))

        start = time.monotonic()
        pool.add_batch(range(3))
        assert await pool.await_completion(timeout=5)
        elapsed = time.monotonic() - start
        await pool.stop()

        assert elapsed >= 0.095

    @pytest.mark.asyncio
    async def test_statistics_are_idempotent(self, fast_config):
        """Тест: повторное чтение статистики без изменений дает тот же снимок."""
        pool = WorkerPool(lambda x: x, config=fast_config)
        pool.add_batch(range(5))
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        first = pool.get_statistics()
        second = pool.get_statistics()
        assert first == second
        assert first.total_tasks == 5
        assert first.success_rate == 100.0

    @pytest.mark.asyncio
    async def test_stop_abandons_queued_tasks(self, config_factory):
        """Тест: остановка не выполняет задачи из очереди."""
        async def process(item):
            await asyncio.sleep(0.05)
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.add_batch(range(5))
        await asyncio.sleep(0.01)
        await pool.stop()

        stats = pool.get_statistics()
        assert stats.completed_tasks == 1
        assert stats.queued_tasks == 4
        assert stats.failed_tasks == 0

    @pytest.mark.asyncio
    async def test_await_completion_timeout(self, config_factory):
        """Тест таймаута ожидания завершения."""
        async def process(item):
            await asyncio.sleep(0.2)
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.add_batch(range(3))

        assert await pool.await_completion(timeout=0.05) is False
        pool.clear_queue()
        await pool.stop()

    @pytest.mark.asyncio
    async def test_await_completion_requires_running_pool(self, config_factory):
        """Тест: без автозапуска ожидание на остановленном пуле с задачами - ошибка."""
        pool = WorkerPool(lambda x: x, config=config_factory(auto_start=False))
        pool.submit("x")
        assert pool.get_status() == PoolStatus.STOPPED

        with pytest.raises(WorkerPoolError):
            await pool.await_completion(timeout=1)

    @pytest.mark.asyncio
    async def test_await_completion_warns_on_restart(self, config_factory, caplog):
        """Тест: перезапуск остановленного пула с задачами пишется в лог."""
        async def process(item):
            await asyncio.sleep(0.02)
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.add_batch(range(3))
        await asyncio.sleep(0.005)
        await pool.stop()
        assert pool.get_queue_size() > 0

        with caplog.at_level("WARNING", logger="batch_engine.core.worker_pool"):
            assert await pool.await_completion(timeout=5)

        assert "Restarting stopped WorkerPool" in caplog.text
        assert pool.get_statistics().completed_tasks == 3
        await pool.stop()

    @pytest.mark.asyncio
    async def test_first_await_completion_does_not_warn(self, fast_config, caplog):
        """Тест: первый запуск через ожидание не считается перезапуском."""
        pool = WorkerPool(lambda x: x, config=fast_config)
        pool.submit("x")
        await asyncio.sleep(0)

        with caplog.at_level("WARNING", logger="batch_engine.core.worker_pool"):
            assert await pool.await_completion(timeout=5)

        assert "Restarting" not in caplog.text
        await pool.stop()

    @pytest.mark.asyncio
    async def test_cancelled_error_from_process_is_task_failure(self, config_factory):
        """Тест: CancelledError из функции обработки - ошибка задачи, а не остановка воркера."""
        calls = []

        async def process(item):
            calls.append(item)
            if item == 0 and calls.count(0) == 1:
                raise asyncio.CancelledError()
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.add_batch(range(3))

        assert await pool.await_completion(timeout=5)

        stats = pool.get_statistics()
        assert stats.completed_tasks == 3
        assert stats.active_tasks == 0
        assert stats.queued_tasks == 0
        assert stats.total_retries == 1
        assert pool.get_workers()[0].status != WorkerStatus.STOPPED
        await pool.stop()

    @pytest.mark.asyncio
    async def test_repeated_cancelled_error_exhausts_retries(self, config_factory):
        """Тест: постоянная CancelledError приводит к окончательной ошибке UNKNOWN."""
        def process(item):
            if item == 0:
                raise asyncio.CancelledError()
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.add_batch(range(3), max_retries=2)

        assert await pool.await_completion(timeout=5)

        failed = pool.get_failed_tasks()
        assert [failed_task.task.payload for failed_task in failed] == [0]
        assert failed[0].error.classification.kind == ErrorKind.UNKNOWN
        assert failed[0].task.retry_count == 2
        assert sorted(pool.get_results()) == [1, 2]
        await pool.stop()

    @pytest.mark.asyncio
    async def test_cancelled_worker_returns_task_to_queue(self, config_factory):
        """Тест: при отмене воркера незавершенная задача возвращается в очередь."""
        started = asyncio.Event()

        async def process(item):
            started.set()
            await asyncio.sleep(1)
            return item

        pool = WorkerPool(process, config=config_factory(concurrency=1))
        pool.submit("slow")
        await asyncio.wait_for(started.wait(), timeout=1)

        worker_task = pool._worker_tasks[0]
        worker_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await worker_task

        stats = pool.get_statistics()
        assert stats.active_tasks == 0
        assert stats.queued_tasks == 1
        assert pool.get_completed_tasks() == []

        pool.clear_queue()
        await pool.stop()
        assert pool.get_status() == PoolStatus.STOPPED

    @pytest.mark.asyncio
    async def test_await_completion_on_empty_pool(self, fast_config):
        """Тест: пустой пул сразу считается завершенным."""
        pool = WorkerPool(lambda x: x, config=fast_config)
        assert await pool.await_completion(timeout=1)

    @pytest.mark.asyncio
    async def test_clear_queue(self, config_factory):
        """Тест очистки очереди."""
        pool = WorkerPool(lambda x: x, config=config_factory(auto_start=False))
        pool.add_batch(range(4))

        assert pool.clear_queue() == 4
        assert pool.get_queue_size() == 0

    @pytest.mark.asyncio
    async def test_reset_statistics(self, fast_config):
        """Тест сброса статистики."""
        pool = WorkerPool(lambda x: x, config=fast_config)
        pool.add_batch(range(3))
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        pool.reset_statistics()
        stats = pool.get_statistics()
        assert stats.completed_tasks == 0
        assert stats.total_tasks == 0
        assert pool.get_results() == []

    @pytest.mark.asyncio
    async def test_statistics_report(self, fast_config):
        """Тест текстового отчета пула."""
        def process(item):
            if item == 2:
                raise NotFoundFailure("missing item")
            return item

        pool = WorkerPool(process, config=fast_config)
        pool.add_batch(range(4))
        assert await pool.await_completion(timeout=5)
        await pool.stop()

        report = pool.generate_statistics_report()
        assert "- Completed: 3" in report
        assert "- Failed: 1" in report
        assert "[not_found]: missing item" in report
        assert "## Timing" in report
