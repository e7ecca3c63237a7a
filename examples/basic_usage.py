"""
Базовый пример использования движка пакетной обработки.
"""

import asyncio
import random

from batch_engine import (
    WorkerPool, WorkerPoolConfig, RateLimitConfig, BackoffPolicy,
    NotFoundFailure, ServerFailure, setup_logging
)


async def simple_task(x: int) -> int:
    """Простая задача для демонстрации."""
    print(f"Выполняется задача с аргументом {x}")
    await asyncio.sleep(random.uniform(0.05, 0.2))  # Имитация работы
    return x * 2


async def flaky_task(x: int) -> int:
    """Задача, которая может завершиться с ошибкой."""
    if x % 7 == 0:
        raise NotFoundFailure(f"Объект {x} не найден")
    if random.random() < 0.3:  # 30% вероятность ошибки сервера
        raise ServerFailure(f"Сбой при обработке {x}", status_code=503)

    await asyncio.sleep(random.uniform(0.05, 0.1))
    return x * 3


def demo_config() -> WorkerPoolConfig:
    """Конфигурация с короткими задержками для демонстрации."""
    return WorkerPoolConfig(
        concurrency=3,
        inter_task_delay_ms=50,
        rate_limit=RateLimitConfig(min_interval_ms=20, max_ops_per_window=30, window_ms=1000),
        backoff=BackoffPolicy(server_error_step_ms=100, unknown_step_ms=100)
    )


async def run_examples():
    # Пример 1: Простые задачи
    print("\n1. Отправка простых задач:")
    async with WorkerPool(simple_task, config=demo_config()) as pool:
        task_ids = pool.add_batch(range(5))
        print(f"   Отправлены задачи {task_ids}")

        print("   Ожидание завершения задач...")
        await pool.await_completion(timeout=10.0)
        print(f"   Результаты: {pool.get_results()}")

    # Пример 2: Задачи с приоритетами
    print("\n2. Задачи с разными приоритетами:")
    order = []

    async def record(item):
        order.append(item)
        return item

    async with WorkerPool(record, concurrency=1, config=demo_config()) as pool:
        for name, priority in [("low", 1), ("critical", 10), ("normal", 5)]:
            pool.submit(name, priority=priority)
        await pool.await_completion(timeout=10.0)
    print(f"   Порядок выполнения: {order}")

    # Пример 3: Ошибки и повторы
    print("\n3. Задачи с ошибками и повторами:")
    async with WorkerPool(flaky_task, config=demo_config()) as pool:
        pool.add_batch(range(1, 16), max_retries=3)
        await pool.await_completion(timeout=30.0)

        result = pool.get_batch_result()
        print(f"   Успешно: {len(result.successful)}, с ошибкой: {len(result.failed)}")
        for failed in result.failed:
            print(f"   Задача {failed.id}: {failed.error.kind.value} "
                  f"(повторов: {failed.task.retry_count})")

        # Пример 4: Статистика
        print("\n4. Статистика пула:")
        stats = pool.get_statistics()
        print(f"   Всего задач: {stats.total_tasks}")
        print(f"   Повторов: {stats.total_retries}")
        print(f"   Процент успеха: {stats.success_rate:.1f}%")
        print(f"   Среднее время выполнения: {stats.average_processing_time_ms:.0f}ms")
        print()
        print(pool.generate_statistics_report())


def main(log_level: str = "WARNING"):
    """Основная функция с примерами использования."""
    print("=== Базовый пример использования пула воркеров ===")
    setup_logging(level=log_level)
    asyncio.run(run_examples())
    print("\n=== Пример завершен ===")


if __name__ == "__main__":
    main()
