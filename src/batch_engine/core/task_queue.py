"""
Очередь задач для пула воркеров.
"""

import bisect
import itertools
import threading
import time
from datetime import datetime
from typing import List, Optional, Tuple

from ..models.task import Task, TaskState
from ..utils.logger import get_logger


logger = get_logger(__name__)


class TaskQueue:
    """
    Потокобезопасная очередь задач с приоритетами.

    Порядок: по убыванию приоритета, при равенстве по времени создания задачи
    (в том числе для повторно поставленных задач).
    dequeue() никогда не блокирует: ожидание работы лежит на воркере.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # Элементы (-priority, created_at, id, seq, task), отсортированы по возрастанию
        self._items: List[Tuple[int, datetime, int, int, Task]] = []
        self._sequence = itertools.count()

        # Метрики
        self._metrics = {
            'tasks_enqueued': 0,
            'tasks_dequeued': 0,
            'max_size_reached': 0
        }

        logger.debug("TaskQueue initialized")

    def enqueue(self, task: Task):
        """
        Упорядоченная вставка задачи.

        Args:
            task: Задача для постановки в очередь
        """
        with self._lock:
            task.state = TaskState.QUEUED
            item = (-task.priority, task.created_at, task.id, next(self._sequence), task)
            bisect.insort(self._items, item)

            self._metrics['tasks_enqueued'] += 1
            self._metrics['max_size_reached'] = max(
                self._metrics['max_size_reached'],
                len(self._items)
            )

        logger.debug(f"Task {task.id} enqueued with priority {task.priority}")

    def dequeue(self) -> Optional[Task]:
        """
        Получение первой готовой задачи.

        Returns:
            Задача (уже в состоянии ACTIVE) или None, если готовых задач нет
        """
        now = time.monotonic()

        with self._lock:
            for index, (*_, task) in enumerate(self._items):
                if task.available_at <= now:
                    del self._items[index]
                    break
            else:
                return None

            task.state = TaskState.ACTIVE
            task.started_at = datetime.now()
            self._metrics['tasks_dequeued'] += 1

        logger.debug(f"Task {task.id} dequeued")
        return task

    def peek_order(self) -> List[Task]:
        """Снимок очереди в порядке выдачи (без учета готовности)."""
        with self._lock:
            return [task for *_, task in self._items]

    def ready_count(self) -> int:
        """Количество задач, готовых к выдаче прямо сейчас."""
        now = time.monotonic()
        with self._lock:
            return sum(1 for *_, task in self._items if task.available_at <= now)

    def clear(self) -> List[Task]:
        """
        Очистка очереди.

        Returns:
            Удаленные задачи
        """
        with self._lock:
            dropped = [task for *_, task in self._items]
            self._items.clear()

        logger.info(f"Task queue cleared ({len(dropped)} tasks dropped)")
        return dropped

    def get_metrics(self) -> dict:
        """Получение метрик очереди."""
        with self._lock:
            metrics = self._metrics.copy()
            metrics['current_size'] = len(self._items)
            return metrics

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __repr__(self) -> str:
        return f"TaskQueue(size={len(self)})"
