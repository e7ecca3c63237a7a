"""
Система логирования для движка пакетной обработки.
"""

import asyncio
import logging
import sys
from typing import Optional
from pathlib import Path


class BatchEngineFormatter(logging.Formatter):
    """Кастомный форматтер: к записи добавляется имя asyncio-задачи."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-28s | %(aio_task)-12s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record):
        if not hasattr(record, 'aio_task'):
            record.aio_task = _current_task_name()
        return super().format(record)


def _current_task_name() -> str:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        # Вне event loop
        return "-"
    return task.get_name() if task else "-"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    log_format: Optional[str] = None
):
    """
    Настройка системы логирования.

    Args:
        level: Уровень логирования
        log_file: Путь к файлу логов
        enable_console: Включить вывод в консоль
        log_format: Кастомный формат логов
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(log_format) if log_format else BatchEngineFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Повторная настройка заменяет обработчики
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    handlers = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Шумные библиотеки
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Получение логгера для модуля.

    Args:
        name: Имя модуля

    Returns:
        Объект логгера
    """
    return logging.getLogger(name)
