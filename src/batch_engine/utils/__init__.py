"""
Утилиты движка пакетной обработки.

Конфигурация и отчеты о прогрессе импортируются из своих модулей:
batch_engine.utils.config и batch_engine.utils.progress.
"""

from .logger import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging"
]
