"""
Система конфигурации для движка пакетной обработки.
"""

import json
import os
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, asdict, field
from pathlib import Path

import yaml

from ..core.worker_pool import WorkerPoolConfig
from ..core.rate_limiter import RateLimitConfig
from ..core.error_classifier import BackoffPolicy
from ..exceptions import ConfigurationError
from .progress import ProgressConfig


@dataclass
class Config:
    """Основная конфигурация."""

    pool: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    min_success_rate: float = 0.8
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        """Создание из словаря."""
        data = dict(data or {})

        pool_data = dict(data.pop('pool', None) or {})
        progress_data = data.pop('progress', None) or {}

        # Секции rate_limit и backoff допускаются и внутри pool, и на верхнем
        # уровне; ключи верхнего уровня перекрывают вложенные
        rate_limit_data = {**(pool_data.pop('rate_limit', None) or {}),
                           **(data.pop('rate_limit', None) or {})}
        backoff_data = {**(pool_data.pop('backoff', None) or {}),
                        **(data.pop('backoff', None) or {})}

        try:
            pool = WorkerPoolConfig(
                rate_limit=RateLimitConfig(**rate_limit_data),
                backoff=BackoffPolicy(**backoff_data),
                **pool_data
            )
            return cls(pool=pool, progress=ProgressConfig(**progress_data), **data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def validate(self) -> bool:
        """Валидация конфигурации."""
        errors = []

        if self.pool.concurrency < 1:
            errors.append("pool.concurrency must be >= 1")

        if self.pool.default_max_retries < 1:
            errors.append("pool.default_max_retries must be >= 1")

        for name in ('inter_task_delay_ms', 'idle_wait_ms'):
            if getattr(self.pool, name) < 0:
                errors.append(f"pool.{name} must be >= 0")

        if self.pool.poll_interval_ms <= 0:
            errors.append("pool.poll_interval_ms must be > 0")

        rate_limit = self.pool.rate_limit
        if rate_limit.min_interval_ms < 0:
            errors.append("rate_limit.min_interval_ms must be >= 0")
        if rate_limit.max_ops_per_window < 1:
            errors.append("rate_limit.max_ops_per_window must be >= 1")
        if rate_limit.window_ms < 1:
            errors.append("rate_limit.window_ms must be >= 1")

        for name, value in asdict(self.pool.backoff).items():
            if value < 0:
                errors.append(f"backoff.{name} must be >= 0")

        if self.progress.interval_ms < 1:
            errors.append("progress.interval_ms must be >= 1")

        if not 0.0 <= self.min_success_rate <= 1.0:
            errors.append("min_success_rate must be between 0 and 1")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        return True

    def update(self, **kwargs) -> 'Config':
        """
        Обновление конфигурации с новыми значениями.

        Словари для секций (pool, progress, rate_limit, backoff) дополняют
        текущие значения, а не заменяют секцию целиком.
        """
        new_config = self.to_dict()
        for key, value in kwargs.items():
            current = new_config.get(key)
            if isinstance(value, dict) and isinstance(current, dict):
                new_config[key] = {**current, **value}
            else:
                new_config[key] = value
        return Config.from_dict(new_config)


def load_config(file_path: Union[str, Path]) -> Config:
    """
    Загрузка конфигурации из файла.

    Args:
        file_path: Путь к файлу конфигурации (.yaml, .yml или .json)

    Returns:
        Объект конфигурации
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif file_path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {file_path.suffix}")

    config = Config.from_dict(data)
    config.validate()

    return config


def save_config(config: Config, file_path: Union[str, Path], format: str = 'yaml'):
    """
    Сохранение конфигурации в файл.

    Args:
        config: Объект конфигурации
        file_path: Путь к файлу
        format: Формат файла ('yaml' или 'json')
    """
    file_path = Path(file_path)
    data = config.to_dict()

    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, 'w', encoding='utf-8') as f:
        if format.lower() == 'yaml':
            yaml.safe_dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
        elif format.lower() == 'json':
            json.dump(data, f, indent=2, ensure_ascii=False)
        else:
            raise ConfigurationError(f"Unsupported format: {format}")


# Переменная окружения -> (секция, ключ, тип)
_ENV_VARIABLES = {
    'BATCH_ENGINE_CONCURRENCY': ('pool', 'concurrency', int),
    'BATCH_ENGINE_INTER_TASK_DELAY_MS': ('pool', 'inter_task_delay_ms', int),
    'BATCH_ENGINE_MAX_RETRIES': ('pool', 'default_max_retries', int),
    'BATCH_ENGINE_MIN_INTERVAL_MS': ('rate_limit', 'min_interval_ms', int),
    'BATCH_ENGINE_MAX_OPS_PER_WINDOW': ('rate_limit', 'max_ops_per_window', int),
    'BATCH_ENGINE_WINDOW_MS': ('rate_limit', 'window_ms', int),
    'BATCH_ENGINE_PROGRESS_INTERVAL_MS': ('progress', 'interval_ms', int),
    'BATCH_ENGINE_MIN_SUCCESS_RATE': (None, 'min_success_rate', float),
    'BATCH_ENGINE_LOG_LEVEL': (None, 'log_level', str),
    'BATCH_ENGINE_LOG_FILE': (None, 'log_file', str),
}


def load_config_from_env() -> Config:
    """
    Загрузка конфигурации из переменных окружения.

    Returns:
        Объект конфигурации
    """
    config_data: Dict[str, Any] = {}

    for variable, (section, key, cast) in _ENV_VARIABLES.items():
        raw_value = os.getenv(variable)
        if not raw_value:
            continue

        try:
            value = cast(raw_value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {variable}: {raw_value!r}") from e

        if section is None:
            config_data[key] = value
        else:
            config_data.setdefault(section, {})[key] = value

    if os.getenv('BATCH_ENGINE_PROGRESS_ENABLED'):
        progress = config_data.setdefault('progress', {})
        progress['enabled'] = os.getenv('BATCH_ENGINE_PROGRESS_ENABLED').lower() == 'true'

    config = Config.from_dict(config_data)
    config.validate()
    return config
