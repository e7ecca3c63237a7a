"""
Продвинутые примеры использования движка пакетной обработки.
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from batch_engine import (
    BatchProcessor, Config, ProgressSnapshot, BatchProcessingError,
    RateLimitFailure, TimeoutFailure, setup_logging, load_config
)
from batch_engine.utils.config import save_config


HTTPBIN_URL = "https://httpbin.org"


def fetch_json(url: str, timeout: float = 5.0) -> Dict[str, Any]:
    """Синхронный HTTP запрос."""
    response = requests.get(url, timeout=timeout)

    if response.status_code == 429:
        retry_after = response.headers.get('Retry-After')
        raise RateLimitFailure(
            f"Too many requests to {url}",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
        )

    # 404 и 5xx классифицируются по коду ответа HTTPError
    response.raise_for_status()

    return {
        'url': url,
        'status_code': response.status_code,
        'content_length': len(response.content)
    }


async def http_request_task(url: str) -> Dict[str, Any]:
    """Задача для выполнения HTTP запросов вне event loop."""
    try:
        return await asyncio.to_thread(fetch_json, url)
    except requests.ConnectionError as e:
        raise TimeoutFailure(f"Connection to {url} failed", original_error=e) from e


def build_config(config_dir: Path) -> Config:
    """Сохранение конфигурации в YAML и загрузка обратно."""
    config = Config.from_dict({
        'pool': {
            'concurrency': 4,
            'inter_task_delay_ms': 100,
            'default_max_retries': 3,
            'rate_limit': {'min_interval_ms': 100, 'max_ops_per_window': 20, 'window_ms': 10000}
        },
        'backoff': {'server_error_step_ms': 500, 'timeout_step_ms': 500},
        'progress': {'interval_ms': 500},
        'min_success_rate': 0.7,
        'log_level': 'INFO'
    })

    config_path = config_dir / "engine.yaml"
    save_config(config, config_path)
    print(f"Конфигурация сохранена в {config_path}")

    return load_config(config_path)


def print_progress(snapshot: ProgressSnapshot):
    """Подписчик на снимки прогресса."""
    print(f"   [{snapshot.percentage:5.1f}%] {snapshot.current}/{snapshot.total} "
          f"ok={snapshot.completed} failed={snapshot.failed} retries={snapshot.retries}")


async def example_http_batch(config: Config):
    """Пример пакетной обработки HTTP запросов."""
    print("\n=== Пакет HTTP запросов ===\n")

    urls = [f"{HTTPBIN_URL}/get?item={i}" for i in range(8)]
    urls += [
        f"{HTTPBIN_URL}/status/404",
        f"{HTTPBIN_URL}/status/503",
        f"{HTTPBIN_URL}/delay/1",
    ]

    processor = BatchProcessor(http_request_task, config)
    processor.add_progress_callback(print_progress)

    result = await processor.process_all(urls)
    print()
    print(processor.generate_report(result))

    try:
        processor.validate_result(result)
        print("Доля успешных запросов в норме")
    except BatchProcessingError as e:
        print(f"Проверка результата не пройдена: {e}")

    if result.failed:
        print(f"\nПовторная обработка {len(result.failed)} упавших запросов...")
        retried = await processor.retry_failed(result, max_retries=1)
        print(f"После повтора: успешно {len(retried.successful)}, с ошибкой {len(retried.failed)}")


def main(config_path: Optional[str] = None, log_level: Optional[str] = None):
    """Основная функция с продвинутыми примерами."""
    if config_path:
        config = load_config(config_path)
    else:
        with tempfile.TemporaryDirectory() as config_dir:
            config = build_config(Path(config_dir))

    setup_logging(level=log_level or config.log_level, log_file=config.log_file)
    asyncio.run(example_http_batch(config))


if __name__ == "__main__":
    main()
