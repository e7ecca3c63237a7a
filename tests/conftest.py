"""
Общие фикстуры тестов.
"""

import pytest

from batch_engine.core.worker_pool import WorkerPoolConfig
from batch_engine.core.rate_limiter import RateLimitConfig
from batch_engine.core.error_classifier import BackoffPolicy


def make_fast_config(**overrides) -> WorkerPoolConfig:
    """Конфигурация без заметных задержек."""
    params = dict(
        concurrency=2,
        inter_task_delay_ms=0,
        idle_wait_ms=5,
        poll_interval_ms=10,
        rate_limit=RateLimitConfig(min_interval_ms=0, max_ops_per_window=10000, window_ms=1000),
        backoff=BackoffPolicy(
            rate_limit_step_ms=1,
            rate_limit_max_ms=5,
            timeout_step_ms=1,
            server_error_step_ms=1,
            unknown_step_ms=1
        )
    )
    params.update(overrides)
    return WorkerPoolConfig(**params)


@pytest.fixture
def fast_config():
    return make_fast_config()


@pytest.fixture
def config_factory():
    return make_fast_config
