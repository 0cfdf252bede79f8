"""
Shared pytest fixtures for relaybench tests.
"""

import asyncio
import logging

import pytest

from relaybench.config import BenchmarkConfig

ACCOUNT_A = "+4100000001"
ACCOUNT_B = "+4100000002"
GROUP = "test-group"


@pytest.fixture
def fast_config(tmp_path) -> BenchmarkConfig:
    """Small, fast configuration for scenario runs on the in-memory relay."""
    return BenchmarkConfig(
        updates=8,
        send_concurrency=3,
        max_idle_rounds=3,
        idle_delay=0.01,
        error_delay=0.01,
        push_round_timeout=0.05,
        edit_sizes=(1, 10, 100),
        init_text_length=20,
        delay_range_a=(0.0, 0.002),
        delay_range_b=(0.0, 0.002),
        group_id=GROUP,
        account_a=ACCOUNT_A,
        account_b=ACCOUNT_B,
        seed=7,
        listener_shutdown_timeout=0.5,
        max_send_attempts=3,
        output_dir=str(tmp_path / "out"),
    )


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def reset_relaybench_logging():
    """Reset logging state before each test.

    Removes all handlers except a NullHandler and resets the level, so
    logging configuration from one test does not leak into another.
    """
    logger = logging.getLogger("relaybench")

    def reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    reset()
    yield
    reset()
