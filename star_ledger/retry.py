"""
Retry helpers for transient storage failures (lock contention, serialization
failures, a lost race on a unique index).
"""
import logging
import random
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior"""
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.05,
        max_delay: float = 1.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: Optional[tuple[type[BaseException], ...]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions or (Exception,)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay for exponential backoff with jitter"""
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter:
        delay *= 0.5 + random.random() * 0.5

    return delay


def call_with_retry(
    func: Callable[[], T],
    config: RetryConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds, retrying only the configured exceptions.

    The last exception is re-raised once ``config.max_attempts`` is reached.
    """
    attempt = 1
    while True:
        try:
            return func()
        except config.retryable_exceptions as e:
            if attempt >= config.max_attempts:
                logger.error(f"Max retry attempts ({config.max_attempts}) reached: {e}")
                raise

            delay = calculate_delay(attempt, config)
            logger.warning(f"Attempt {attempt}/{config.max_attempts} failed: {e}. Retrying in {delay:.2f}s")
            sleep(delay)
            attempt += 1
