"""Retry support for transient storage failures."""

import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from .exceptions import WorkflowEngineError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Exponential backoff settings for ``with_retry``."""
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 2.0
    exponential_base: float = 2.0
    jitter: bool = True

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """Only engine errors flagged ``recoverable`` are retried."""
        return (
            attempt < self.max_attempts
            and isinstance(exception, WorkflowEngineError)
            and exception.recoverable
        )

    def get_delay(self, attempt: int) -> float:
        delay = min(self.base_delay * self.exponential_base ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay


def with_retry(config: Optional[RetryConfig] = None) -> Callable[[Callable], Callable]:
    """Decorator re-invoking a synchronous function on recoverable engine errors."""
    config = config or RetryConfig()

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except WorkflowEngineError as e:
                    if not config.should_retry(e, attempt):
                        if attempt > 1:
                            logger.error(f"{func.__name__} gave up after {attempt} attempts: {e}")
                        raise
                    delay = config.get_delay(attempt)
                    logger.warning(f"{func.__name__} attempt {attempt}/{config.max_attempts} failed, retrying in {delay:.2f}s: {e}")
                    time.sleep(delay)
                    attempt += 1
        return wrapper

    return decorator
