"""
Retry mechanism for calls to the Lightrate API.
"""

import functools
import random
import time
from typing import Any, Callable, Optional

from .errors import APIError, NetworkError
from .logging import get_logger

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self,
                 max_attempts: int = 4,
                 base_delay: float = 0.5,
                 max_delay: float = 8.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    @classmethod
    def from_retry_attempts(cls, retry_attempts: int, **kwargs) -> "RetryConfig":
        """One initial attempt plus ``retry_attempts`` retries."""
        return cls(max_attempts=retry_attempts + 1, **kwargs)


def is_retryable_error(exc: BaseException) -> bool:
    """Throttling, server errors and dropped connections are worth another try."""
    if isinstance(exc, APIError):
        return exc.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, NetworkError)


def retry_on_exception(retry_if: Callable[[BaseException], bool] = is_retryable_error,
                       config: Optional[RetryConfig] = None,
                       sleep: Callable[[float], None] = time.sleep) -> Callable:
    """Decorator for retrying functions while ``retry_if`` accepts the raised error.

    Once attempts are exhausted the last error is re-raised unchanged.
    """

    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_logger(f"lightrate_client.retry.{func.__name__}")

            for attempt in range(1, config.max_attempts + 1):
                try:
                    result = func(*args, **kwargs)

                    if attempt > 1:
                        logger.info(
                            "Retry succeeded",
                            attempt=attempt,
                            function=func.__name__
                        )

                    return result

                except Exception as e:
                    if not retry_if(e):
                        raise

                    if attempt == config.max_attempts:
                        logger.error(
                            "All retry attempts exhausted",
                            attempt=attempt,
                            max_attempts=config.max_attempts,
                            function=func.__name__,
                            error=str(e)
                        )
                        raise

                    delay = _calculate_delay(attempt, config)

                    logger.warning(
                        "Retry attempt failed, waiting before next attempt",
                        attempt=attempt,
                        delay=delay,
                        function=func.__name__,
                        error=str(e)
                    )

                    sleep(delay)

        return wrapper

    return decorator


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay between retry attempts."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1  # 10% jitter
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
