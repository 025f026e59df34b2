"""
Retry helper for idempotent calls to the issuing authority.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                       config: Optional[RetryConfig] = None,
                       config_getter: Optional[Callable[..., RetryConfig]] = None) -> Callable:
    """Decorator for retrying async functions on ``exceptions``.

    ``config_getter`` receives the decorated call's arguments and returns
    the config to use, which lets methods read it from their instance.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"gate.retry.{func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            active = config_getter(*args, **kwargs) if config_getter else (config or RetryConfig())
            attempts = max(1, active.max_attempts)

            for attempt in range(1, attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        logger.error(
                            "All retry attempts exhausted",
                            attempt=attempt,
                            function=func.__name__,
                            error=str(e)
                        )
                        raise RetryError(
                            f"Function {func.__name__} failed after {attempts} attempts",
                            last_exception=e,
                            attempts=attempts
                        ) from e

                    delay = calculate_delay(attempt, active)
                    logger.warning(
                        "Retry attempt failed, waiting before next attempt",
                        attempt=attempt,
                        delay=delay,
                        function=func.__name__,
                        error=str(e)
                    )
                    await asyncio.sleep(delay)
                    continue

                if attempt > 1:
                    logger.info("Retry succeeded", attempt=attempt, function=func.__name__)
                return result

        return wrapper

    return decorator


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Exponential backoff with a cap and 10% jitter."""
    delay = min(config.base_delay * (config.exponential_base ** (attempt - 1)), config.max_delay)

    if config.jitter:
        jitter_amount = delay * 0.1
        delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.0, delay)
