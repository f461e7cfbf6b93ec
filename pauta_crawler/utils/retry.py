"""
Retry logic and strategies for the pauta crawler.

RetryStrategy holds the arithmetic (attempt cap, delay growth), RetryPolicy
runs async operations against a strategy and calls a cleanup hook between
attempts, and with_retry decorates synchronous functions.
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryStrategy:
    """
    Configurable retry strategy.

    A backoff factor of 1.0 gives the fixed delay used by the navigation
    steps; any larger factor turns it into exponential backoff.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        backoff_factor: float = 1.0,
        max_delay: float = 10.0,
        exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    ):
        """
        Initialize retry strategy.

        Args:
            max_attempts: Maximum number of attempts (including the first)
            initial_delay: Delay in seconds after the first failure
            backoff_factor: Multiplier applied to the delay per attempt
            max_delay: Maximum delay in seconds
            exceptions: Tuple of exception types to retry on
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.exceptions = exceptions

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)

    def should_retry(self, exception: BaseException) -> bool:
        """Check if an exception should trigger a retry."""
        return isinstance(exception, self.exceptions)


class RetryPolicy:
    """
    Bounded retry envelope for async session operations.

    On a retryable failure the cleanup hook runs (typically overlay
    dismissal), then the policy sleeps and tries again. After the last
    attempt the original exception is re-raised unchanged.

    Example:
        policy = RetryPolicy(RetryStrategy(max_attempts=5, initial_delay=1.2),
                             cleanup=overlay_guard.dismiss)
        await policy.run(lambda: session.click(selector), "open module")
    """

    def __init__(
        self,
        strategy: Optional[RetryStrategy] = None,
        cleanup: Optional[Callable[[], Awaitable[None]]] = None,
        reporter=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.strategy = strategy or RetryStrategy()
        self.cleanup = cleanup
        self.reporter = reporter
        self.sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "operation") -> T:
        """
        Run an operation under the policy.

        Args:
            operation: Zero-argument callable returning an awaitable
            description: Label used in log messages

        Returns:
            The operation's result

        Raises:
            The last exception once attempts are exhausted, or any
            non-retryable exception immediately.
        """
        attempts = self.strategy.max_attempts
        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as e:
                if not self.strategy.should_retry(e):
                    raise
                if self.reporter:
                    self.reporter.log_attempt(attempt + 1, attempts, e, description)
                else:
                    logger.warning(f"{description}: attempt {attempt + 1}/{attempts} failed: {e}")

                if attempt == attempts - 1:
                    raise

                if self.cleanup:
                    await self.cleanup()
                await self.sleep(self.strategy.calculate_delay(attempt))

        raise RuntimeError("Retry loop exited without result")


def with_retry(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 10.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None
) -> Callable:
    """
    Decorator for adding retry logic to synchronous functions.

    Args:
        max_attempts: Maximum number of attempts
        initial_delay: Initial delay in seconds
        backoff_factor: Exponential backoff multiplier
        max_delay: Maximum delay in seconds
        exceptions: Tuple of exception types to retry on
        on_retry: Optional callback function called on each retry

    Returns:
        Decorated function with retry logic
    """
    strategy = RetryStrategy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        backoff_factor=backoff_factor,
        max_delay=max_delay,
        exceptions=exceptions
    )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(strategy.max_attempts):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not strategy.should_retry(e):
                        logger.error(f"Non-retryable exception: {e}")
                        raise

                    if attempt == strategy.max_attempts - 1:
                        logger.error(f"All {strategy.max_attempts} attempts failed. Last error: {e}")
                        raise

                    delay = strategy.calculate_delay(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{strategy.max_attempts} failed: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    if on_retry:
                        on_retry(attempt + 1, e)
                    time.sleep(delay)

            raise RuntimeError("Retry logic failed without capturing exception")

        return wrapper

    return decorator
