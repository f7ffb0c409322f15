"""
FeedSentry Retry Logic
======================

Bounded retry with configurable backoff. Delays are taken through the
injected clock so backoff can be observed without waiting.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type

from ..utils.clock import Clock, SystemClock
from ..utils.exceptions import is_retryable_error
from ..utils.logging import get_logger_for_component


class RetryStrategy(Enum):
    """Different retry strategy types."""
    FIXED_DELAY = "fixed_delay"              # Fixed interval between retries
    LINEAR_BACKOFF = "linear"               # attempt * base_delay
    EXPONENTIAL_BACKOFF = "exponential"     # base_delay * base ** (attempt - 1)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    strategy: RetryStrategy = RetryStrategy.LINEAR_BACKOFF
    base_delay: float = 2.0
    max_delay: float = 60.0
    exponential_base: float = 2.0

    # Exceptions retried even when they are not FeedSentryError instances
    retry_on_exceptions: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)


class RetryManager:
    """Runs an operation until it succeeds or attempts run out."""

    def __init__(self, config: Optional[RetryConfig] = None, clock: Optional[Clock] = None):
        self.config = config or RetryConfig()
        self.clock = clock or SystemClock()
        self.logger = get_logger_for_component("retry_manager")

    async def retry_async(
        self,
        func: Callable[..., Any],
        *args,
        config: Optional[RetryConfig] = None,
        operation: Optional[str] = None,
        **kwargs,
    ) -> Any:
        """
        Retry an async function with the configured strategy.

        Args:
            func: Async (or plain) callable to retry
            *args: Function arguments
            config: Override default retry configuration
            operation: Name used in log lines (defaults to function name)
            **kwargs: Function keyword arguments

        Returns:
            Function result if successful

        Raises:
            The last exception if all attempts fail, or the first
            non-retryable exception
        """
        retry_config = config or self.config
        name = operation or getattr(func, "__name__", "operation")
        last_exception: Optional[BaseException] = None

        for attempt in range(1, retry_config.max_attempts + 1):
            try:
                result = func(*args, **kwargs)
                if inspect.isawaitable(result):
                    result = await result

                if attempt > 1:
                    self.logger.info(f"Retry successful for {name} on attempt {attempt}")
                return result

            except Exception as e:
                last_exception = e

                if not self._should_retry_exception(e, retry_config):
                    self.logger.info(f"Not retrying {name} due to non-retryable exception: {e}")
                    raise

                if attempt < retry_config.max_attempts:
                    delay = self.calculate_delay(attempt, retry_config)
                    self.logger.warning(
                        f"Attempt {attempt} failed for {name}: {e}. "
                        f"Retrying in {delay:.2f}s (attempt {attempt + 1}/{retry_config.max_attempts})"
                    )
                    await self.clock.sleep(delay)
                else:
                    self.logger.error(f"All {retry_config.max_attempts} attempts failed for {name}")

        raise last_exception

    def _should_retry_exception(self, exception: Exception, config: RetryConfig) -> bool:
        if isinstance(exception, config.retry_on_exceptions):
            return True
        return is_retryable_error(exception)

    def calculate_delay(self, attempt: int, config: Optional[RetryConfig] = None) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""
        config = config or self.config

        if config.strategy == RetryStrategy.FIXED_DELAY:
            delay = config.base_delay
        elif config.strategy == RetryStrategy.LINEAR_BACKOFF:
            delay = config.base_delay * attempt
        else:
            delay = config.base_delay * (config.exponential_base ** (attempt - 1))

        return min(delay, config.max_delay)
