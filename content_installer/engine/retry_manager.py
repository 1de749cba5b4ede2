# Path: content_installer/engine/retry_manager.py
"""
Retry Manager

Exponential backoff retry logic for transient fetch failures.

Architecture:
- tenacity AsyncRetrying drives the attempt loop
- Exponential backoff: delay = base_delay * 2^(attempt-1), capped, plus jitter
- Retryable vs fatal error classification (5xx/connection vs 4xx)
- Injectable sleep so callers (and tests) control waiting
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from content_installer.core.logger import get_logger
from content_installer.core.config_loader import ConfigLoader
from content_installer.core.exceptions import FetchError
from content_installer.constants import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RETRY_JITTER,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'engine')


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    Example:
        manager = RetryManager(config=config)

        async def attempt():
            return await handler.get(url, part_path)

        result = await manager.retry_async(attempt)
        print(manager.last_attempts)
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        jitter: Optional[float] = None,
        config: Optional[ConfigLoader] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        """
        Initialize retry manager.

        Args:
            max_attempts: Total attempts including the first (from config if None)
            base_delay: First retry delay in seconds (from config if None)
            max_delay: Maximum retry delay cap (from config if None)
            jitter: Maximum random seconds added to each delay (from config if None)
            config: Optional ConfigLoader instance
            sleep: Coroutine used to wait between attempts (asyncio.sleep by default)
        """
        self.config = config if config else ConfigLoader()

        self.max_attempts = max_attempts if max_attempts is not None else \
            self.config.get('retry_attempts', DEFAULT_RETRY_ATTEMPTS)

        self.base_delay = base_delay if base_delay is not None else \
            self.config.get('retry_delay', DEFAULT_RETRY_DELAY)

        self.max_delay = max_delay if max_delay is not None else \
            self.config.get('max_retry_delay', DEFAULT_MAX_RETRY_DELAY)

        self.jitter = jitter if jitter is not None else \
            self.config.get('retry_jitter', DEFAULT_RETRY_JITTER)

        self.sleep = sleep if sleep is not None else asyncio.sleep
        self.last_attempts = 0

    def calculate_delay(self, attempt: int) -> float:
        """
        Backoff before the retry that follows a failed attempt (jitter excluded).

        Args:
            attempt: Failed attempt number (1-based)

        Returns:
            Delay in seconds
        """
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    @staticmethod
    def is_retryable_error(error: BaseException) -> bool:
        """
        Determine if error is transient.

        Args:
            error: Exception to check

        Returns:
            True if error should trigger retry
        """
        if isinstance(error, FetchError):
            return error.retryable

        return isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError))

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"{LOG_PROCESS} Attempt {retry_state.attempt_number}/{self.max_attempts} failed: "
            f"{error}. Retrying in {delay:.1f}s..."
        )

    async def retry_async(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        **kwargs
    ) -> Any:
        """
        Execute async function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result of successful execution

        Raises:
            The last exception when it is not retryable or attempts are exhausted
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, max=self.max_delay)
            + wait_random(0, self.jitter),
            retry=retry_if_exception(self.is_retryable_error),
            before_sleep=self._log_retry,
            sleep=self.sleep,
            reraise=True,
        )

        self.last_attempts = 0
        result = None

        try:
            async for attempt in retrying:
                with attempt:
                    self.last_attempts = attempt.retry_state.attempt_number
                    result = await func(*args, **kwargs)
        except Exception as e:
            if self.is_retryable_error(e):
                logger.error(f"All retries exhausted after {self.last_attempts} attempts: {e}")
            else:
                logger.error(f"Non-retryable error: {e}")
            raise

        if self.last_attempts > 1:
            logger.info(f"{LOG_PROCESS} Retry succeeded on attempt {self.last_attempts}")

        return result


__all__ = ['RetryManager']
