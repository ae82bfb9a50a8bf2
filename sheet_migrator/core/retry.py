"""Retry logic for remote store calls with tenacity integration.

Provides:
- Exponential backoff with jitter
- Bounded attempts
- Retryable error filtering (transient vs permanent)
- Stricter filtering for non-idempotent requests
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .exceptions import RateLimitedError, TransientRemoteError
from .logging_config import get_remote_logger
from .settings import RetrySettings

T = TypeVar("T")

logger = get_remote_logger()


def is_retryable(error: BaseException, idempotent: bool = True) -> bool:
    """Decide whether a failed remote call may be attempted again.

    Non-idempotent requests are only retried when the store is known to have
    rejected them (rate limiting); an ambiguous failure may have been applied.
    """
    if not idempotent:
        return isinstance(error, RateLimitedError)
    return isinstance(error, TransientRemoteError)


class RetryManager:
    """Runs remote operations under bounded exponential backoff.

    Example:
        manager = RetryManager(RetrySettings(max_attempts=3))

        values = await manager.call(
            lambda: store.fetch(), label="values.get"
        )
    """

    def __init__(
        self,
        settings: RetrySettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or RetrySettings()
        self._sleep = sleep
        self.logger = logger.bind(component="retry_manager")

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        label: str,
        idempotent: bool = True,
    ) -> T:
        """Execute ``operation`` with retry.

        Args:
            operation: Zero-argument coroutine factory, invoked once per attempt
            label: Name used in retry log events
            idempotent: Whether replaying a possibly-applied call is harmless

        Returns:
            Result of the first successful attempt

        Raises:
            TransientRemoteError: When attempts are exhausted (last error re-raised)
            Exception: Any non-retryable error, immediately
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.initial_delay,
                max=self.settings.max_delay,
                exp_base=self.settings.exponential_base,
                jitter=self.settings.jitter,
            ),
            retry=retry_if_exception(lambda error: is_retryable(error, idempotent)),
            before_sleep=self._log_retry(label),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await operation()
        return result

    def _log_retry(self, label: str) -> Callable[[RetryCallState], None]:
        def before_sleep(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            self.logger.warning(
                "Retrying remote call",
                label=label,
                attempt=state.attempt_number,
                max_attempts=self.settings.max_attempts,
                delay=round(state.next_action.sleep, 3) if state.next_action else None,
                status_code=getattr(error, "status_code", None),
                error=str(error),
            )

        return before_sleep
