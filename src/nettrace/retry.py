"""
Retry policy shared by the protocol drivers.

Backoff state lives in each call; a RetryManager can be shared freely
between concurrent operations.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .errors import ErrorCode, ErrorType, NetTraceError, is_retryable
from .log import FieldLogger, get_logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
MAX_RETRY_DELAY = 30.0  # seconds


class RetryStrategy(str, Enum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


class RetryManager:
    """
    Runs an operation up to max_attempts times with backoff between attempts.

    Non-retryable failures (see errors.is_retryable) propagate immediately.
    Once attempts are exhausted a network-typed NetTraceError is raised
    carrying the last failure as its cause.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        strategy: RetryStrategy = RetryStrategy.EXPONENTIAL,
        max_delay: float = MAX_RETRY_DELAY,
        retryable: Callable[[BaseException], bool] = is_retryable,
        logger: Optional[FieldLogger] = None,
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.strategy = strategy
        self.max_delay = max_delay
        self._retryable = retryable
        self._logger = logger or get_logger(__name__)

    def delay_for(self, attempt: int) -> float:
        """
        Delay to wait after the given failed attempt (1-based).

        Exponential: base * 2^(attempt-1), linear: base * attempt,
        fixed: base. Always capped at max_delay.
        """
        if self.strategy == RetryStrategy.EXPONENTIAL:
            delay = self.base_delay * (2 ** (attempt - 1))
        elif self.strategy == RetryStrategy.LINEAR:
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay
        return min(delay, self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str = "operation",
        exhausted_code: ErrorCode = ErrorCode.RETRY_EXHAUSTED,
        context: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """
        Await operation() until it succeeds or attempts run out.

        Args:
            operation: Zero-argument factory returning a fresh awaitable per attempt
            operation_name: Name used in log lines and the final error message
            exhausted_code: Code of the error raised once attempts are exhausted
            context: Context attached to the final error
            timeout: Optional per-attempt timeout in seconds

        Returns:
            The operation's result
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                if timeout is not None:
                    return await asyncio.wait_for(operation(), timeout=timeout)
                return await operation()
            except Exception as e:
                if not self._retryable(e):
                    raise
                last_error = e
                self._logger.debug(
                    f"{operation_name} attempt failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=repr(e),
                )

            if attempt < self.max_attempts:
                await asyncio.sleep(self.delay_for(attempt))

        error_context = dict(context or {})
        error_context["attempts"] = self.max_attempts
        raise NetTraceError(
            message=f"{operation_name} failed after {self.max_attempts} attempts",
            error_type=ErrorType.NETWORK,
            code=exhausted_code,
            cause=last_error,
            context=error_context,
        )
