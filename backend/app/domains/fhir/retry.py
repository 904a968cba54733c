"""Reusable retry policy with exponential backoff."""
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

# Called with (attempt, error, delay_before_next_attempt or None when giving up)
AttemptCallback = Callable[[int, BaseException, float | None], None]


def _retry_everything(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy: attempt count, backoff function and retryable predicate.

    The delay before attempt ``n`` (n >= 2) is ``backoff_base * 2 ** (n - 2)``,
    i.e. ``delay_for(n - 1)``. The first attempt runs immediately.
    """
    max_attempts: int = 3
    backoff_base: float = 0.5  # seconds
    retryable: Callable[[BaseException], bool] = _retry_everything
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Delay applied after failed ``attempt`` and before the next one."""
        return self.backoff_base * 2 ** (attempt - 1)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        on_attempt_failed: AttemptCallback | None = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or the policy gives up.

        Non-retryable errors propagate immediately. After the last attempt the
        last error is re-raised unchanged.
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as e:
                give_up = attempt >= self.max_attempts or not self.retryable(e)
                delay = None if give_up else self.delay_for(attempt)
                if on_attempt_failed is not None:
                    on_attempt_failed(attempt, e, delay)
                if give_up:
                    raise
            await self.sleep(delay)
            attempt += 1
