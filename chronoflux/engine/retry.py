"""
Retry controller for provider calls.

Wraps ``provider.generate`` plus a parser with bounded attempts and
exponential backoff. Errors flagged non-retryable (connectivity,
configuration, auth, quota) propagate on the first occurrence; anything else,
parse failures included, is retried after ``base_delay * 2 ** (attempt - 1)``
seconds.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from chronoflux.errors import is_retryable
from chronoflux.providers.base import BaseProvider
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


@dataclass
class RetryEvent:
    """Progress notification sent to the observer before each backoff wait"""

    attempt: int
    max_attempts: int
    error: Exception
    delay: float


@dataclass
class RetryResult(Generic[T]):
    """Outcome of a retried call: the value or the terminal error"""

    value: Optional[T] = None
    attempts: int = 0
    errors: List[Exception] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


RetryObserver = Callable[[RetryEvent], None]


class RetryController:
    """
    Bounded retry loop around ``generate`` + ``parse``.

    Args:
        provider: Provider used for every attempt
        max_attempts: Total attempts including the first
        base_delay: Delay in seconds before the second attempt
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        provider: BaseProvider,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_tokens: int = 2000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_tokens = max_tokens
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1))

    async def run(
        self,
        prompt: str,
        temperature: float,
        parse: Callable[[str], T],
        observer: Optional[RetryObserver] = None,
        label: str = "AI call",
    ) -> RetryResult[T]:
        """Attempt the call; never raises, the outcome is in the result"""
        result: RetryResult[T] = RetryResult()

        for attempt in range(1, self.max_attempts + 1):
            result.attempts = attempt
            try:
                raw = await self.provider.generate(
                    prompt, temperature=temperature, max_tokens=self.max_tokens
                )
                result.value = parse(raw)
                result.error = None
                if attempt > 1:
                    logger.warning(
                        f"[Retry] {label} required {attempt - 1} "
                        f"{'retry' if attempt == 2 else 'retries'}"
                    )
                return result
            except Exception as e:
                result.errors.append(e)
                result.error = e

                if not is_retryable(e):
                    logger.error(
                        f"[Retry] {label} failed with non-retryable {type(e).__name__}: {e}"
                    )
                    return result

                if attempt == self.max_attempts:
                    break

                delay = self.delay_for(attempt)
                logger.warning(
                    f"[Retry] {label} failed (attempt {attempt}/{self.max_attempts}): {e}",
                    extra={
                        "component": "Retry",
                        "attempt": attempt,
                        "delay": delay,
                        "error_type": type(e).__name__,
                    },
                )
                if observer is not None:
                    observer(
                        RetryEvent(
                            attempt=attempt,
                            max_attempts=self.max_attempts,
                            error=e,
                            delay=delay,
                        )
                    )
                await self._sleep(delay)

        logger.error(
            f"[Retry] {label} failed after {result.attempts} attempts: {result.error}"
        )
        return result

    async def with_retry(
        self,
        prompt: str,
        temperature: float,
        parse: Callable[[str], T],
        observer: Optional[RetryObserver] = None,
        label: str = "AI call",
    ) -> T:
        """Like ``run`` but returns the value or raises the last error"""
        result = await self.run(prompt, temperature, parse, observer, label)
        return result.unwrap()
