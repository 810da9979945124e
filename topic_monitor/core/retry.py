from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from time import time
from typing import Awaitable, Callable, TypeVar

from topic_monitor.core.errors import RemoteClassifierError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_s: float = 1.0
    factor: float = 2.0

    def delay_for(self, failures: int) -> float:
        return self.base_delay_s * (self.factor ** max(0, failures - 1))


class ConnectivityGuard:
    """
    Connection-level retry state for one remote collaborator.

    A failed call never blocks or retries the work it carried. It opens a back-off
    window during which further calls are skipped; after `max_attempts` consecutive
    failures (or one permanent failure) the guard degrades for good.

    Calls in flight together share one attempt: each call remembers the attempt it
    started in, and once a failure has been counted for that attempt the other
    failures from it are ignored.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        clock: Callable[[], float] = time,
        on_degraded: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._on_degraded = on_degraded
        self.consecutive_failures = 0
        self.attempt = 0
        self.retry_at = 0.0
        self.degraded = False
        self.degraded_reason: str | None = None

    def available(self) -> bool:
        return not self.degraded and self._clock() >= self.retry_at

    async def call(self, fn: Callable[[], Awaitable[T]], *, timeout_s: float | None = None) -> T | None:
        if not self.available():
            return None
        attempt = self.attempt
        try:
            if timeout_s:
                result = await asyncio.wait_for(fn(), timeout=timeout_s)
            else:
                result = await fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._record_failure(e, attempt)
            return None
        if attempt == self.attempt:
            self.consecutive_failures = 0
            self.retry_at = 0.0
        return result

    async def _record_failure(self, exc: Exception, attempt: int) -> None:
        if self.degraded:
            return
        permanent = isinstance(exc, RemoteClassifierError) and not exc.transient
        if attempt != self.attempt and not permanent:
            logger.debug("ignoring failure from attempt %d, already counted: %s", attempt, exc)
            return
        self.attempt += 1
        self.consecutive_failures += 1
        if permanent or self.consecutive_failures >= self.policy.max_attempts:
            self.degraded = True
            self.degraded_reason = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "remote connection degraded after %d failure(s): %s",
                self.consecutive_failures,
                self.degraded_reason,
            )
            if self._on_degraded is not None:
                await self._on_degraded(self.degraded_reason)
            return
        delay = self.policy.delay_for(self.consecutive_failures)
        self.retry_at = self._clock() + delay
        logger.warning(
            "remote call failed (%d/%d), backing off %.1fs: %s",
            self.consecutive_failures,
            self.policy.max_attempts,
            delay,
            exc,
        )
