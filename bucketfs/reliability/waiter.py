"""
Eventual-Consistency Waiter: bounded read-after-write polling

A just-written object may not be visible to HEAD requests yet. The waiter
polls existence at a fixed interval:
- Succeeds as soon as the object is observed
- Retries "not yet visible" and transient backend failures
- Reports exhaustion (or an unexpected failure) as False, never raises

Defaults: 10 attempts, 1 second apart.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from bucketfs.core.constants import WAITER_DELAY_SECONDS, WAITER_MAX_ATTEMPTS
from bucketfs.core.errors import BackendTransientError, ConfigurationError
from bucketfs.storage.protocols import ObjectStoreProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WaitPolicy:
    """Polling bounds."""

    max_attempts: int = WAITER_MAX_ATTEMPTS
    delay_seconds: float = WAITER_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError.invalid_setting(
                "max_attempts", self.max_attempts, "must be >= 1"
            )
        if self.delay_seconds < 0:
            raise ConfigurationError.invalid_setting(
                "delay_seconds", self.delay_seconds, "must be >= 0"
            )

    @classmethod
    def default(cls) -> WaitPolicy:
        return cls()

    @classmethod
    def immediate(cls) -> WaitPolicy:
        """Single check, no waiting."""
        return cls(max_attempts=1, delay_seconds=0.0)


@dataclass
class WaitStats:
    """Waiter statistics."""
    waits: int = 0
    confirmed: int = 0
    timed_out: int = 0
    polls: int = 0
    transient_errors: int = 0


class ConsistencyWaiter:
    """
    Polls `head_object` until a key is visible.

    Usage:
        waiter = ConsistencyWaiter(store)
        if waiter.wait_until_visible("s3fs-public/a.jpg"):
            metadata = store.head_object("s3fs-public/a.jpg").unwrap()
    """

    __slots__ = ("_store", "_policy", "_sleep", "_stats")

    def __init__(
        self,
        store: ObjectStoreProtocol,
        policy: Optional[WaitPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._policy = policy or WaitPolicy.default()
        self._sleep = sleep
        self._stats = WaitStats()

    @property
    def policy(self) -> WaitPolicy:
        return self._policy

    @property
    def stats(self) -> WaitStats:
        return self._stats

    def wait_until_visible(
        self,
        key: str,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ) -> bool:
        """
        Poll until `key` exists.

        Args:
            key: Object key to confirm.
            max_attempts: Override of the policy attempt bound.
            delay_seconds: Override of the policy delay.

        Returns:
            True once observed; False after exhausting attempts or on a
            non-transient backend failure.
        """
        attempts = max_attempts if max_attempts is not None else self._policy.max_attempts
        delay = delay_seconds if delay_seconds is not None else self._policy.delay_seconds
        self._stats.waits += 1

        for attempt in range(1, attempts + 1):
            self._stats.polls += 1
            result = self._store.head_object(key)

            if result.is_ok():
                metadata = result.unwrap()
                if metadata is not None:
                    self._stats.confirmed += 1
                    return True
                logger.debug(
                    "Object not yet visible",
                    extra={"key": key, "attempt": attempt, "max_attempts": attempts},
                )
            elif isinstance(result.error, BackendTransientError):
                self._stats.transient_errors += 1
                logger.debug(
                    "Transient failure while waiting for object",
                    extra={"key": key, "attempt": attempt, "error": str(result.error)},
                )
            else:
                logger.warning(
                    "Backend failure while waiting for object",
                    extra={"key": key, "attempt": attempt, "error": str(result.error)},
                )
                return False

            if attempt < attempts:
                self._sleep(delay)

        self._stats.timed_out += 1
        logger.warning(
            "Object did not become visible",
            extra={"key": key, "max_attempts": attempts, "delay_seconds": delay},
        )
        return False
