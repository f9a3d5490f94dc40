"""Retry policy for the transactional execution wrapper.

Only :meth:`DataContext.execute_transaction` retries. Plain CRUD calls surface
every failure to the caller on the first attempt.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError

from workoffice_persistence.exceptions import StoreUnavailableError

DEFAULT_MAX_RETRY_COUNT = 10
DEFAULT_MAX_RETRY_DELAY = 1.0


def is_transient_error(exc: BaseException) -> bool:
    """Return True if *exc* is likely to succeed when the unit of work is re-run.

    Connectivity failures qualify; constraint violations, concurrency conflicts
    and caller errors do not.
    """
    if isinstance(exc, StoreUnavailableError):
        return True
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for whole-transaction retries.

    Attributes:
        max_retry_count: Retries after the first attempt (0 disables retrying).
        max_retry_delay: Upper bound, in seconds, for a single backoff delay.
        base_delay: Delay before the first retry, in seconds.
        exponential_base: Multiplier applied to the delay after each retry.
    """

    max_retry_count: int = DEFAULT_MAX_RETRY_COUNT
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    base_delay: float = 0.05
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_retry_count < 0:
            raise ValueError(f"max_retry_count must be >= 0, got {self.max_retry_count}")
        if self.max_retry_delay < 0:
            raise ValueError(f"max_retry_delay must be >= 0, got {self.max_retry_delay}")

    @property
    def max_attempts(self) -> int:
        return self.max_retry_count + 1

    def delay_for(self, retry_number: int) -> float:
        """Return the backoff delay before retry *retry_number* (1-based)."""
        delay = self.base_delay * (self.exponential_base ** (retry_number - 1))
        return min(delay, self.max_retry_delay)


NO_RETRY = RetryPolicy(max_retry_count=0)
