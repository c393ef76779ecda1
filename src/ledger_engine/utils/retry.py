"""Retry helper for optimistic-concurrency loops."""

from __future__ import annotations

import time
from typing import Callable, Optional, Tuple, Type, TypeVar


T = TypeVar("T")


class RetryError(Exception):
    """Raised when retry attempts are exhausted."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.last_error = last_error


def retry(
    func: Callable[[], T],
    retries: int,
    backoff: float,
    exceptions: Tuple[Type[BaseException], ...],
) -> T:
    """Retry a callable with exponential backoff."""
    attempt = 0
    delay = backoff
    while True:
        try:
            return func()
        except exceptions as exc:
            attempt += 1
            if attempt > retries:
                raise RetryError(f"Failed after {retries} retries", last_error=exc) from exc
            time.sleep(delay)
            delay *= 2
