"""
Time and operation limits for a rebuild.
"""
from __future__ import annotations

import time
from typing import Callable

from ..conf import get_setting
from .exceptions import RebuildOperationLimitExceeded, RebuildTimeout


class RebuildBudget:
    """
    Counts the store operations of one rebuild and enforces its limits.

    Each phase calls ``charge()`` before it touches the database. When the
    deadline has passed or the operation limit is used up, ``charge()`` raises,
    which aborts the surrounding transaction. Nothing is ever silently cut short.
    """

    def __init__(
        self,
        timeout: float | None,
        max_operations: int | None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.max_operations = max_operations
        self._clock = clock
        self.started = clock()
        self.operations = 0

    @classmethod
    def from_settings(cls) -> RebuildBudget:
        return cls(
            timeout=get_setting("REBUILD_TIMEOUT"),
            max_operations=get_setting("REBUILD_MAX_OPERATIONS"),
        )

    @classmethod
    def unbounded(cls) -> RebuildBudget:
        return cls(timeout=None, max_operations=None)

    @property
    def elapsed(self) -> float:
        return self._clock() - self.started

    def charge(self, phase: str, subject: str | None = None, count: int = 1) -> None:
        """
        Record `count` operations for `phase`, raising if a limit is exceeded.
        """
        self.operations += count
        if self.max_operations is not None and self.operations > self.max_operations:
            raise RebuildOperationLimitExceeded(self.max_operations, phase=phase, subject=subject)
        if self.timeout is not None:
            elapsed = self.elapsed
            if elapsed > self.timeout:
                raise RebuildTimeout(elapsed, self.timeout, phase=phase, subject=subject)
