# triproute/api/deadline.py
"""Overall time budget shared by every external call of one request."""

from __future__ import annotations

import time
from typing import Callable, Optional

from triproute.api.errors import DeadlineExceededError


class Deadline:
    """Caps per-call timeouts at whatever is left of the caller's budget.

    ``Deadline(None)`` never expires, so code can always call
    ``timeout_for`` without checking whether a deadline was supplied.
    """

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + float(seconds)

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return self._expires_at - self._clock()

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceededError()

    def timeout_for(self, default: float) -> float:
        """Timeout to use for the next external call, or raise if none is left."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if remaining <= 0:
            raise DeadlineExceededError()
        return min(default, remaining)


NO_DEADLINE = Deadline(None)
