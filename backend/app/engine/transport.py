"""
Wall-clock bounded HTTP reads.

requests applies its timeout to the connect and to each gap between reads,
not to the whole response, so a trickling upstream could hold a call open
indefinitely. Bodies are streamed instead and the budget is checked between
chunks; a set cancel event aborts the read in progress.
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

import requests

from app.engine.errors import ResolveCancelled

MIN_TIMEOUT = 0.001  # seconds; requests rejects a zero timeout

# Single bytes, so one blocking read never waits on more than one socket gap
READ_CHUNK_SIZE = 1


class BodyReadTimeout(requests.Timeout):
    """The response body did not finish arriving within the budget."""


@dataclass(frozen=True)
class Budget:
    """Time and cancellation limits shared by every call in one resolve."""

    expires_at: float
    clock: Callable[[], float] = time.monotonic
    cancel_event: Optional[threading.Event] = None

    @classmethod
    def starting_now(
        cls,
        seconds: float,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: Optional[threading.Event] = None,
    ) -> "Budget":
        return cls(expires_at=clock() + seconds, clock=clock, cancel_event=cancel_event)

    def remaining(self) -> float:
        return self.expires_at - self.clock()

    def expired(self) -> bool:
        return self.remaining() <= 0

    def timeout(self) -> float:
        return max(MIN_TIMEOUT, self.remaining())

    def narrowed(self, seconds: float) -> "Budget":
        """Same budget, ending no later than `seconds` from now."""
        return replace(self, expires_at=min(self.expires_at, self.clock() + seconds))

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ResolveCancelled("Request was cancelled by the caller.")


def read_text(response: requests.Response, budget: Budget) -> str:
    """
    Read a streamed response body within the budget and close the response.

    Raises:
        requests.HTTPError: non-success status
        BodyReadTimeout: the budget ran out while the body was still arriving
        ResolveCancelled: the budget's cancel event was set
    """
    chunks = []
    try:
        response.raise_for_status()
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            budget.check_cancelled()
            if budget.expired():
                raise BodyReadTimeout(
                    f"Response body still arriving after {len(chunks)} bytes."
                )
            chunks.append(chunk)
    finally:
        response.close()

    return b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
