import threading
import time
from typing import Optional

from app.core.errors import CancelledError, DeadlineExceededError


class RequestContext:
    """Cancellation and deadline of one inbound call.

    The transport creates one per call and may cancel it from another thread.
    """

    def __init__(self, deadline: Optional[float] = None):
        self.deadline = deadline  # time.monotonic() based
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> "RequestContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check(self) -> None:
        if self.cancelled:
            raise CancelledError("Request cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError("Request deadline exceeded")
