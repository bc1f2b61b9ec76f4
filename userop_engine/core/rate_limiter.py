# /userop_engine/core/rate_limiter.py
import time
from collections import deque
from typing import Callable, Deque, Dict

from userop_engine.core.logger import get_logger

log = get_logger(__name__)


class RateLimiter:
    """
    Per-chain sliding-window admission control.

    Each chain keeps the timestamps of grants still inside the trailing window.
    A request is granted only while fewer than ``max_requests`` grants survive.
    State is process-local; separate instances never share limits.
    """
    def __init__(self, window_secs: float, max_requests: int, clock: Callable[[], float] = time.monotonic):
        if window_secs <= 0 or max_requests <= 0:
            raise ValueError("window_secs and max_requests must be positive")
        self.window = window_secs
        self.max_requests = max_requests
        self._clock = clock
        self._grants: Dict[int, Deque[float]] = {}

    async def admit(self, chain_id: int) -> bool:
        """Records and grants a request for ``chain_id`` if the window has room."""
        # No await between purge and append: same-chain callers on the event
        # loop always observe a consistent count.
        now = self._clock()
        grants = self._grants.setdefault(chain_id, deque())
        while grants and now - grants[0] >= self.window:
            grants.popleft()

        if len(grants) >= self.max_requests:
            log.debug("RATE_LIMIT_DENIED", chain_id=chain_id, in_window=len(grants))
            return False
        grants.append(now)
        return True
