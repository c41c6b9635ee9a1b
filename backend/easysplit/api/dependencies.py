"""
Request dependencies shared by route modules.
"""
import logging
import threading
import time
from typing import Dict, Tuple
from fastapi import HTTPException, Request, status
from easysplit.core.config import settings
from easysplit.services.code_service import is_valid_code_length

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """
    Allow at most ``max_requests`` per client address in each fixed window.

    Used as a FastAPI dependency on code lookups, since possessing a code is
    the only access control.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def hit(self, key: str) -> float:
        """Record a request. Returns 0 if allowed, else seconds until the window resets."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                return self.window_seconds - (now - started)
            self._windows[key] = (started, count + 1)
            return 0

    def _sweep(self, now: float) -> None:
        """Forget clients whose window has expired. Caller holds the lock."""
        self._windows = {
            key: window for key, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_sweep = now

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        retry_after = self.hit(client)
        if retry_after:
            logger.warning("Rate limit exceeded for %s on %s", client, request.url.path)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests, please try again later",
                headers={"Retry-After": str(max(1, int(retry_after + 0.999)))},
            )


lookup_rate_limiter = FixedWindowRateLimiter(
    settings.RATE_LIMIT_REQUESTS,
    settings.RATE_LIMIT_WINDOW_SECONDS,
)


def valid_code(code: str) -> str:
    """Path code normalised to uppercase; 400 when its length cannot be a share code."""
    code = code.strip().upper()
    if not is_valid_code_length(code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Code must be 6 to 8 characters"
        )
    return code
