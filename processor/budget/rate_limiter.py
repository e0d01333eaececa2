"""
Rate Limiter - Fixed windows keyed by caller-chosen names.

A window opens on the first call for a key and is replaced wholesale once
it has been open longer than `window_ms`. Independent of cost: the budget
ledger limits tokens, this limits call frequency.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import settings as app_settings, Settings

NEWS_FETCH_KEY = "news_fetch"
AI_REQUEST_KEY = "ai_request"

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


@dataclass
class RateWindow:
    window_start: float    # epoch ms
    count: int


@dataclass
class RateDecision:
    allowed: bool
    retry_after_ms: Optional[int] = None


class RateLimiter:
    """Thread-safe per-key call counter."""

    def __init__(self, clock: Callable[[], float] = time.time, settings: Optional[Settings] = None):
        self._clock = clock
        self.settings = settings or app_settings
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def allow(self, key: str, max_per_window: int, window_ms: int) -> RateDecision:
        """
        Count one call against `key`.

        Returns:
            RateDecision; when denied, `retry_after_ms` is the time left in
            the current window
        """
        now = self._now_ms()
        with self._lock:
            window = self._windows.get(key)

            if window is None or now - window.window_start > window_ms:
                self._windows[key] = RateWindow(window_start=now, count=1)
                return RateDecision(allowed=True)

            if window.count >= max_per_window:
                retry_after = window_ms - (now - window.window_start)
                return RateDecision(allowed=False, retry_after_ms=max(0, int(retry_after)))

            window.count += 1
            return RateDecision(allowed=True)

    def can_fetch_news(self) -> RateDecision:
        return self.allow(NEWS_FETCH_KEY, self.settings.NEWS_FETCHES_PER_HOUR, HOUR_MS)

    def can_make_ai_request(self) -> RateDecision:
        return self.allow(AI_REQUEST_KEY, self.settings.AI_CALLS_PER_MINUTE, MINUTE_MS)

    def reset(self, key: Optional[str] = None) -> None:
        """Drop one key's window, or all windows."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
