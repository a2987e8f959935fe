from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from kelurahan_ai.ai_core.common.errors import RateWaitExceeded

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    최근 window_seconds 동안의 호출 수를 max_per_window 이하로 유지한다.

    Attributes:
        max_per_window (int): 윈도우당 최대 호출 수.
        window_seconds (float): 윈도우 길이(초).

    Example:
        >>> limiter = SlidingWindowRateLimiter(max_per_window=15, window_seconds=60)
        >>> waited = limiter.acquire()
    """

    def __init__(
        self,
        max_per_window: int = 15,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        @param max_per_window 윈도우당 최대 호출 수.
        @param window_seconds 윈도우 길이(초).
        @param clock 단조 증가 시계 (테스트 주입용).
        @param sleep 대기 함수 (테스트 주입용).
        @returns None
        """
        if max_per_window < 1:
            raise ValueError("max_per_window must be >= 1")
        self.max_per_window = int(max_per_window)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Any) -> "SlidingWindowRateLimiter":
        """
        @param settings RATE_LIMIT_PER_MINUTE 속성을 가진 설정 객체.
        @returns 분당 제한 리미터.
        """
        return cls(max_per_window=int(getattr(settings, "RATE_LIMIT_PER_MINUTE", 15)), window_seconds=60.0)

    def _prune(self, now: float) -> None:
        """
        @param now 현재 시각.
        @returns None
        """
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    def try_acquire(self) -> bool:
        """
        @returns 대기 없이 슬롯을 얻었는지 여부 (얻었으면 기록됨).
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._timestamps) < self.max_per_window:
                self._timestamps.append(now)
                return True
            return False

    def acquire(self, max_wait: Optional[float] = None) -> float:
        """
        슬롯이 날 때까지 기다린 뒤 호출을 기록한다. 대기는 락 밖에서 수행한다.

        @param max_wait 허용 대기 시간(초). 필요한 대기가 이를 넘으면 잠들지 않고 RateWaitExceeded.
        @returns 총 대기 시간(초).
        """
        waited = 0.0
        while True:
            with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.max_per_window:
                    self._timestamps.append(now)
                    break
                wait = self.window_seconds - (now - self._timestamps[0])
            wait = max(wait, 0.001)
            if max_wait is not None and waited + wait > max_wait:
                raise RateWaitExceeded(
                    f"속도 제한 대기 {waited + wait:.1f}s가 허용치 {max_wait:.1f}s를 넘음"
                )
            logger.info("요청 속도 제한 도달, 대기", extra={"wait_seconds": round(wait, 3)})
            self._sleep(wait)
            waited += wait
        return waited

    def snapshot(self) -> Dict[str, Any]:
        """
        @returns 현재 윈도우 사용량 정보.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            used = len(self._timestamps)
            reset_in = self.window_seconds - (now - self._timestamps[0]) if self._timestamps else 0.0
        return {
            "used": used,
            "limit": self.max_per_window,
            "remaining": max(0, self.max_per_window - used),
            "window_seconds": self.window_seconds,
            "reset_in_seconds": round(max(0.0, reset_in), 3),
        }
