import os
import time
import threading
import yaml
from pathlib import Path
from contextlib import contextmanager
from typing import Dict, Optional

CONFIG_PATH = Path(os.getenv("RATE_LIMITS_CONFIG", "configs/rate_limits.yaml"))
DEFAULTS = {"max_concurrent": 100}

class SlidingWindowLimiter:
    def __init__(self, rate_per_sec: float, burst: int):
        self.rate = rate_per_sec
        self.capacity = burst
        self.tokens = burst
        self.lock = threading.Lock()
        self.last = time.monotonic()

    @contextmanager
    def __call__(self):
        with self.lock:
            now = time.monotonic()
            elapsed = now - self.last
            self.last = now
            # refill
            self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
            if self.tokens < 1:
                # wait until we have at least 1 token
                needed = 1 - self.tokens
                time.sleep(needed / self.rate)
                self.tokens = 1
                self.last = time.monotonic()
            # consume
            self.tokens -= 1
        yield

class ConcurrencyLimiter:
    """
    Caps simultaneous outbound requests across every run in the process.

    Callers over the cap block until a slot frees up; requests are queued,
    never rejected. When rate_per_sec is set, admitted requests are also paced
    through a token bucket.
    """

    def __init__(self, max_concurrent: int, rate_per_sec: Optional[float] = None, burst: int = 1):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._lock = threading.Lock()
        self._pacer = SlidingWindowLimiter(rate_per_sec, burst) if rate_per_sec else None
        self.in_flight = 0
        self.waiting = 0

    @contextmanager
    def __call__(self):
        with self._lock:
            self.waiting += 1
        self._slots.acquire()
        with self._lock:
            self.waiting -= 1
            self.in_flight += 1
        try:
            if self._pacer is not None:
                with self._pacer():
                    pass
            yield
        finally:
            with self._lock:
                self.in_flight -= 1
            self._slots.release()

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "max_concurrent": self.max_concurrent,
                "in_flight": self.in_flight,
                "waiting": self.waiting,
            }

def _load_config():
    if not CONFIG_PATH.exists():
        return {}
    return yaml.safe_load(CONFIG_PATH.read_text()) or {}

_limiters: Dict[str, ConcurrencyLimiter] = {}
_limiters_lock = threading.Lock()

def get_limiter(name: str) -> ConcurrencyLimiter:
    # one limiter per name for the life of the process; config is read on first use
    with _limiters_lock:
        if name not in _limiters:
            cfg = {**DEFAULTS, **(_load_config().get(name) or {})}
            _limiters[name] = ConcurrencyLimiter(
                cfg["max_concurrent"],
                rate_per_sec=cfg.get("rate_per_sec"),
                burst=cfg.get("burst", 1),
            )
        return _limiters[name]
