# dedupe/cache.py
import threading
from datetime import datetime, timedelta, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IdempotencyCache:
    """In-memory seen-set for webhook message ids, entries expire after ttl_seconds."""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.store: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _purge(self):
        now = _now()
        expired = [k for k, ts in self.store.items() if now - ts > self.ttl]
        for k in expired:
            del self.store[k]

    def check_and_mark(self, key: str) -> bool:
        """True if key was already seen; otherwise mark it and return False."""
        with self._lock:
            self._purge()
            if key in self.store:
                return True
            self.store[key] = _now()
            return False
