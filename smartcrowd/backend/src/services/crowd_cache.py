from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from models import CrowdReading, DensityLevel


class CrowdCache:
    """In-memory density readings keyed by spot id.

    Writes for the same id overwrite each other (last write wins). The lock
    only protects the dict structure when callers share the cache across
    threads.
    """

    def __init__(self, ttl_sec: float = 0.0, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._readings: Dict[str, CrowdReading] = {}
        self._lock = threading.Lock()
        self.ttl_sec = ttl_sec
        self._clock = clock or datetime.now

    def put(self, spot_id: str, density: DensityLevel, when: datetime) -> CrowdReading:
        reading = CrowdReading(density=density, last_updated=when)
        with self._lock:
            self._readings[spot_id] = reading
        return reading

    def get(self, spot_id: str) -> Optional[CrowdReading]:
        self._cleanup()
        with self._lock:
            return self._readings.get(spot_id)

    def all(self) -> Dict[str, CrowdReading]:
        self._cleanup()
        with self._lock:
            return dict(self._readings)

    def clear(self) -> None:
        with self._lock:
            self._readings.clear()

    def _cleanup(self) -> None:
        """Drop readings older than the TTL."""
        if not self.ttl_sec or self.ttl_sec <= 0:
            return
        cutoff = self._clock() - timedelta(seconds=self.ttl_sec)
        with self._lock:
            expired = [sid for sid, r in self._readings.items() if r.last_updated < cutoff]
            for sid in expired:
                del self._readings[sid]
