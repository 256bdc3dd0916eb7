from __future__ import annotations

import threading
import time

from app.schemas.quote import Quote


class QuoteCache:
    """Latest published quote snapshot plus its monotonic publication time.

    Written only by the refresher; read by request handlers. ``ready`` never
    goes back to False once set.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: tuple[Quote, ...] = ()
        self._published_at: float | None = None
        self._ready = threading.Event()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def publish(self, snapshot: list[Quote] | tuple[Quote, ...], ts: float | None = None) -> None:
        published_at = time.monotonic() if ts is None else ts
        with self._lock:
            self._snapshot = tuple(snapshot)
            self._published_at = published_at
            self._ready.set()

    def read(self) -> tuple[bool, tuple[Quote, ...], float | None]:
        if not self._ready.is_set():
            return False, (), None
        with self._lock:
            return True, self._snapshot, self._published_at


quote_cache = QuoteCache()
