from __future__ import annotations

import sys
import threading
import time

from app.errors import NoRowsError
from app.services.quote_cache import QuoteCache


class QuoteRefresher:
    """Background refresh loop: fetch, publish, back off while not yet ready."""

    def __init__(
        self,
        *,
        cache: QuoteCache,
        fetcher,
        symbols: list[str],
        refresh_seconds: int = 60,
        elevate_after_failures: int = 5,
        startup_retry_cap_sec: int = 15,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.symbols = list(symbols)
        self.refresh_seconds = refresh_seconds
        self.elevate_after_failures = elevate_after_failures
        self.startup_retry_cap_sec = startup_retry_cap_sec
        self.attempts = 0
        self.consecutive_failures = 0
        self.last_error: str | None = None
        self.elevated = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics = {
            "runs": 0,
            "successes": 0,
            "failures": 0,
        }

    @property
    def provider(self) -> str:
        return str(getattr(self.fetcher, "name", type(self.fetcher).__name__))

    def next_sleep_seconds(self) -> int:
        if self.cache.ready:
            return self.refresh_seconds
        return min(self.startup_retry_cap_sec, 2 + self.attempts * 2)

    def _record_failure(self, exc: Exception) -> None:
        self.consecutive_failures += 1
        self._metrics["failures"] += 1
        self.last_error = str(exc)
        print(
            f"[STOCKS][refresh_error] provider={self.provider} "
            f"consecutive_failures={self.consecutive_failures} error={exc}",
            file=sys.stderr,
            flush=True,
        )
        if not self.cache.ready and self.consecutive_failures >= self.elevate_after_failures:
            self.cache.publish([], ts=time.monotonic())
            self.elevated = True
            print(
                "[STOCKS][elevate_empty] publishing empty snapshot after repeated failures",
                file=sys.stderr,
                flush=True,
            )

    def run_once(self) -> int:
        """Run one fetch/publish iteration and return the seconds to sleep next."""
        self._metrics["runs"] += 1
        try:
            quotes = self.fetcher.fetch_quotes(self.symbols)
            if not quotes:
                raise NoRowsError(f"{self.provider} returned an empty snapshot")
        except Exception as exc:
            self._record_failure(exc)
        else:
            self.cache.publish(quotes, ts=time.monotonic())
            self.attempts = 0
            self.consecutive_failures = 0
            self.last_error = None
            self._metrics["successes"] += 1
            print(f"[STOCKS][refresh_ok] provider={self.provider} count={len(quotes)}", flush=True)

        sleep_sec = self.next_sleep_seconds()
        self.attempts += 1
        return sleep_sec

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            sleep_sec = self.run_once()
            if self._stop_event.wait(sleep_sec):
                break

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="stocks-refresher")
        print(
            f"[STOCKS][refresher_start] provider={self.provider} refresh={self.refresh_seconds}s "
            f"symbols={','.join(self.symbols)}",
            flush=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
        print("[STOCKS][refresher_stop]", flush=True)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def metrics(self) -> dict:
        return {
            **self._metrics,
            "attempts": self.attempts,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
            "elevated": self.elevated,
            "ready": self.cache.ready,
        }
