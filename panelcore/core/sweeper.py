from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from panelcore.core.config import SweepConfig


class Sweeper:
    """
    Background ticker that drives session and lock expiry.

    Both cleanup calls are throttled by their managers, so the tick only needs to be
    frequent enough for the shorter cleanup interval.
    """

    def __init__(self, *, session_manager: Any, lock_manager: Any, cfg: Optional[SweepConfig] = None, logger: Optional[logging.Logger] = None):
        self.session_manager = session_manager
        self.lock_manager = lock_manager
        self.cfg = cfg or SweepConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="panel-sweeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> None:
        # Sessions first: removing a session releases its locks before the lock sweep runs.
        try:
            self.session_manager.cleanup_expired_sessions()
        except Exception as e:  # noqa: BLE001
            self.logger.warning(f"Session sweep error: {e}")
        try:
            self.lock_manager.cleanup_expired_locks()
        except Exception as e:  # noqa: BLE001
            self.logger.warning(f"Lock sweep error: {e}")

    def _loop(self) -> None:
        interval = max(0.01, float(self.cfg.tick_ms) / 1000.0)
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(interval)
