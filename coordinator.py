"""
Sum Club Predictor — Feed Coordinator
The one runtime context object: history manager, last-seen session, the
capped display history and the poll thread. Built once at startup and
handed to the HTTP layer and the dashboard.
"""

import threading
import time
from collections import deque
from typing import Callable, Optional

import config
from feed_client import FeedError, fetch_records
from features import format_pattern, pattern_summary
from history_manager import HistoryManager, ManagerState
from logger import log, log_error, log_heartbeat, log_new_session, log_prediction
from models import OutcomeRecord

PLACEHOLDER_RESULT = "waiting for data..."


class FeedCoordinator:
    """Polls the feed and drives the HistoryManager with new sessions."""

    def __init__(self, manager: Optional[HistoryManager] = None,
                 fetch: Callable[[], list[OutcomeRecord]] = fetch_records,
                 poll_interval: float = None,
                 display_limit: int = None):
        self.manager = manager or HistoryManager(config=config.ensemble_config())
        self._fetch = fetch
        self.poll_interval = poll_interval or config.POLL_INTERVAL
        self._lock = threading.Lock()

        # Display copy only; the manager keeps the full history
        self._display: deque = deque(maxlen=display_limit or config.DISPLAY_HISTORY_LIMIT)
        self.last_session_id: Optional[int] = None

        # Push targets (Socket.IO, dashboard)
        self._listeners: list[Callable[[dict], None]] = []

        # Threading
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Stats
        self.polls = 0
        self.errors = 0
        self.last_poll: Optional[float] = None
        self.last_error: str = ""
        self._last_heartbeat = 0.0

    # ── Listeners ───────────────────────────────────────────────────────

    def add_listener(self, callback: Callable[[dict], None]):
        """Register a callback that receives prediction_payload() after each update."""
        self._listeners.append(callback)

    def _notify(self):
        payload = self.prediction_payload()
        for callback in list(self._listeners):
            try:
                callback(payload)
            except Exception as e:
                log_error("listener", e)

    # ── Polling ─────────────────────────────────────────────────────────

    def poll_once(self) -> int:
        """Fetch once and apply anything new. Returns the number of sessions applied."""
        self.polls += 1
        self.last_poll = time.time()
        try:
            records = self._fetch()
        except FeedError as e:
            self.errors += 1
            self.last_error = str(e)
            log_error("feed fetch", e)
            return 0

        if not records:
            log.warning("Feed returned no sessions")
            return 0

        if self.manager.state is ManagerState.UNINITIALIZED:
            prediction = self.manager.initialize(records)
            with self._lock:
                self._display.extend(records)
                self.last_session_id = records[-1].session_id
            log_prediction(self.last_session_id + 1, prediction)
            log.info(f"Initial load: {len(records)} sessions")
            self._notify()
            return len(records)

        fresh = [r for r in records if r.session_id > self.last_session_id]
        if not fresh:
            log.debug(f"No new session. Last session: {self.last_session_id}")
            return 0

        for record in fresh:
            prediction = self.manager.append_record(record)
            with self._lock:
                self._display.append(record)
                self.last_session_id = record.session_id
            log_new_session(record, prediction)

        log.info(f"Applied {len(fresh)} new session(s). Last session: {self.last_session_id}")
        self._notify()
        return len(fresh)

    def _run(self):
        while True:
            try:
                self.poll_once()
            except Exception as e:
                self.errors += 1
                self.last_error = str(e)
                log_error("poll loop", e)

            now = time.time()
            if now - self._last_heartbeat >= config.HEARTBEAT_INTERVAL:
                self._last_heartbeat = now
                log_heartbeat(len(self.manager.history), self.last_session_id,
                              self.polls, self.errors)

            if self._stop.wait(self.poll_interval):
                break

    def start(self):
        """Start polling in a background thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="feed-poll")
        self._thread.start()
        log.info(f"Polling {config.FEED_URL} every {self.poll_interval:g}s")

    def stop(self, timeout: float = 5.0):
        """Stop the poll thread."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
        log.info("Feed polling stopped")

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    # ── Read models ─────────────────────────────────────────────────────

    def latest_record(self) -> Optional[OutcomeRecord]:
        with self._lock:
            return self._display[-1] if self._display else None

    def display_history(self) -> list[OutcomeRecord]:
        """Display history, newest first."""
        with self._lock:
            return sorted(self._display, key=lambda r: r.session_id, reverse=True)

    def prediction_payload(self) -> dict:
        """Body of GET /api/prediction and of the Socket.IO push."""
        last = self.latest_record()
        prediction = self.manager.current_prediction()
        summary = pattern_summary(self.manager.history)

        if last is None or prediction is None:
            return {
                "id": config.SERVICE_NAME,
                "previous_session": None,
                "dice": None,
                "total": None,
                "result": PLACEHOLDER_RESULT,
                "pattern": summary["last_15"],
                "current_session": None,
                "prediction": "none",
                "confidence": "0%",
            }

        return {
            "id": config.SERVICE_NAME,
            "previous_session": last.session_id,
            "dice": list(last.dice),
            "total": last.total,
            "result": last.result,
            "pattern": format_pattern(summary),
            "current_session": last.session_id + 1,
            "prediction": prediction.display,
            "confidence": f"{prediction.confidence * 100:.0f}%",
        }
