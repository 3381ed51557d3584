"""
Sum Club Predictor — History Manager
Owns the append-only session history and the ensemble built on it.

Lifecycle:
  UNINITIALIZED --initialize(seed)--> READY --append_record()--> READY

All public methods take the same re-entrant lock, so the poll thread,
HTTP handlers and the terminal dashboard can share one instance.
"""

import threading
from enum import Enum
from typing import Optional, Sequence

from ensemble import MIN_FIT_RECORDS, EnsemblePredictor
from logger import log, log_fit
from models import EnsembleConfig, OutcomeRecord, PredictionResult
from strategies import ALL_STRATEGIES, Strategy

MIN_ADAPT_PREFIX = 3         # shorter prefixes are not scored online


class ManagerState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class HistoryManager:
    """Session history + adaptive ensemble + the standing prediction."""

    def __init__(self, strategies: Sequence[Strategy] = ALL_STRATEGIES,
                 config: Optional[EnsembleConfig] = None):
        self._lock = threading.RLock()
        self.ensemble = EnsemblePredictor(strategies, config)
        self.state = ManagerState.UNINITIALIZED
        self._history: list[OutcomeRecord] = []
        self._prediction: Optional[PredictionResult] = None
        self.updates_applied: int = 0

    # ── Lifecycle ───────────────────────────────────────────────────────

    def initialize(self, seed_records: Sequence[OutcomeRecord]) -> PredictionResult:
        """Load the seed history, fit and warm the weights, compute the first prediction."""
        seed = list(seed_records)
        if not seed:
            raise ValueError("initialize() needs at least one record")
        for prev, cur in zip(seed, seed[1:]):
            if cur.session_id <= prev.session_id:
                raise ValueError(
                    f"seed records must be session-ascending "
                    f"({prev.session_id} followed by {cur.session_id})"
                )

        with self._lock:
            if self.state is not ManagerState.UNINITIALIZED:
                raise RuntimeError("HistoryManager is already initialized")

            self._history = seed
            hits = self.ensemble.fit_initial(self._history)
            log_fit(len(self._history), hits, self.ensemble.weights.as_dict())

            # Replay the fit window through the online adapter to warm the EMA.
            window = self.ensemble.config.history_window
            start = max(MIN_FIT_RECORDS, len(self._history) - window)
            for i in range(start, len(self._history)):
                self.ensemble.update_with_outcome(self._history[:i], self._history[i].category)
                self.updates_applied += 1

            self._prediction = self.ensemble.predict(self._history)
            self.state = ManagerState.READY
            log.info(
                f"History loaded: {len(self._history)} sessions "
                f"(last={self._history[-1].session_id}), warm-up updates={self.updates_applied}"
            )
            return self._prediction

    def append_record(self, record: OutcomeRecord) -> PredictionResult:
        """Add one settled session, adapt the weights on it, re-predict."""
        with self._lock:
            if self.state is not ManagerState.READY:
                raise RuntimeError("append_record() called before initialize()")
            last = self._history[-1].session_id
            if record.session_id <= last:
                raise ValueError(
                    f"session {record.session_id} is not newer than last session {last}"
                )

            prefix = list(self._history)
            self._history.append(record)
            if len(prefix) >= MIN_ADAPT_PREFIX:
                self.ensemble.update_with_outcome(prefix, record.category)
                self.updates_applied += 1

            self._prediction = self.ensemble.predict(self._history)
            return self._prediction

    # ── Queries ─────────────────────────────────────────────────────────

    def current_prediction(self) -> Optional[PredictionResult]:
        with self._lock:
            return self._prediction

    @property
    def history(self) -> tuple[OutcomeRecord, ...]:
        with self._lock:
            return tuple(self._history)

    @property
    def last_session_id(self) -> Optional[int]:
        with self._lock:
            return self._history[-1].session_id if self._history else None

    def weights(self) -> dict[str, float]:
        with self._lock:
            return self.ensemble.weights.as_dict()

    def stats(self) -> dict:
        """Snapshot for the dashboard and /api/weights."""
        with self._lock:
            prediction = self._prediction
            votes = dict(self.ensemble.last_votes)
            return {
                "state": self.state.value,
                "sessions": len(self._history),
                "last_session": self._history[-1].session_id if self._history else None,
                "updates_applied": self.updates_applied,
                "prediction": prediction.to_dict() if prediction else None,
                "strategies": [
                    {
                        "id": sid,
                        "weight": round(w, 6),
                        "vote": votes[sid].display if votes.get(sid) else "abstain",
                    }
                    for sid, w in sorted(
                        self.ensemble.weights.as_dict().items(),
                        key=lambda item: item[1],
                        reverse=True,
                    )
                ],
            }
