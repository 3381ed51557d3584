"""
Sum Club Predictor — Adaptive Ensemble
Weight table, startup backtest fit, online EMA adaptation and the weighted
vote that turns strategy opinions into one prediction.

Weights:
  1. Start uniform.
  2. fit_initial(): Laplace-smoothed hit counts over the startup window.
  3. update_with_outcome(): after every settled session, each strategy's
     weight moves toward weight * 1.05 (correct) or weight * 0.95 (wrong or
     abstained), blended by ema_alpha, then the table is renormalized.

The table always sums to 1 and no weight drops below min_weight.
"""

import math
from typing import Optional, Sequence

from models import ABSTAIN, Category, EnsembleConfig, OutcomeRecord, PredictionResult, VoteTally
from strategies import ALL_STRATEGIES, Strategy, frequency_rebalance

REWARD_CORRECT = 1.05
REWARD_WRONG = 0.95

FIT_START_INDEX = 3          # shortest prefix scored by the backtest
MIN_FIT_RECORDS = 10         # below this the startup fit leaves weights uniform

CONFIDENCE_FLOOR = 0.51
CONFIDENCE_CEILING = 0.99
FALLBACK_CONFIDENCE = 0.5


def adapted_weight(current: float, correct: bool, ema_alpha: float) -> float:
    """One EMA step toward the rewarded (or penalized) weight, before flooring."""
    reward = REWARD_CORRECT if correct else REWARD_WRONG
    target = current * reward
    return ema_alpha * target + (1.0 - ema_alpha) * current


class WeightTable:
    """Strategy id -> weight, normalized to sum 1 with a per-entry floor."""

    def __init__(self, strategy_ids: Sequence[str], min_weight: float):
        if not strategy_ids:
            raise ValueError("WeightTable needs at least one strategy")
        if len(set(strategy_ids)) != len(strategy_ids):
            raise ValueError("strategy ids must be unique")
        if min_weight * len(strategy_ids) >= 1.0:
            raise ValueError(
                f"min_weight={min_weight} too large for {len(strategy_ids)} strategies"
            )
        self.min_weight = min_weight
        self._weights: dict[str, float] = {sid: 1.0 for sid in strategy_ids}
        self._normalize()

    def __getitem__(self, strategy_id: str) -> float:
        return self._weights[strategy_id]

    def __len__(self) -> int:
        return len(self._weights)

    def ids(self) -> list[str]:
        return list(self._weights)

    def as_dict(self) -> dict[str, float]:
        return dict(self._weights)

    def assign(self, raw: dict[str, float]):
        """Replace every weight with `raw` (any positive scale), then normalize."""
        if set(raw) != set(self._weights):
            raise ValueError("weights must cover exactly the registered strategies")
        for sid, w in raw.items():
            self._weights[sid] = max(self.min_weight, w)
        self._normalize()

    def _normalize(self):
        """Scale to sum 1, pinning entries that would fall under the floor.

        Pinned entries sit exactly at min_weight and the remaining mass is
        shared proportionally by the others, so both invariants hold at once.
        """
        raw = dict(self._weights)
        pinned: set[str] = set()
        while True:
            free = [sid for sid in raw if sid not in pinned]
            budget = 1.0 - self.min_weight * len(pinned)
            free_total = sum(raw[sid] for sid in free)
            scaled = {sid: raw[sid] / free_total * budget for sid in free}
            newly_pinned = {sid for sid, w in scaled.items() if w < self.min_weight}
            if not newly_pinned:
                break
            pinned |= newly_pinned

        for sid in pinned:
            self._weights[sid] = self.min_weight
        for sid, w in scaled.items():
            self._weights[sid] = w

    def total(self) -> float:
        return math.fsum(self._weights.values())


class EnsemblePredictor:
    """Weighted vote over a strategy pool with startup fit and online adaptation."""

    def __init__(self, strategies: Sequence[Strategy] = ALL_STRATEGIES,
                 config: Optional[EnsembleConfig] = None):
        self.strategies = tuple(strategies)
        self.config = config or EnsembleConfig()
        self.weights = WeightTable([s.id for s in self.strategies], self.config.min_weight)
        # Votes behind the most recent predict() call
        self.last_votes: dict[str, Optional[Category]] = {}

    # ── Backtest fit ────────────────────────────────────────────────────

    def fit_initial(self, history: Sequence[OutcomeRecord]) -> dict[str, int]:
        """Seed weights from each strategy's hit count over the recent window.

        Returns the raw hit counts (empty when the window is too short).
        """
        window = list(history[-self.config.history_window:])
        if len(window) < MIN_FIT_RECORDS:
            return {}

        hits = {s.id: 0 for s in self.strategies}
        for i in range(FIT_START_INDEX, len(window)):
            prefix = window[:i]
            actual = window[i].category
            for s in self.strategies:
                if s.predict(prefix) is actual:
                    hits[s.id] += 1

        self.weights.assign({sid: count + 1 for sid, count in hits.items()})
        return hits

    # ── Online adaptation ───────────────────────────────────────────────

    def update_with_outcome(self, prefix: Sequence[OutcomeRecord], actual: Category) -> dict[str, bool]:
        """Reward strategies that called `actual` on `prefix`, penalize the rest.

        An abstention counts as a miss. Returns strategy id -> correct.
        """
        outcome = {}
        updated = {}
        for s in self.strategies:
            correct = s.predict(prefix) is actual
            outcome[s.id] = correct
            updated[s.id] = max(
                self.config.min_weight,
                adapted_weight(self.weights[s.id], correct, self.config.ema_alpha),
            )
        self.weights.assign(updated)
        return outcome

    # ── Aggregation ─────────────────────────────────────────────────────

    def votes(self, history: Sequence[OutcomeRecord]) -> dict[str, Optional[Category]]:
        return {s.id: s.predict(history) for s in self.strategies}

    def predict(self, history: Sequence[OutcomeRecord]) -> PredictionResult:
        """Combine the current votes into a label and a clamped confidence."""
        self.last_votes = self.votes(history)
        tally = VoteTally()
        for sid, vote in self.last_votes.items():
            if vote is not ABSTAIN:
                tally.add(vote, self.weights[sid], sid)

        if tally.high == 0 and tally.low == 0:
            fallback = frequency_rebalance(history) or Category.HIGH
            return PredictionResult(fallback, FALLBACK_CONFIDENCE, informed=False)

        label, best = tally.winner()
        confidence = min(CONFIDENCE_CEILING, max(CONFIDENCE_FLOOR, best / tally.total))
        return PredictionResult(label, confidence)
