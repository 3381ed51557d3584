"""
Sum Club Predictor — Strategy Pool
Eight independent pattern strategies. Each one looks only at the sessions
before the one being predicted and returns a Category, or ABSTAIN when it
has too little data or no directional signal.

Strategies are pure functions: the same prefix always yields the same vote,
and none of them raise on short or empty input.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from features import categories_of, category_runs, extract_features, mean, similarity
from models import ABSTAIN, Category, OutcomeRecord

Vote = Optional[Category]


@dataclass(frozen=True)
class Strategy:
    """A registered strategy: stable id plus its predict function."""
    id: str
    predict: Callable[[Sequence[OutcomeRecord]], Vote]


# ── Shared helpers ──────────────────────────────────────────────────────────

def _majority(high: float, low: float) -> Vote:
    """Strict majority of a two-slot count; ties and empties abstain."""
    if high > low:
        return Category.HIGH
    if low > high:
        return Category.LOW
    return ABSTAIN


def _follower_counts(cats: Sequence[Category], order: int) -> tuple[int, int]:
    """Count what followed every earlier occurrence of the trailing `order`-window."""
    context = tuple(cats[-order:])
    high = low = 0
    for i in range(len(cats) - order):
        if tuple(cats[i:i + order]) == context:
            if cats[i + order] is Category.HIGH:
                high += 1
            else:
                low += 1
    return high, low


# ── 1. Frequency rebalance ──────────────────────────────────────────────────

REBALANCE_MARGIN = 2


def frequency_rebalance(history: Sequence[OutcomeRecord]) -> Vote:
    """Bet on the under-represented side once the imbalance exceeds the margin."""
    high = sum(1 for r in history if r.category is Category.HIGH)
    low = len(history) - high
    if high > low + REBALANCE_MARGIN:
        return Category.LOW
    if low > high + REBALANCE_MARGIN:
        return Category.HIGH
    return ABSTAIN


# ── 2. Fixed-order Markov ───────────────────────────────────────────────────

MARKOV_ORDER = 3


def markov_vote(cats: Sequence[Category], order: int) -> Vote:
    if len(cats) < order + 1:
        return ABSTAIN
    high, low = _follower_counts(cats, order)
    return _majority(high, low)


def fixed_order_markov(history: Sequence[OutcomeRecord]) -> Vote:
    return markov_vote(categories_of(history), MARKOV_ORDER)


# ── 3. N-gram match ─────────────────────────────────────────────────────────

NGRAM_K = 4


def ngram_match(history: Sequence[OutcomeRecord]) -> Vote:
    """Exact matches of the trailing 4-gram vote for the session that followed them."""
    cats = categories_of(history)
    if len(cats) < NGRAM_K + 1:
        return ABSTAIN
    high, low = _follower_counts(cats, NGRAM_K)
    return _majority(high, low)


# ── 4. Neo-pattern similarity ───────────────────────────────────────────────

NEO_MIN_HISTORY = 20
NEO_PATTERN_LENGTHS = (4, 6)
NEO_SIMILARITY = 0.75


def neo_pattern_similarity(history: Sequence[OutcomeRecord]) -> Vote:
    """Fuzzy pattern match over short windows.

    For each pattern length, every historical window that agrees with the
    trailing window on at least 75% of positions votes for its follower.
    Of the lengths that reach a strict majority, the one backed by the most
    matches wins.
    """
    cats = categories_of(history)
    n = len(cats)
    if n < NEO_MIN_HISTORY:
        return ABSTAIN

    best: Vote = ABSTAIN
    best_matches = -1
    for length in NEO_PATTERN_LENGTHS:
        if n < length * 2 + 1:
            continue
        target = cats[-length:]
        high = low = 0
        for i in range(n - length):
            if similarity(cats[i:i + length], target) >= NEO_SIMILARITY:
                if cats[i + length] is Category.HIGH:
                    high += 1
                else:
                    low += 1
        vote = _majority(high, low)
        if vote is not ABSTAIN and high + low > best_matches:
            best_matches = high + low
            best = vote
    return best


# ── 5. Deep mean reversion ──────────────────────────────────────────────────

DEEP_MIN_HISTORY = 70
DEEP_RECENT_WINDOW = 20
DEEP_RECENT_HIGH, DEEP_OVERALL_HIGH = 12.5, 11.5
DEEP_RECENT_LOW, DEEP_OVERALL_LOW = 8.5, 9.5
DEEP_ENTROPY = 0.98


def deep_mean_reversion(history: Sequence[OutcomeRecord]) -> Vote:
    """Fade stretched totals; in near-random stretches, bet on a flip."""
    if len(history) < DEEP_MIN_HISTORY:
        return ABSTAIN
    features = extract_features(history)
    recent = mean([r.total for r in history[-DEEP_RECENT_WINDOW:]])

    if recent > DEEP_RECENT_HIGH and features.mean_total > DEEP_OVERALL_HIGH:
        return Category.LOW
    if recent < DEEP_RECENT_LOW and features.mean_total < DEEP_OVERALL_LOW:
        return Category.HIGH
    if features.entropy > DEEP_ENTROPY:
        return features.categories[-1].opposite
    return ABSTAIN


# ── 6. Weighted long-range match ────────────────────────────────────────────

LONG_MIN_HISTORY = 100
LONG_WINDOW = 10
LONG_SIMILARITY = 0.6


def weighted_long_range_match(history: Sequence[OutcomeRecord]) -> Vote:
    """Similar 10-windows vote for their follower, weighted by similarity and recency."""
    cats = categories_of(history)
    n = len(cats)
    if n < LONG_MIN_HISTORY:
        return ABSTAIN

    target = cats[-LONG_WINDOW:]
    high = low = 0.0
    for i in range(n - LONG_WINDOW):
        score = similarity(cats[i:i + LONG_WINDOW], target)
        if score > LONG_SIMILARITY:
            weight = score * (1.0 / (n - i))
            if cats[i + LONG_WINDOW] is Category.HIGH:
                high += weight
            else:
                low += weight
    return _majority(high, low)


# ── 7. Run continuation / breaker ───────────────────────────────────────────

RUN_CONTINUATION_MIN = 4
RUN_ALTERNATION_RUNS = 4
RUN_REVERSAL_MIN = 6


def run_continuation_breaker(history: Sequence[OutcomeRecord]) -> Vote:
    """Ride streaks, keep 1-1 alternations going, break very long streaks."""
    runs = category_runs(categories_of(history))
    if len(runs) < 2:
        return ABSTAIN
    last = runs[-1]

    if last.length >= RUN_CONTINUATION_MIN:
        return last.value
    recent = runs[-RUN_ALTERNATION_RUNS:]
    if len(recent) == RUN_ALTERNATION_RUNS and all(r.length == 1 for r in recent):
        return last.value.opposite
    # Only reachable when RUN_REVERSAL_MIN < RUN_CONTINUATION_MIN.
    if last.length >= RUN_REVERSAL_MIN:
        return last.value.opposite
    return ABSTAIN


# ── 8. Adaptive-order Markov ────────────────────────────────────────────────

ADAPTIVE_MIN_HISTORY = 20
ADAPTIVE_ORDERS = (2, 3, 4)


def adaptive_order_markov(history: Sequence[OutcomeRecord]) -> Vote:
    """Markov over orders 2-4; trust the order with the clearest margin."""
    cats = categories_of(history)
    if len(cats) < ADAPTIVE_MIN_HISTORY:
        return ABSTAIN

    best: Vote = ABSTAIN
    best_margin = -1.0
    for order in ADAPTIVE_ORDERS:
        if len(cats) < order + 1:
            continue
        high, low = _follower_counts(cats, order)
        vote = _majority(high, low)
        if vote is ABSTAIN:
            continue
        margin = abs(high - low) / (high + low)
        if margin > best_margin:
            best_margin = margin
            best = vote
    return best


# ── Registry ────────────────────────────────────────────────────────────────

ALL_STRATEGIES: tuple[Strategy, ...] = (
    Strategy("freq_rebalance", frequency_rebalance),
    Strategy("fixed_markov", fixed_order_markov),
    Strategy("ngram_match", ngram_match),
    Strategy("neo_pattern", neo_pattern_similarity),
    Strategy("deep_mean_reversion", deep_mean_reversion),
    Strategy("long_range_match", weighted_long_range_match),
    Strategy("run_breaker", run_continuation_breaker),
    Strategy("adaptive_markov", adaptive_order_markov),
)
