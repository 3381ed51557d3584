"""
Tests for the weight table, startup fit, online adaptation and aggregation.
"""

import pytest

from ensemble import (
    FALLBACK_CONFIDENCE,
    EnsemblePredictor,
    WeightTable,
    adapted_weight,
)
from models import ABSTAIN, Category, EnsembleConfig
from strategies import ALL_STRATEGIES, Strategy, frequency_rebalance

H, L = Category.HIGH, Category.LOW

ALWAYS_HIGH = Strategy("always_high", lambda history: H)
ALWAYS_LOW = Strategy("always_low", lambda history: L)
SILENT = Strategy("silent", lambda history: ABSTAIN)


def assert_table_invariants(table: WeightTable):
    weights = table.as_dict()
    assert sum(weights.values()) == pytest.approx(1.0, abs=1e-9)
    assert all(w >= table.min_weight for w in weights.values())


# ── Weight table ────────────────────────────────────────────────────────────

def test_new_table_is_uniform():
    table = WeightTable(["a", "b", "c", "d"], 0.001)
    assert table.as_dict() == pytest.approx({"a": 0.25, "b": 0.25, "c": 0.25, "d": 0.25})
    assert_table_invariants(table)


def test_assign_pins_tiny_weights_at_the_floor():
    table = WeightTable(["a", "b", "c"], 0.01)
    table.assign({"a": 1000.0, "b": 1e-9, "c": 1.0})
    assert table["b"] == pytest.approx(0.01)
    assert table["c"] >= 0.01
    assert_table_invariants(table)


def test_assign_rejects_unknown_ids():
    table = WeightTable(["a", "b"], 0.01)
    with pytest.raises(ValueError):
        table.assign({"a": 1.0, "z": 1.0})


def test_floor_must_leave_room_for_every_strategy():
    with pytest.raises(ValueError):
        WeightTable(["a", "b"], 0.5)
    with pytest.raises(ValueError):
        WeightTable([], 0.01)


@pytest.mark.parametrize("kwargs", [
    {"ema_alpha": 0.0},
    {"ema_alpha": 1.0},
    {"min_weight": 0.0},
    {"history_window": 0},
])
def test_invalid_ensemble_config(kwargs):
    with pytest.raises(ValueError):
        EnsembleConfig(**kwargs)


# ── Online adaptation ───────────────────────────────────────────────────────

def test_ema_step_matches_reward_and_penalty():
    assert adapted_weight(0.5, True, 0.1) == pytest.approx(0.5025)
    assert adapted_weight(0.5, False, 0.1) == pytest.approx(0.4975)


def test_update_with_outcome_two_strategies(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW], EnsembleConfig(ema_alpha=0.1))
    outcome = ensemble.update_with_outcome(make_pattern("TXT"), H)
    assert outcome == {"always_high": True, "always_low": False}
    assert ensemble.weights["always_high"] == pytest.approx(0.5025)
    assert ensemble.weights["always_low"] == pytest.approx(0.4975)
    assert_table_invariants(ensemble.weights)


def test_abstaining_counts_as_a_miss(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, SILENT])
    ensemble.update_with_outcome(make_pattern("TTT"), H)
    assert ensemble.weights["always_high"] > ensemble.weights["silent"]


def test_repeated_penalties_respect_the_floor(make_pattern):
    config = EnsembleConfig(ema_alpha=0.9, min_weight=0.05)
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW, SILENT], config)
    prefix = make_pattern("TTT")
    for _ in range(300):
        ensemble.update_with_outcome(prefix, H)
        assert_table_invariants(ensemble.weights)
    assert ensemble.weights["always_low"] == pytest.approx(0.05)


def test_invariants_hold_with_the_full_pool(random_history):
    history = random_history(60)
    ensemble = EnsemblePredictor(ALL_STRATEGIES)
    for i in range(3, len(history)):
        ensemble.update_with_outcome(history[:i], history[i].category)
        assert_table_invariants(ensemble.weights)


# ── Backtest fit ────────────────────────────────────────────────────────────

def test_fit_skips_short_windows(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW])
    assert ensemble.fit_initial(make_pattern("T" * 9)) == {}
    assert ensemble.weights.as_dict() == pytest.approx({"always_high": 0.5, "always_low": 0.5})


def test_fit_uses_laplace_smoothed_hit_counts(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW])
    hits = ensemble.fit_initial(make_pattern("T" * 20))
    # indices 3..19 are scored
    assert hits == {"always_high": 17, "always_low": 0}
    assert ensemble.weights["always_high"] == pytest.approx(18 / 19)
    assert ensemble.weights["always_low"] == pytest.approx(1 / 19)
    assert_table_invariants(ensemble.weights)


def test_fit_only_scans_the_recent_window(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW], EnsembleConfig(history_window=12))
    hits = ensemble.fit_initial(make_pattern("X" * 50 + "T" * 12, start=1))
    assert hits == {"always_high": 9, "always_low": 0}


# ── Aggregation ─────────────────────────────────────────────────────────────

def test_empty_history_returns_fallback():
    result = EnsemblePredictor(ALL_STRATEGIES).predict([])
    assert result.label is H
    assert result.confidence == FALLBACK_CONFIDENCE == 0.5
    assert result.informed is False


def test_fallback_uses_frequency_rebalance_vote(make_pattern):
    ensemble = EnsemblePredictor([SILENT, Strategy("other_silent", lambda h: ABSTAIN)])
    history = make_pattern("TTTTT")
    assert frequency_rebalance(history) is L
    result = ensemble.predict(history)
    assert result.label is L
    assert result.confidence == 0.5


@pytest.mark.parametrize("pool", [[ALWAYS_HIGH, ALWAYS_LOW], [ALWAYS_LOW, ALWAYS_HIGH]])
def test_exact_tie_goes_to_high(make_pattern, pool):
    result = EnsemblePredictor(pool).predict(make_pattern("TX"))
    assert result.label is H
    assert result.confidence == pytest.approx(0.51)
    assert result.informed is True


def test_confidence_is_clamped(make_pattern):
    result = EnsemblePredictor([ALWAYS_LOW, SILENT]).predict(make_pattern("TX"))
    assert result.label is L
    assert result.confidence == 0.99


def test_weighted_majority_wins(make_pattern):
    ensemble = EnsemblePredictor([ALWAYS_HIGH, ALWAYS_LOW, Strategy("low_too", lambda h: L)])
    result = ensemble.predict(make_pattern("TX"))
    assert result.label is L
    assert result.confidence == pytest.approx(2 / 3)
    assert result.raw_label == "X"
    assert result.display == "xiu"
