"""
Tests for the eight pattern strategies.
"""

import pytest

from models import ABSTAIN, Category
from strategies import (
    ALL_STRATEGIES,
    adaptive_order_markov,
    deep_mean_reversion,
    fixed_order_markov,
    frequency_rebalance,
    neo_pattern_similarity,
    ngram_match,
    run_continuation_breaker,
    weighted_long_range_match,
)

H, L = Category.HIGH, Category.LOW


def _x_runs(*lengths, gap=3):
    """Xiu runs of the given lengths, each preceded by `gap` Tai sessions."""
    return "".join("T" * gap + "X" * r for r in lengths)


def test_registry_has_eight_unique_strategies():
    ids = [s.id for s in ALL_STRATEGIES]
    assert len(ids) == 8
    assert len(set(ids)) == 8


@pytest.mark.parametrize("length", range(0, 6))
def test_strategies_never_raise_on_short_history(make_pattern, length):
    history = make_pattern("TXT" * 2)[:length]
    for s in ALL_STRATEGIES:
        assert s.predict(history) in (ABSTAIN, H, L)


def test_strategies_are_deterministic(random_history):
    history = random_history(120)
    for s in ALL_STRATEGIES:
        assert s.predict(history) == s.predict(list(history))


# ── Frequency rebalance ─────────────────────────────────────────────────────

def test_frequency_rebalance_bets_against_the_majority(make_pattern):
    # 10 Tai, 7 Xiu: imbalance 3 > 2
    assert frequency_rebalance(make_pattern("T" * 10 + "X" * 7)) is L
    assert frequency_rebalance(make_pattern("X" * 10 + "T" * 7)) is H


def test_frequency_rebalance_abstains_within_margin(make_pattern):
    assert frequency_rebalance(make_pattern("T" * 9 + "X" * 7)) is ABSTAIN
    assert frequency_rebalance([]) is ABSTAIN


# ── Fixed-order Markov ──────────────────────────────────────────────────────

def test_fixed_markov_predicts_majority_follower(make_pattern):
    assert fixed_order_markov(make_pattern("TTTXTTTXTTT")) is L


def test_fixed_markov_abstains_on_tie_or_short_history(make_pattern):
    assert fixed_order_markov(make_pattern("TTTXTTTT")) is ABSTAIN
    assert fixed_order_markov(make_pattern("TTT")) is ABSTAIN


def test_fixed_markov_abstains_on_unseen_context(make_pattern):
    assert fixed_order_markov(make_pattern("TTTTX")) is ABSTAIN


# ── N-gram ──────────────────────────────────────────────────────────────────

def test_ngram_match_follows_previous_occurrence(make_pattern):
    assert ngram_match(make_pattern("TTXTXTTXT")) is L


def test_ngram_match_abstains_without_match(make_pattern):
    assert ngram_match(make_pattern("TTTTTX")) is ABSTAIN
    assert ngram_match(make_pattern("TTTT")) is ABSTAIN


def test_ngram_match_abstains_when_followers_split(make_pattern):
    # TTTT seen twice before: once followed by T, once by X
    assert ngram_match(make_pattern("TTTTTXTTTT")) is ABSTAIN
    # drop the first T and only the X follower is left
    assert ngram_match(make_pattern("TTTTXTTTT")) is L


# ── Neo pattern ─────────────────────────────────────────────────────────────

def test_neo_pattern_needs_twenty_sessions(make_pattern):
    assert neo_pattern_similarity(make_pattern("T" * 19)) is ABSTAIN


def test_neo_pattern_on_constant_history(make_pattern):
    assert neo_pattern_similarity(make_pattern("T" * 30)) is H


def test_neo_pattern_prefers_the_length_with_more_matches(make_pattern):
    # Trailing XXXXXX. Length 4: 2 Tai vs 5 Xiu followers.
    # Length 6: 2 Tai vs 1 Xiu. Length 4 has more matches.
    history = make_pattern(_x_runs(5, 6, gap=6))
    assert neo_pattern_similarity(history) is L


def test_neo_pattern_falls_through_to_length_six(make_pattern):
    # Length 4 splits 6/6 and abstains; length 6 has 2 Tai vs 1 Xiu
    history = make_pattern(_x_runs(5, 3, 4, 6, gap=6))
    assert neo_pattern_similarity(history) is H


# ── Deep mean reversion ─────────────────────────────────────────────────────

def test_deep_mean_reversion_needs_seventy_sessions(make_dice):
    assert deep_mean_reversion(make_dice([(5, 4, 4)] * 69)) is ABSTAIN


def test_deep_mean_reversion_fades_high_totals(make_dice):
    assert deep_mean_reversion(make_dice([(5, 4, 4)] * 80)) is L


def test_deep_mean_reversion_fades_low_totals(make_dice):
    assert deep_mean_reversion(make_dice([(1, 2, 3)] * 80)) is H


def test_deep_mean_reversion_flips_in_high_entropy(make_pattern):
    # Alternating totals 12/6: means sit at 9, entropy is 1 bit, last is Xiu
    assert deep_mean_reversion(make_pattern("TX" * 40)) is H


# ── Weighted long-range match ───────────────────────────────────────────────

def test_long_range_needs_a_hundred_sessions(make_pattern):
    assert weighted_long_range_match(make_pattern("T" * 99)) is ABSTAIN


def test_long_range_on_constant_history(make_pattern):
    assert weighted_long_range_match(make_pattern("X" * 120)) is L


def test_long_range_recency_outweighs_older_matches(make_pattern):
    # Two early 7-runs give eight 0.7-similar windows followed by Tai.
    # The trailing 10-run gives three windows followed by Xiu, but they
    # sit 11-13 sessions from the end and weigh far more.
    pattern = "T" * 5 + "X" * 7 + "T" * 10 + "X" * 7 + "T" * 66 + "X" * 10
    history = make_pattern(pattern)
    assert len(history) == 105
    assert weighted_long_range_match(history) is L


# ── Run continuation / breaker ──────────────────────────────────────────────

def test_run_breaker_continues_alternation(make_pattern):
    # 20 alternating sessions ending in Xiu -> keep alternating -> Tai
    history = make_pattern("TX" * 10)
    assert history[-1].category is L
    assert run_continuation_breaker(history) is H


def test_run_breaker_rides_streaks(make_pattern):
    assert run_continuation_breaker(make_pattern("XTTTT")) is H
    assert run_continuation_breaker(make_pattern("TXXXXXXX")) is L


def test_run_breaker_abstains(make_pattern):
    assert run_continuation_breaker(make_pattern("TTTTT")) is ABSTAIN
    assert run_continuation_breaker(make_pattern("TTXX")) is ABSTAIN
    assert run_continuation_breaker([]) is ABSTAIN


# ── Adaptive-order Markov ───────────────────────────────────────────────────

def test_adaptive_markov_needs_twenty_sessions(make_pattern):
    assert adaptive_order_markov(make_pattern("T" * 19)) is ABSTAIN


def test_adaptive_markov_on_alternation(make_pattern):
    assert adaptive_order_markov(make_pattern("TX" * 12)) is H
    assert adaptive_order_markov(make_pattern("T" * 25)) is H


def test_adaptive_markov_higher_order_with_wider_margin_wins(make_pattern):
    # Context XX / XXX / TXXX:
    #   order 2: 5 Tai vs 3 Xiu (margin 0.25)
    #   order 3: 1 vs 1, abstains
    #   order 4: 0 Tai vs 1 Xiu (margin 1.0)
    history = make_pattern(_x_runs(2, 2, 2, 2, 4, 3))
    assert adaptive_order_markov(history) is L


def test_adaptive_markov_lower_order_with_wider_margin_wins(make_pattern):
    #   order 2: 5 Tai vs 12 Xiu (margin 7/17)
    #   order 3: 5 Tai vs 6 Xiu (margin 1/11)
    #   order 4: 3 Tai vs 2 Xiu (margin 1/5)
    history = make_pattern(_x_runs(3, 3, 3, 6, 6, 3))
    assert adaptive_order_markov(history) is L


def test_adaptive_markov_margin_tie_goes_to_lowest_order(make_pattern):
    #   order 2: 2 Tai vs 4 Xiu (margin 1/3)
    #   order 3: 2 Tai vs 1 Xiu (margin 1/3)
    #   order 4: 1 vs 1, abstains
    history = make_pattern(_x_runs(3, 4, 3, gap=5))
    assert len(history) >= 20
    assert adaptive_order_markov(history) is L
