"""
Sum Club Predictor — Feature Extraction
Pure helpers over a session history: runs, frequencies, entropy and total
statistics. Every function accepts an empty history and returns neutral
values instead of failing.
"""

import math
from dataclasses import dataclass, field
from typing import Sequence

from models import Category, OutcomeRecord

PATTERN_WINDOW = 15          # sessions shown in the pattern summary
ALTERNATION_RUNS = 6         # runs of length 1 needed to call a 1-1 pattern
LONG_RUN = 5                 # run length flagged as a streak


@dataclass(frozen=True)
class Run:
    """A maximal stretch of identical categories."""
    value: Category
    length: int


@dataclass
class FeatureSet:
    """Summary statistics for one history prefix."""
    categories: list[Category] = field(default_factory=list)
    totals: list[int] = field(default_factory=list)
    high_count: int = 0
    low_count: int = 0
    runs: list[Run] = field(default_factory=list)
    max_run: int = 0
    mean_total: float = 0.0
    std_total: float = 0.0
    entropy: float = 0.0


def categories_of(history: Sequence[OutcomeRecord]) -> list[Category]:
    return [r.category for r in history]


def category_runs(categories: Sequence[Category]) -> list[Run]:
    """Split a category sequence into maximal runs; lengths sum to len(categories)."""
    runs: list[Run] = []
    if not categories:
        return runs
    current, length = categories[0], 1
    for value in categories[1:]:
        if value is current:
            length += 1
        else:
            runs.append(Run(current, length))
            current, length = value, 1
    runs.append(Run(current, length))
    return runs


def shannon_entropy(categories: Sequence[Category]) -> float:
    """Base-2 entropy of the category distribution (0.0 for empty input)."""
    n = len(categories)
    if n == 0:
        return 0.0
    high = sum(1 for c in categories if c is Category.HIGH)
    entropy = 0.0
    for count in (high, n - high):
        if count:
            p = count / n
            entropy -= p * math.log2(p)
    return entropy


def similarity(a: Sequence[Category], b: Sequence[Category]) -> float:
    """Fraction of positions where two equal-length windows agree."""
    if len(a) != len(b) or not a:
        return 0.0
    matches = sum(1 for x, y in zip(a, b) if x is y)
    return matches / len(a)


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def extract_features(history: Sequence[OutcomeRecord]) -> FeatureSet:
    """Compute the shared feature set for a history prefix."""
    categories = categories_of(history)
    totals = [r.total for r in history]
    runs = category_runs(categories)
    high = sum(1 for c in categories if c is Category.HIGH)

    mean_total = mean(totals)
    variance = mean([(t - mean_total) ** 2 for t in totals])

    return FeatureSet(
        categories=categories,
        totals=totals,
        high_count=high,
        low_count=len(categories) - high,
        runs=runs,
        max_run=max((r.length for r in runs), default=0),
        mean_total=mean_total,
        std_total=math.sqrt(variance),
        entropy=shannon_entropy(categories),
    )


def pattern_summary(history: Sequence[OutcomeRecord]) -> dict:
    """Recent-pattern digest for display: last 15 codes, current run, streak flags."""
    if len(history) < PATTERN_WINDOW:
        return {
            "last_15": "n/a",
            "run_value": "none",
            "run_length": 0,
            "is_alternating": False,
            "is_long_run": False,
        }

    runs = category_runs(categories_of(history))
    last_run = runs[-1]
    recent_runs = runs[-ALTERNATION_RUNS:]
    alternating = len(recent_runs) == ALTERNATION_RUNS and all(r.length == 1 for r in recent_runs)

    return {
        "last_15": "".join(r.category.value for r in history[-PATTERN_WINDOW:]).lower(),
        "run_value": last_run.value.display,
        "run_length": last_run.length,
        "is_alternating": alternating,
        "is_long_run": last_run.length >= LONG_RUN,
    }


def format_pattern(summary: dict) -> str:
    """One-line rendering of pattern_summary() for the read API."""
    if summary["run_length"] == 0:
        return summary["last_15"]
    return (
        f"tx: {summary['last_15']} | "
        f"run: {summary['run_value']}-{summary['run_length']} | "
        f"1-1: {'on' if summary['is_alternating'] else 'off'} | "
        f"streak_5+: {'on' if summary['is_long_run'] else 'off'}"
    )
