"""
Shared fixtures: synthetic session histories and a scripted feed.
"""

import os
import random
import tempfile

# Keep test runs from writing into the project log directory
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="sumclub-logs-"))

import pytest

from models import OutcomeRecord

HIGH_DICE = (4, 4, 4)        # total 12 -> Tai
LOW_DICE = (1, 2, 3)         # total 6  -> Xiu


def _records_from_pattern(pattern: str, start: int = 1) -> list[OutcomeRecord]:
    records = []
    for offset, code in enumerate(pattern):
        dice = HIGH_DICE if code == "T" else LOW_DICE
        records.append(OutcomeRecord.from_dice(start + offset, dice))
    return records


def _records_from_dice(dice_rows, start: int = 1) -> list[OutcomeRecord]:
    return [OutcomeRecord.from_dice(start + i, dice) for i, dice in enumerate(dice_rows)]


def _random_records(count: int, seed: int = 7, start: int = 1) -> list[OutcomeRecord]:
    rng = random.Random(seed)
    rows = [(rng.randint(1, 6), rng.randint(1, 6), rng.randint(1, 6)) for _ in range(count)]
    return _records_from_dice(rows, start)


@pytest.fixture
def make_pattern():
    """Factory: 'TTX...' -> records with sessions start, start+1, ..."""
    return _records_from_pattern


@pytest.fixture
def make_dice():
    """Factory: [(d1, d2, d3), ...] -> records."""
    return _records_from_dice


@pytest.fixture
def random_history():
    """Factory: reproducible pseudo-random history of `count` sessions."""
    return _random_records


class ScriptedFeed:
    """Stand-in for fetch_records: returns (or raises) queued responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def push(self, response):
        self.responses.append(response)

    def __call__(self):
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture
def scripted_feed():
    return ScriptedFeed
