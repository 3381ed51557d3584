"""
Sum Club Predictor — Feed Client
Fetches the upstream dice history and normalizes it into OutcomeRecords.

Upstream items look like:
    {"SessionId": 123, "FirstDice": 2, "SecondDice": 5, "ThirdDice": 6,
     "DiceSum": 13, "BetSide": 0}

BetSide 0 means Tai and 1 means Xiu; it only affects the display text.
The canonical category always comes from DiceSum.
"""

from typing import Optional

import requests

import config
from logger import log
from models import Category, OutcomeRecord

DIE_MIN, DIE_MAX = 1, 6
SIDE_LABELS = {0: Category.HIGH.display, 1: Category.LOW.display}


class FeedError(Exception):
    """The feed could not be fetched or did not contain a session list."""


def _parse_item(item: dict) -> OutcomeRecord:
    dice = (int(item["FirstDice"]), int(item["SecondDice"]), int(item["ThirdDice"]))
    if not all(DIE_MIN <= d <= DIE_MAX for d in dice):
        raise ValueError(f"dice out of range: {dice}")
    total = int(item.get("DiceSum", sum(dice)))
    if total != sum(dice):
        raise ValueError(f"DiceSum {total} does not match dice {dice}")
    category = Category.from_total(total)
    return OutcomeRecord(
        session_id=int(item["SessionId"]),
        dice=dice,
        total=total,
        category=category,
        side_label=SIDE_LABELS.get(item.get("BetSide"), category.display),
    )


def normalize_feed(payload) -> list[OutcomeRecord]:
    """Turn a raw feed payload into a new, session-ascending list of records.

    The payload is never mutated. Items missing fields, or whose dice are
    out of range or disagree with DiceSum, are skipped with a warning. For a repeated
    SessionId the first occurrence wins.
    """
    if not isinstance(payload, list):
        raise FeedError(f"expected a list of sessions, got {type(payload).__name__}")

    records: dict[int, OutcomeRecord] = {}
    for item in payload:
        try:
            record = _parse_item(item)
        except (KeyError, TypeError, ValueError) as e:
            log.warning(f"Skipping malformed feed item {item!r}: {e}")
            continue
        records.setdefault(record.session_id, record)

    return sorted(records.values(), key=lambda r: r.session_id)


def fetch_records(url: Optional[str] = None, timeout: Optional[float] = None) -> list[OutcomeRecord]:
    """GET the feed and normalize it. Any transport or decode failure is a FeedError."""
    url = url or config.FEED_URL
    timeout = timeout or config.FETCH_TIMEOUT
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
        payload = r.json()
    except requests.RequestException as e:
        raise FeedError(f"fetch failed: {e}") from e
    except ValueError as e:
        raise FeedError(f"invalid JSON from feed: {e}") from e
    return normalize_feed(payload)


def fetch_public_ip(timeout: float = 5.0) -> str:
    """Best-effort public address for the startup banner."""
    try:
        r = requests.get(config.PUBLIC_IP_URL, timeout=timeout)
        r.raise_for_status()
        return r.text.strip() or "0.0.0.0"
    except requests.RequestException as e:
        log.warning(f"Could not resolve public IP: {e}")
        return "0.0.0.0"
