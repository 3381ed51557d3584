"""
Sum Club Predictor — Data Model
Outcome records, prediction results and ensemble settings shared by every
module. Records are immutable once created.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

HIGH_THRESHOLD = 11          # totals >= 11 are Tai (High)


class Category(Enum):
    """Canonical outcome of a session, always derived from the dice total."""
    HIGH = "T"               # Tai
    LOW = "X"                # Xiu

    @classmethod
    def from_total(cls, total: int) -> "Category":
        return cls.HIGH if total >= HIGH_THRESHOLD else cls.LOW

    @property
    def display(self) -> str:
        return "tai" if self is Category.HIGH else "xiu"

    @property
    def opposite(self) -> "Category":
        return Category.LOW if self is Category.HIGH else Category.HIGH


# A strategy's explicit "no opinion" vote.
ABSTAIN: Optional[Category] = None


@dataclass(frozen=True)
class OutcomeRecord:
    """One finished session as delivered by the feed."""
    session_id: int
    dice: tuple[int, int, int]
    total: int
    category: Category
    side_label: Optional[str] = None     # upstream display override

    @classmethod
    def from_dice(cls, session_id: int, dice, side_label: Optional[str] = None) -> "OutcomeRecord":
        dice = tuple(int(d) for d in dice)
        total = sum(dice)
        return cls(
            session_id=int(session_id),
            dice=dice,
            total=total,
            category=Category.from_total(total),
            side_label=side_label,
        )

    @property
    def result(self) -> str:
        """Display text; the feed's side flag wins over the total when present."""
        return self.side_label or self.category.display

    def to_dict(self) -> dict:
        return {
            "session": self.session_id,
            "dice": list(self.dice),
            "total": self.total,
            "result": self.result,
            "label": self.category.value.lower(),
        }


@dataclass(frozen=True)
class PredictionResult:
    """The ensemble's call for the next session."""
    label: Category
    confidence: float
    informed: bool = True                # False for the no-signal fallback

    @property
    def raw_label(self) -> str:
        return self.label.value

    @property
    def display(self) -> str:
        return self.label.display

    def to_dict(self) -> dict:
        return {
            "prediction": self.display,
            "raw_prediction": self.raw_label,
            "confidence": round(self.confidence, 4),
            "informed": self.informed,
        }


@dataclass(frozen=True)
class EnsembleConfig:
    """Tunables for the weight table."""
    ema_alpha: float = 0.1               # blend of target vs current weight
    min_weight: float = 0.001            # floor that keeps every strategy reachable
    history_window: int = 500            # max records scanned by the startup fit

    def __post_init__(self):
        if not 0.0 < self.ema_alpha < 1.0:
            raise ValueError(f"ema_alpha={self.ema_alpha} out of range (0, 1)")
        if self.min_weight <= 0.0:
            raise ValueError(f"min_weight={self.min_weight} must be > 0")
        if self.history_window < 1:
            raise ValueError(f"history_window={self.history_window} must be >= 1")


@dataclass
class VoteTally:
    """Accumulated weight behind each label. Abstentions add nothing."""
    high: float = 0.0
    low: float = 0.0
    voters: list[str] = field(default_factory=list)

    def add(self, label: Category, weight: float, strategy_id: str = ""):
        if label is Category.HIGH:
            self.high += weight
        else:
            self.low += weight
        if strategy_id:
            self.voters.append(strategy_id)

    @property
    def total(self) -> float:
        return self.high + self.low

    def winner(self) -> tuple[Category, float]:
        """Label with the larger weight; an exact tie goes to HIGH."""
        if self.low > self.high:
            return Category.LOW, self.low
        return Category.HIGH, self.high
