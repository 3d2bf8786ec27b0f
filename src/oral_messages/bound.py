# src/oral_messages/bound.py
"""
Tolerance Bound - how many traitors OM(m) can survive

Lamport's bound for oral messages:
- n = total generals (commander included)
- m = recursive rounds, matched to the number of traitors tolerated
- OM(m) guarantees IC1/IC2 only when n >= 3m + 1

For n=4: max tolerated traitors = floor((4-1)/3) = 1

The bound is advisory. The orchestrator runs any m; callers use this to
report whether an observed failure was expected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any


class BoundStatus(str, Enum):
    """Whether a configuration is inside Lamport's bound"""
    SATISFIED = "satisfied"    # n >= 3m + 1, agreement guaranteed
    VIOLATED = "violated"      # n < 3m + 1, agreement may fail


@dataclass(frozen=True)
class ToleranceBound:
    """Lamport's n >= 3m + 1 requirement for a given configuration"""
    total_participants: int
    rounds: int

    @property
    def n(self) -> int:
        return self.total_participants

    @property
    def m(self) -> int:
        return self.rounds

    @property
    def min_participants(self) -> int:
        """Generals needed for OM(m) to be correct (3m + 1)"""
        return 3 * self.rounds + 1

    @property
    def max_tolerated_traitors(self) -> int:
        """Largest traitor count n generals can survive: floor((n-1)/3)"""
        return max(0, (self.total_participants - 1) // 3)

    @property
    def is_satisfied(self) -> bool:
        return self.total_participants >= self.min_participants

    @property
    def status(self) -> BoundStatus:
        return BoundStatus.SATISFIED if self.is_satisfied else BoundStatus.VIOLATED

    def covers(self, num_traitors: int) -> bool:
        """True when m rounds are enough for num_traitors and n satisfies the bound"""
        return self.is_satisfied and num_traitors <= self.rounds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_participants": self.total_participants,
            "rounds": self.rounds,
            "min_participants": self.min_participants,
            "max_tolerated_traitors": self.max_tolerated_traitors,
            "status": self.status.value,
            "formula": f"n >= 3m + 1 = 3*{self.rounds} + 1 = {self.min_participants}",
        }
