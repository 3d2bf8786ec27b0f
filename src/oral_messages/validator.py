# src/oral_messages/validator.py
"""
Consistency Validator - Lamport's Interactive Consistency conditions

IC1: All loyal lieutenants obey the same order.
IC2: If the commanding general is loyal, every loyal lieutenant obeys the
     order he sends.

Traitors may decide anything; only loyal decisions are checked.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List

from .message import Message
from .participant import Participant

logger = logging.getLogger("omsim.oral_messages.validator")


@dataclass
class ConsistencyReport:
    """Outcome of checking IC1 and IC2 on final decisions"""
    ic1: bool
    ic2: bool
    first_commander_loyal: bool
    original_order: Message
    loyal_decisions: Dict[int, bool] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.ic1 and self.ic2

    @property
    def agreed_order(self) -> Message:
        """The unanimous loyal order (retreat if there were no loyal lieutenants)"""
        if self.ic1 and self.loyal_decisions:
            return Message(attack=next(iter(self.loyal_decisions.values())))
        return Message(attack=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "ic1": self.ic1,
            "ic2": self.ic2,
            "first_commander_loyal": self.first_commander_loyal,
            "original_order": str(self.original_order),
            "loyal_decisions": {
                str(pid): ("attack" if decision else "retreat")
                for pid, decision in self.loyal_decisions.items()
            },
        }


def check_consistency(
    participants: Iterable[Participant],
    first_commander_loyal: bool,
    original_order: Message
) -> ConsistencyReport:
    """Evaluate IC1 and IC2 over the final decisions of `participants`"""
    loyal_decisions = {p.id: p.decision for p in participants if not p.is_traitor}
    decisions: List[bool] = list(loyal_decisions.values())

    ic1 = all(d == decisions[0] for d in decisions[1:]) if decisions else True

    # IC2 only binds a loyal first commander
    ic2 = True
    if first_commander_loyal:
        ic2 = all(d == original_order.attack for d in decisions)

    report = ConsistencyReport(
        ic1=ic1,
        ic2=ic2,
        first_commander_loyal=first_commander_loyal,
        original_order=original_order,
        loyal_decisions=loyal_decisions,
    )

    if not report.success:
        logger.info(
            f"Consistency violated: ic1={report.ic1}, ic2={report.ic2}, "
            f"loyal decisions={report.to_dict()['loyal_decisions']}"
        )
    return report


def was_successful(
    participants: Iterable[Participant],
    first_commander_loyal: bool,
    original_order: Message
) -> bool:
    """True when both IC1 and IC2 hold"""
    return check_consistency(participants, first_commander_loyal, original_order).success
