# src/oral_messages/participant.py
"""
Participant - a simulated general in the Oral-Messages protocol

A participant never originates a decision. It aggregates the orders it is
sent and, when commanding, relays what it holds (loyal) or whatever its
relay policy dictates (traitor).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .message import Message
from .relay import RelayPolicy, DEFAULT_RELAY_POLICY

logger = logging.getLogger("omsim.oral_messages.participant")


@dataclass
class Participant:
    """A general: identity, loyalty, accumulated orders and current decision"""
    id: int
    is_traitor: bool = False
    decision: bool = False
    received: List[Message] = field(default_factory=list)
    senders: List[int] = field(default_factory=list)
    messages_received_count: int = 0
    relay_policy: RelayPolicy = field(default=DEFAULT_RELAY_POLICY, repr=False)

    @property
    def is_loyal(self) -> bool:
        return not self.is_traitor

    @property
    def decision_message(self) -> Message:
        return Message(attack=self.decision)

    def mark_traitor(self, relay_policy: Optional[RelayPolicy] = None):
        """Flag this participant as a traitor, optionally with its own relay policy"""
        self.is_traitor = True
        if relay_policy is not None:
            self.relay_policy = relay_policy
        logger.debug(f"Participant #{self.id} marked as traitor ({self.relay_policy!r})")

    def seed_order(self, msg: Message):
        """Set the decision without recording a received message (first commander only)"""
        self.decision = msg.attack

    def receive_order(self, msg: Message, from_id: int):
        """Record an order; the very first one also seeds the decision"""
        if not self.received:
            self.decision = msg.attack
        self.received.append(msg)
        self.senders.append(from_id)
        self.messages_received_count += 1

    def relay_value(self, recipient_index: int) -> Message:
        """The order sent to the lieutenant at recipient_index while commanding"""
        current = self.decision_message
        if not self.is_traitor:
            return current
        return self.relay_policy.relay(current, recipient_index)

    def tally(self) -> Tuple[int, int]:
        """(attack_count, retreat_count) over everything received"""
        attack = sum(1 for msg in self.received if msg.attack)
        return attack, len(self.received) - attack

    def decide(self) -> bool:
        """
        Resolve the decision by strict majority over received orders.

        Ties and an empty history resolve to retreat.
        """
        attack, retreat = self.tally()
        self.decision = attack > retreat
        return self.decision

    def to_dict(self) -> Dict[str, Any]:
        attack, retreat = self.tally()
        return {
            "id": self.id,
            "is_traitor": self.is_traitor,
            "decision": str(self.decision_message),
            "messages_received": self.messages_received_count,
            "attack_votes": attack,
            "retreat_votes": retreat,
        }


def create_participant(id: int, is_traitor: bool = False) -> Participant:
    """Create a participant; ids are positive integers"""
    if isinstance(id, bool) or not isinstance(id, int) or id < 1:
        raise ValueError(f"Participant id must be a positive integer, got {id!r}")
    return Participant(id=id, is_traitor=is_traitor)
