# src/oral_messages/relay.py
"""
Relay Policies - how a traitor falsifies the orders it relays

A loyal participant always relays the value it holds. A traitor hands
the decision to its relay policy, which may return a different value for
each recipient position. Policies must be deterministic so a trial can be
replayed exactly.
"""

from typing import Protocol, runtime_checkable

from .message import Message


@runtime_checkable
class RelayPolicy(Protocol):
    """Per-recipient relay rule used by traitors"""

    def relay(self, decision: Message, recipient_index: int) -> Message:
        ...


class ParityFlipPolicy:
    """
    Inverts the order for recipients on one parity, relays truthfully to the rest.

    With flip_even=True (default) recipients at positions 0, 2, 4, ... get
    the inverted order, so different lieutenants hear different values.
    """

    def __init__(self, flip_even: bool = True):
        self.flip_even = flip_even

    def relay(self, decision: Message, recipient_index: int) -> Message:
        is_even = recipient_index % 2 == 0
        if is_even == self.flip_even:
            return decision.inverted()
        return decision

    def __repr__(self) -> str:
        return f"ParityFlipPolicy(flip_even={self.flip_even})"


class AlwaysFlipPolicy:
    """Inverts the order for every recipient"""

    def relay(self, decision: Message, recipient_index: int) -> Message:
        return decision.inverted()

    def __repr__(self) -> str:
        return "AlwaysFlipPolicy()"


class FixedOrderPolicy:
    """Sends one fixed order to everybody, whatever the traitor holds"""

    def __init__(self, order: Message):
        self.order = order

    def relay(self, decision: Message, recipient_index: int) -> Message:
        return self.order

    def __repr__(self) -> str:
        return f"FixedOrderPolicy(order={self.order})"


DEFAULT_RELAY_POLICY = ParityFlipPolicy()
