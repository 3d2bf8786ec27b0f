# src/oral_messages/events.py
"""
Protocol Events - observer hooks for the Oral-Messages orchestrator

Every send, receive and decide step can be reported to any number of
event sinks. A sink is any callable taking a ProtocolEvent. The protocol
behaves identically whether or not sinks are registered.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Optional, Dict, Any, List, Callable, Mapping


class EventKind(str, Enum):
    """Kinds of protocol steps"""
    SEND = "send"          # Commander relays an order to a lieutenant
    RECEIVE = "receive"    # Lieutenant records an order
    DECIDE = "decide"      # Lieutenant resolves its decision by majority


@dataclass(frozen=True)
class ProtocolEvent:
    """A single protocol step; detail is exposed read-only"""
    kind: EventKind
    participant_id: int                  # Sender for SEND, recipient otherwise
    attack: bool
    peer_id: Optional[int] = None        # Recipient for SEND, sender for RECEIVE
    m: Optional[int] = None
    depth: int = 0
    detail: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "detail", MappingProxyType(dict(self.detail)))

    @property
    def order(self) -> str:
        return "attack" if self.attack else "retreat"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "participant_id": self.participant_id,
            "peer_id": self.peer_id,
            "order": self.order,
            "m": self.m,
            "depth": self.depth,
            "detail": dict(self.detail),
        }


EventSink = Callable[[ProtocolEvent], None]


class LoggingEventSink:
    """Narrates protocol steps through the logging module"""

    def __init__(self, logger_name: str = "omsim.oral_messages.trace", level: int = logging.DEBUG):
        self.logger = logging.getLogger(logger_name)
        self.level = level

    def __call__(self, event: ProtocolEvent):
        if not self.logger.isEnabledFor(self.level):
            return
        indent = "  " * event.depth
        if event.kind == EventKind.SEND:
            message = (
                f"{indent}Commander #{event.participant_id} sends {event.order} "
                f"to general #{event.peer_id} (m={event.m})"
            )
        elif event.kind == EventKind.RECEIVE:
            message = (
                f"{indent}General #{event.participant_id} receives {event.order} "
                f"from commander #{event.peer_id} "
                f"({event.detail.get('received_count', 0)} orders so far)"
            )
        else:
            message = (
                f"{indent}General #{event.participant_id} decides {event.order} "
                f"(attack={event.detail.get('attack', 0)}, "
                f"retreat={event.detail.get('retreat', 0)})"
            )
        self.logger.log(self.level, message)


class RecordingEventSink:
    """Keeps every event in memory, in emission order"""

    def __init__(self):
        self.events: List[ProtocolEvent] = []

    def __call__(self, event: ProtocolEvent):
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> List[ProtocolEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self):
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)
