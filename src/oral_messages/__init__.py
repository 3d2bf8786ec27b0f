# src/oral_messages/__init__.py
"""
Oral Messages Module - Lamport's OM(m) for the Byzantine Generals problem

A commander's order propagates through recursive rounds of lieutenants,
some of whom may be traitors:
- SEND: commander relays an order to each lieutenant
- RECURSE: each lieutenant commands the others in OM(m-1)
- DECIDE: each lieutenant takes the majority of everything it received
- VALIDATE: IC1/IC2 checked once the recursion unwinds
"""

from .message import Message, ATTACK, RETREAT
from .relay import (
    RelayPolicy,
    ParityFlipPolicy,
    AlwaysFlipPolicy,
    FixedOrderPolicy,
    DEFAULT_RELAY_POLICY,
)
from .participant import Participant, create_participant
from .arena import ParticipantArena, UnknownParticipantError
from .events import (
    EventKind,
    EventSink,
    ProtocolEvent,
    LoggingEventSink,
    RecordingEventSink,
)
from .orchestrator import OralMessagesOrchestrator, RunStats, om
from .validator import ConsistencyReport, check_consistency, was_successful
from .bound import ToleranceBound, BoundStatus

__all__ = [
    # Orders
    "Message",
    "ATTACK",
    "RETREAT",
    # Participants
    "Participant",
    "create_participant",
    "ParticipantArena",
    "UnknownParticipantError",
    # Traitor relay behaviour
    "RelayPolicy",
    "ParityFlipPolicy",
    "AlwaysFlipPolicy",
    "FixedOrderPolicy",
    "DEFAULT_RELAY_POLICY",
    # Observer
    "EventKind",
    "EventSink",
    "ProtocolEvent",
    "LoggingEventSink",
    "RecordingEventSink",
    # OM(m)
    "OralMessagesOrchestrator",
    "RunStats",
    "om",
    # Validation
    "ConsistencyReport",
    "check_consistency",
    "was_successful",
    # Bound
    "ToleranceBound",
    "BoundStatus",
]
