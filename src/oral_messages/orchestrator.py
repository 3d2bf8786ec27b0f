# src/oral_messages/orchestrator.py
"""
Recursive Consensus Orchestrator - Lamport's Oral-Messages algorithm OM(m)

OM(m) for a commander and a roster of lieutenants:
1. SEND: the commander relays an order to every lieutenant in the roster
2. RECURSE (m > 0): each lieutenant, in roster order, commands the other
   lieutenants in OM(m-1), relaying whatever it currently holds
3. DECIDE (m > 0): once every sub-tree has unwound, every lieutenant in the
   roster resolves its decision by majority over all orders received

Correctness (IC1/IC2) requires n >= 3m + 1. That bound is not enforced
here: a mismatched m simply produces runs the validator rejects.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any, Iterable, List, Sequence

from .arena import ParticipantArena
from .events import EventKind, EventSink, ProtocolEvent
from .participant import Participant

logger = logging.getLogger("omsim.oral_messages.orchestrator")


@dataclass
class RunStats:
    """Counters for one top-level OM(m) invocation"""
    messages_sent: int = 0
    decide_passes: int = 0
    invocations: int = 0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages_sent": self.messages_sent,
            "decide_passes": self.decide_passes,
            "invocations": self.invocations,
            "max_depth": self.max_depth,
        }


class OralMessagesOrchestrator:
    """
    Runs OM(m) over the participants of an arena.

    The recursion passes lists of participant ids; participants are only
    looked up in the arena for the single step that mutates them.
    """

    def __init__(
        self,
        arena: ParticipantArena,
        event_sinks: Optional[Iterable[EventSink]] = None
    ):
        self.arena = arena
        self._event_sinks: List[EventSink] = list(event_sinks or [])

    def on_event(self, sink: EventSink):
        """Register an event sink"""
        self._event_sinks.append(sink)

    # =========================================================================
    # OM(m)
    # =========================================================================

    def om(self, roster: Sequence[int], commander: int, m: int) -> RunStats:
        """
        Run OM(m) with `commander` issuing to `roster`.

        Args:
            roster: Lieutenant ids, in the order they take command
            commander: Commander id (dropped from the roster if present)
            m: Number of recursive rounds

        Returns:
            RunStats for the whole recursion tree
        """
        if m < 0:
            raise ValueError(f"m must be non-negative, got {m}")

        stats = RunStats()
        self._om(list(roster), commander, m, 0, stats)

        logger.debug(
            f"OM({m}) from commander #{commander} finished: "
            f"sent={stats.messages_sent}, decides={stats.decide_passes}, "
            f"invocations={stats.invocations}, depth={stats.max_depth}"
        )
        return stats

    def _om(self, roster: List[int], commander_id: int, m: int, depth: int, stats: RunStats):
        stats.invocations += 1
        stats.max_depth = max(stats.max_depth, depth)

        roster = [pid for pid in roster if pid != commander_id]
        commander = self.arena.get(commander_id)

        for idx, recipient_id in enumerate(roster):
            self._send(commander, idx, self.arena.get(recipient_id), m, depth, stats)

        if m == 0:
            return

        # Each sub-tree must unwind completely before the next lieutenant commands
        for lieutenant_id in roster:
            sub_roster = [pid for pid in roster if pid != lieutenant_id]
            if not sub_roster:
                continue
            self._om(sub_roster, lieutenant_id, m - 1, depth + 1, stats)

        for participant in self.arena.resolve(roster):
            self._decide(participant, depth, stats)

    def _send(
        self,
        commander: Participant,
        idx: int,
        recipient: Participant,
        m: int,
        depth: int,
        stats: RunStats
    ):
        msg = commander.relay_value(idx)
        self._notify(ProtocolEvent(
            kind=EventKind.SEND,
            participant_id=commander.id,
            peer_id=recipient.id,
            attack=msg.attack,
            m=m,
            depth=depth,
            detail={"recipient_index": idx, "traitor": commander.is_traitor},
        ))

        recipient.receive_order(msg, commander.id)
        stats.messages_sent += 1

        self._notify(ProtocolEvent(
            kind=EventKind.RECEIVE,
            participant_id=recipient.id,
            peer_id=commander.id,
            attack=msg.attack,
            m=m,
            depth=depth,
            detail={"received_count": recipient.messages_received_count},
        ))

    def _decide(self, participant: Participant, depth: int, stats: RunStats):
        decision = participant.decide()
        stats.decide_passes += 1

        if self._event_sinks:
            attack, retreat = participant.tally()
            self._notify(ProtocolEvent(
                kind=EventKind.DECIDE,
                participant_id=participant.id,
                attack=decision,
                depth=depth,
                detail={"attack": attack, "retreat": retreat},
            ))

    def _notify(self, event: ProtocolEvent):
        """Hand an event to every sink; a failing sink never stops the protocol"""
        for sink in self._event_sinks:
            try:
                sink(event)
            except Exception as e:
                logger.error(f"Event sink error on {event.kind.value}: {e}")


def om(
    arena: ParticipantArena,
    roster: Sequence[int],
    commander: int,
    m: int,
    event_sinks: Optional[Iterable[EventSink]] = None
) -> RunStats:
    """Run OM(m) once over `arena` with an ad-hoc orchestrator"""
    return OralMessagesOrchestrator(arena, event_sinks).om(roster, commander, m)
