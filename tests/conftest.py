"""
pytest configuration for OMSim test suite
"""

import pytest

from src.oral_messages import (
    ATTACK,
    ParticipantArena,
    OralMessagesOrchestrator,
    RecordingEventSink,
)


def build_arena(count: int, traitors=(), commander: int = 1, order=ATTACK, relay_policy=None):
    """Arena of `count` generals with the given traitors and a seeded commander"""
    arena = ParticipantArena.with_generals(count)
    for traitor_id in traitors:
        arena[traitor_id].mark_traitor(relay_policy)
    arena[commander].seed_order(order)
    return arena


def roster_without(arena: ParticipantArena, commander: int):
    return [pid for pid in arena.ids if pid != commander]


@pytest.fixture
def loyal_arena():
    """Four loyal generals, #1 commanding with ATTACK"""
    return build_arena(4)


@pytest.fixture
def recorder():
    return RecordingEventSink()


@pytest.fixture
def orchestrator_factory(recorder):
    """Build an orchestrator for an arena with the recording sink attached"""
    def factory(arena: ParticipantArena, with_recorder: bool = True):
        sinks = [recorder] if with_recorder else []
        return OralMessagesOrchestrator(arena, sinks)
    return factory


@pytest.fixture
def arena_builder():
    """Expose build_arena to tests"""
    return build_arena


@pytest.fixture
def lieutenants_of():
    """Expose roster_without to tests"""
    return roster_without
