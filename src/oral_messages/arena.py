# src/oral_messages/arena.py
"""
Participant Arena - every general of one experiment, addressed by id

The orchestrator and validator work on lists of participant ids rather
than participant objects, so the recursive protocol never holds more than
one live handle to a participant at a time.
"""

import logging
from typing import Dict, Any, Iterable, Iterator, List

from .participant import Participant, create_participant

logger = logging.getLogger("omsim.oral_messages.arena")


class UnknownParticipantError(KeyError):
    """Raised when an id is not present in the arena"""
    def __init__(self, participant_id: int):
        self.participant_id = participant_id
        super().__init__(f"Participant #{participant_id} is not in the arena")


class ParticipantArena:
    """Owns the participants of a single experiment"""

    def __init__(self, participants: Iterable[Participant] = ()):
        self._participants: Dict[int, Participant] = {}
        for participant in participants:
            self.add(participant)

    @classmethod
    def with_generals(cls, count: int) -> "ParticipantArena":
        """Create an arena of loyal generals with ids 1..count"""
        arena = cls(create_participant(i + 1) for i in range(count))
        logger.debug(f"Arena created with {count} generals")
        return arena

    def add(self, participant: Participant) -> Participant:
        if participant.id in self._participants:
            raise ValueError(f"Participant id {participant.id} is already in use")
        self._participants[participant.id] = participant
        return participant

    def get(self, participant_id: int) -> Participant:
        try:
            return self._participants[participant_id]
        except KeyError:
            raise UnknownParticipantError(participant_id) from None

    def __getitem__(self, participant_id: int) -> Participant:
        return self.get(participant_id)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def __iter__(self) -> Iterator[Participant]:
        return iter(self._participants.values())

    def __len__(self) -> int:
        return len(self._participants)

    @property
    def ids(self) -> List[int]:
        return list(self._participants)

    def resolve(self, participant_ids: Iterable[int]) -> List[Participant]:
        """Participants for the given ids, in the given order"""
        return [self.get(pid) for pid in participant_ids]

    def traitor_ids(self) -> List[int]:
        return [p.id for p in self if p.is_traitor]

    def decisions(self) -> Dict[int, bool]:
        return {p.id: p.decision for p in self}

    def to_dict(self) -> Dict[str, Any]:
        return {str(p.id): p.to_dict() for p in self}
