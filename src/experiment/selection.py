# src/experiment/selection.py
"""
Selection Strategies - who betrays, and who commands first

A strategy receives the participant ids of a fresh trial and the number
of traitors, and returns which ids are traitors and which id issues the
first order. The core places no constraint on the choice.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional, Dict, Any, FrozenSet, Iterable, Protocol, Sequence

logger = logging.getLogger("omsim.experiment.selection")


@dataclass(frozen=True)
class Selection:
    """Traitor ids and the first commander for one trial"""
    traitor_ids: FrozenSet[int]
    commander_id: int

    @property
    def commander_is_traitor(self) -> bool:
        return self.commander_id in self.traitor_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "traitor_ids": sorted(self.traitor_ids),
            "commander_id": self.commander_id,
        }


class SelectionStrategy(Protocol):
    """Chooses traitors and the first commander"""

    def select(self, participant_ids: Sequence[int], num_traitors: int) -> Selection:
        ...


class RandomSelection:
    """
    Uniformly random traitors and first commander.

    Pass a seed for reproducible experiments; each strategy owns its own
    random.Random so it never disturbs the global generator.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def select(self, participant_ids: Sequence[int], num_traitors: int) -> Selection:
        if not participant_ids:
            raise ValueError("Cannot select from an empty set of participants")
        if not 0 <= num_traitors <= len(participant_ids):
            raise ValueError(
                f"num_traitors must be within 0..{len(participant_ids)}, got {num_traitors}"
            )

        ids = list(participant_ids)
        traitors = frozenset(self._rng.sample(ids, num_traitors))
        commander = self._rng.choice(ids)

        logger.debug(f"Random selection: traitors={sorted(traitors)}, commander=#{commander}")
        return Selection(traitor_ids=traitors, commander_id=commander)

    def __repr__(self) -> str:
        return f"RandomSelection(seed={self.seed})"


class FixedSelection:
    """Always returns the same traitors and commander (deterministic tests)"""

    def __init__(self, traitor_ids: Iterable[int], commander_id: int):
        self.traitor_ids = frozenset(traitor_ids)
        self.commander_id = commander_id

    def select(self, participant_ids: Sequence[int], num_traitors: int) -> Selection:
        known = set(participant_ids)
        missing = (self.traitor_ids | {self.commander_id}) - known
        if missing:
            raise ValueError(f"Fixed selection refers to unknown participants: {sorted(missing)}")
        if len(self.traitor_ids) != num_traitors:
            logger.warning(
                f"Fixed selection has {len(self.traitor_ids)} traitors, "
                f"experiment asked for {num_traitors}"
            )
        return Selection(traitor_ids=self.traitor_ids, commander_id=self.commander_id)

    def __repr__(self) -> str:
        return f"FixedSelection(traitor_ids={sorted(self.traitor_ids)}, commander_id={self.commander_id})"
