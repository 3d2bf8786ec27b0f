# src/oral_messages/message.py
"""
Order Message - the value carried by the Oral-Messages protocol

A message carries exactly one binary order: attack or retreat.
Messages are immutable once created and may be shared freely between
participants and recursion levels.
"""

from dataclasses import dataclass
from typing import Dict, Any


@dataclass(frozen=True)
class Message:
    """An immutable order (attack=True, retreat=False)"""
    attack: bool

    def inverted(self) -> "Message":
        """Return the opposite order"""
        return Message(attack=not self.attack)

    @classmethod
    def parse(cls, value: str) -> "Message":
        """Build a message from 'attack' / 'retreat' (case-insensitive)"""
        normalized = value.strip().lower()
        if normalized == "attack":
            return ATTACK
        if normalized == "retreat":
            return RETREAT
        raise ValueError(f"Unknown order '{value}', expected 'attack' or 'retreat'")

    def __str__(self) -> str:
        return "attack" if self.attack else "retreat"

    def to_dict(self) -> Dict[str, Any]:
        return {"attack": self.attack, "order": str(self)}


ATTACK = Message(attack=True)
RETREAT = Message(attack=False)
