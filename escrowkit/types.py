"""Data model for the optimistic dispute registry."""

from dataclasses import dataclass
from enum import IntEnum


class Outcome(IntEnum):
    NONE = 0
    RELEASE = 1
    REFUND = 2


@dataclass
class Proposal:
    proposer: str
    outcome: Outcome
    timestamp: int
    disputed: bool = False
    resolved: bool = False
