from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class DealState(IntEnum):
    CREATED = 0
    FUNDED = 1
    DISPUTED = 2
    RELEASED = 3
    REFUNDED = 4
    RESOLVED = 5

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({DealState.RELEASED, DealState.REFUNDED, DealState.RESOLVED})


@dataclass(frozen=True)
class DealTerms:
    """Participant identities and economic terms, fixed at construction."""

    address: str
    depositor: str
    beneficiary: str
    arbitrator: str
    oracle_signer: str
    asset: Optional[str]  # None for the native asset
    amount: int
    deadline: int

    @property
    def participants(self) -> frozenset[str]:
        return frozenset({self.depositor, self.beneficiary})

    @property
    def is_native(self) -> bool:
        return self.asset is None


@dataclass
class DealDetails:
    address: str
    depositor: str
    beneficiary: str
    arbitrator: str
    oracle_signer: str
    asset: Optional[str]
    amount: int
    deadline: int
    state: DealState
    custody_balance: int
    used_oracle_messages: int
