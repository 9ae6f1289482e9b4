"""Validating entry point that creates escrow deals.

Every deal created by one factory shares the same arbitrator and oracle
signer.

Environment variables (read by :meth:`EscrowFactory.from_env`, overridable
via constructor args):
    ESCROW_ARBITRATOR     – arbitrator address
    ESCROW_ORACLE_SIGNER  – oracle signer address
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from eth_utils import keccak, to_canonical_address

from ..errors import InvalidAddress, InvalidAmount, InvalidBeneficiary, InvalidDeadline
from ..events import EventLog
from ..identity import ZERO_ADDRESS, normalize_address
from .deal import EscrowDeal
from .payout import FungibleToken, NativeLedger
from .signature import SignatureVerifier

_LOG = logging.getLogger(__name__)

# Address used as the factory's own identity when none is given.
DEFAULT_FACTORY_ADDRESS = "0x00000000000000000000000000000000000e5c40"


class EscrowFactory:
    def __init__(
        self,
        arbitrator: str | None = None,
        oracle_signer: str | None = None,
        ledger: NativeLedger | None = None,
        address: str = DEFAULT_FACTORY_ADDRESS,
        verifier: SignatureVerifier | None = None,
    ):
        self.arbitrator = normalize_address(
            arbitrator or os.environ["ESCROW_ARBITRATOR"], "arbitrator"
        )
        self.oracle_signer = normalize_address(
            oracle_signer or os.environ["ESCROW_ORACLE_SIGNER"], "oracle_signer"
        )
        self.address = normalize_address(address, "factory")
        self.ledger = ledger if ledger is not None else NativeLedger()
        self._verifier = verifier or SignatureVerifier()
        self._deals: dict[str, EscrowDeal] = {}
        self._counter = 0
        self.events = EventLog(emitter=self.address)

    @classmethod
    def from_env(cls, ledger: NativeLedger | None = None) -> "EscrowFactory":
        """Build a factory from environment variables."""
        return cls(ledger=ledger)

    def _next_address(self, depositor: str) -> str:
        seed = (
            to_canonical_address(self.address)
            + to_canonical_address(depositor)
            + self._counter.to_bytes(32, "big")
        )
        self._counter += 1
        return normalize_address("0x" + keccak(seed)[-20:].hex())

    def create_escrow(
        self,
        sender: str,
        beneficiary: str,
        asset: Optional[FungibleToken],
        amount: int,
        deadline: int,
        now: int,
    ) -> EscrowDeal:
        """Validate the terms and create a deal with *sender* as depositor.

        Raises:
            InvalidBeneficiary: Beneficiary is malformed, zero, or the depositor.
            InvalidAmount: Amount is not a positive integer.
            InvalidDeadline: Deadline is not strictly after *now*.
        """
        depositor = normalize_address(sender, "sender")
        try:
            beneficiary = normalize_address(beneficiary, "beneficiary")
        except InvalidAddress as e:
            raise InvalidBeneficiary(str(e)) from e
        if beneficiary == ZERO_ADDRESS:
            raise InvalidBeneficiary("beneficiary is the zero address")
        if beneficiary == depositor:
            raise InvalidBeneficiary("beneficiary must differ from depositor")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be > 0, got {amount!r}")
        if deadline <= now:
            raise InvalidDeadline(f"deadline {deadline} is not after {now}")

        deal = EscrowDeal(
            address=self._next_address(depositor),
            depositor=depositor,
            beneficiary=beneficiary,
            amount=amount,
            deadline=deadline,
            arbitrator=self.arbitrator,
            oracle_signer=self.oracle_signer,
            asset=asset,
            ledger=self.ledger,
            verifier=self._verifier,
        )
        self._deals[deal.address] = deal
        self.events.emit(
            "EscrowCreated",
            escrowAddress=deal.address,
            depositor=depositor,
            beneficiary=beneficiary,
            asset=deal.asset,
            amount=amount,
            deadline=deadline,
        )
        _LOG.info("created deal=%s depositor=%s amount=%s", deal.address, depositor, amount)
        return deal

    def get_deal(self, address: str) -> EscrowDeal | None:
        return self._deals.get(normalize_address(address, "address"))

    @property
    def deals(self) -> list[EscrowDeal]:
        return list(self._deals.values())
