"""Escrow deal state machine.

One deal binds a depositor, a beneficiary and a fixed amount of one asset.
Exactly one terminal path can pay out:

    CREATED --fund--> FUNDED --release--------> RELEASED
                         |   --refund---------> REFUNDED
                         |   --oracle_resolve-> RELEASED
                         +--dispute--> DISPUTED --resolve--------> RESOLVED
                                                --oracle_resolve-> RELEASED

Time is never read from a clock: callers pass ``now`` (unix seconds).
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Optional

from hexbytes import HexBytes

from ..errors import (
    BadOracleSignature,
    DeadlineExpired,
    DeadlineNotExpired,
    InvalidState,
    NotArbitrator,
    NotBeneficiary,
    NotDepositor,
    NotParticipant,
    OracleReplay,
    ReentrantCall,
)
from ..events import EventLog
from ..identity import normalize_address
from .payout import FungibleToken, NativeLedger, PayoutChannel, open_channel
from .signature import SignatureVerifier, oracle_message_digest
from .types import DealDetails, DealState, DealTerms

_LOG = logging.getLogger(__name__)

_ORACLE_RESOLVABLE = (DealState.FUNDED, DealState.DISPUTED)


def _nonreentrant(method):
    """Serialize calls per deal and reject re-entry from the same call stack."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            if self._entered:
                raise ReentrantCall(f"{method.__name__} re-entered on deal {self.address}")
            self._entered = True
            try:
                return method(self, *args, **kwargs)
            finally:
                self._entered = False

    return wrapper


class EscrowDeal:
    """Two-party escrow with arbitration and oracle-signed settlement.

    Constructor inputs are trusted; :class:`~escrowkit.escrow.factory.EscrowFactory`
    is the validating entry point.
    """

    def __init__(
        self,
        address: str,
        depositor: str,
        beneficiary: str,
        amount: int,
        deadline: int,
        arbitrator: str,
        oracle_signer: str,
        asset: Optional[FungibleToken] = None,
        ledger: Optional[NativeLedger] = None,
        verifier: Optional[SignatureVerifier] = None,
    ):
        address = normalize_address(address, "address")
        self._channel: PayoutChannel = open_channel(asset, amount, address, ledger)
        self._terms = DealTerms(
            address=address,
            depositor=normalize_address(depositor, "depositor"),
            beneficiary=normalize_address(beneficiary, "beneficiary"),
            arbitrator=normalize_address(arbitrator, "arbitrator"),
            oracle_signer=normalize_address(oracle_signer, "oracle_signer"),
            asset=self._channel.asset,
            amount=amount,
            deadline=deadline,
        )
        self._verifier = verifier or SignatureVerifier()
        self._state = DealState.CREATED
        self._used_oracle_messages: set[bytes] = set()
        self._lock = threading.RLock()
        self._entered = False
        self.events = EventLog(emitter=address)

    # -- views --------------------------------------------------------------

    @property
    def terms(self) -> DealTerms:
        return self._terms

    @property
    def address(self) -> str:
        return self._terms.address

    @property
    def depositor(self) -> str:
        return self._terms.depositor

    @property
    def beneficiary(self) -> str:
        return self._terms.beneficiary

    @property
    def arbitrator(self) -> str:
        return self._terms.arbitrator

    @property
    def oracle_signer(self) -> str:
        return self._terms.oracle_signer

    @property
    def asset(self) -> Optional[str]:
        return self._terms.asset

    @property
    def amount(self) -> int:
        return self._terms.amount

    @property
    def deadline(self) -> int:
        return self._terms.deadline

    @property
    def state(self) -> DealState:
        return self._state

    @property
    def used_oracle_messages(self) -> frozenset[bytes]:
        return frozenset(self._used_oracle_messages)

    def oracle_message_digest(self, to_beneficiary: bool, nonce: int) -> HexBytes:
        return oracle_message_digest(self.address, to_beneficiary, nonce)

    def is_oracle_message_used(self, digest: bytes) -> bool:
        return bytes(digest) in self._used_oracle_messages

    def details(self) -> DealDetails:
        t = self._terms
        return DealDetails(
            address=t.address,
            depositor=t.depositor,
            beneficiary=t.beneficiary,
            arbitrator=t.arbitrator,
            oracle_signer=t.oracle_signer,
            asset=t.asset,
            amount=t.amount,
            deadline=t.deadline,
            state=self._state,
            custody_balance=self._channel.balance(),
            used_oracle_messages=len(self._used_oracle_messages),
        )

    # -- internal -----------------------------------------------------------

    def _require_state(self, *allowed: DealState) -> None:
        if self._state not in allowed:
            expected = "/".join(s.name for s in allowed)
            raise InvalidState(f"deal {self.address} is {self._state.name}, expected {expected}")

    def _enter(self, new_state: DealState) -> DealState:
        previous = self._state
        self._state = new_state
        _LOG.info("deal=%s state=%s->%s", self.address, previous.name, new_state.name)
        return previous

    def _settle(self, new_state: DealState, recipient: str, digest: Optional[bytes] = None) -> None:
        """Write the terminal state, then pay; undo both if the payout fails."""
        previous = self._enter(new_state)
        if digest is not None:
            self._used_oracle_messages.add(digest)
        try:
            self._channel.pay(recipient)
        except Exception:
            self._state = previous
            if digest is not None:
                self._used_oracle_messages.discard(digest)
            _LOG.info("deal=%s payout to %s failed, state back to %s", self.address, recipient, previous.name)
            raise

    # -- operations ---------------------------------------------------------

    @_nonreentrant
    def fund(self, sender: str, value: int = 0) -> None:
        """Lock ``amount`` in custody.

        For the native asset *value* must equal ``amount``; for a token the
        amount is pulled with ``transfer_from`` and *value* must be 0.
        """
        self._require_state(DealState.CREATED)
        sender = normalize_address(sender, "sender")
        previous = self._enter(DealState.FUNDED)
        try:
            self._channel.collect(sender, value)
        except Exception:
            self._state = previous
            raise
        self.events.emit("Funded", **{"from": sender})

    @_nonreentrant
    def release(self, sender: str, now: int) -> None:
        """Depositor pays the beneficiary, allowed up to and including the deadline."""
        self._require_state(DealState.FUNDED)
        if normalize_address(sender, "sender") != self.depositor:
            raise NotDepositor(f"{sender} is not the depositor")
        if now > self.deadline:
            raise DeadlineExpired(f"now {now} is past deadline {self.deadline}")
        self._settle(DealState.RELEASED, self.beneficiary)
        self.events.emit("Released", to=self.beneficiary)

    @_nonreentrant
    def refund(self, sender: str, now: int) -> None:
        """Beneficiary returns the funds to the depositor once the deadline has passed."""
        self._require_state(DealState.FUNDED)
        if normalize_address(sender, "sender") != self.beneficiary:
            raise NotBeneficiary(f"{sender} is not the beneficiary")
        if now <= self.deadline:
            raise DeadlineNotExpired(f"now {now} is not past deadline {self.deadline}")
        self._settle(DealState.REFUNDED, self.depositor)
        self.events.emit("Refunded", to=self.depositor)

    @_nonreentrant
    def dispute(self, sender: str) -> None:
        self._require_state(DealState.FUNDED)
        sender = normalize_address(sender, "sender")
        if sender not in self._terms.participants:
            raise NotParticipant(f"{sender} is not a participant")
        self._enter(DealState.DISPUTED)
        self.events.emit("Disputed", by=sender)

    @_nonreentrant
    def resolve(self, sender: str, to_beneficiary: bool) -> None:
        self._require_state(DealState.DISPUTED)
        sender = normalize_address(sender, "sender")
        if sender != self.arbitrator:
            raise NotArbitrator(f"{sender} is not the arbitrator")
        recipient = self.beneficiary if to_beneficiary else self.depositor
        self._settle(DealState.RESOLVED, recipient)
        self.events.emit("Resolved", executor=sender, toBeneficiary=bool(to_beneficiary))

    @_nonreentrant
    def oracle_resolve(self, to_beneficiary: bool, nonce: int, signature: bytes | str) -> None:
        """Settle with an outcome signed by the oracle signer.

        Callable by anyone from FUNDED or DISPUTED. The digest is checked for
        authenticity and replay before the state, so a consumed message is
        always reported as :class:`OracleReplay`.
        """
        digest = bytes(self.oracle_message_digest(to_beneficiary, nonce))
        signer = self._verifier.recover(digest, signature)
        if signer != self.oracle_signer:
            _LOG.warning("deal=%s rejected oracle signature from %s", self.address, signer)
            raise BadOracleSignature(f"signer {signer} is not the oracle signer")
        if digest in self._used_oracle_messages:
            _LOG.warning("deal=%s oracle replay nonce=%s", self.address, nonce)
            raise OracleReplay(f"oracle message 0x{digest.hex()} already used")
        self._require_state(*_ORACLE_RESOLVABLE)
        recipient = self.beneficiary if to_beneficiary else self.depositor
        self._settle(DealState.RELEASED, recipient, digest=digest)
        self.events.emit("OracleResolved", toBeneficiary=bool(to_beneficiary), nonce=nonce)
