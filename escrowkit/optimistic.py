"""Optimistic propose / dispute / finalize registry.

Anyone may propose an outcome for an opaque id. During the challenge window
anyone may dispute it; a disputed proposal is settled by the resolver,
an undisputed one is finalized unchanged once the window has elapsed.

    (no record) --propose--> PROPOSED --finalize (after window)--> RESOLVED
                                 |
                                 +--dispute (inside window)--> DISPUTED --resolve_dispute--> RESOLVED

Environment variables (read by :meth:`OptimisticOracle.from_env`):
    ESCROW_ORACLE_RESOLVER – resolver address
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import replace
from typing import Hashable, Optional

from .errors import (
    AlreadyDisputed,
    AlreadyProposed,
    AlreadyResolved,
    ChallengeWindowClosed,
    ChallengeWindowNotClosed,
    Disputed,
    InvalidOutcome,
    NoProposalExist,
    NotDisputed,
    NotResolver,
)
from .events import EventLog
from .identity import normalize_address
from .types import Outcome, Proposal

_LOG = logging.getLogger(__name__)

CHALLENGE_PERIOD = 2 * 24 * 60 * 60  # 2 days

ProposalId = Hashable


def _final_outcome(value: Outcome | int) -> Outcome:
    try:
        outcome = Outcome(value)
    except ValueError as e:
        raise InvalidOutcome(f"unknown outcome {value!r}") from e
    if outcome == Outcome.NONE:
        raise InvalidOutcome("outcome must be RELEASE or REFUND")
    return outcome


class OptimisticOracle:
    """Keyed registry of proposals with a single resolver authority."""

    def __init__(self, resolver: str | None = None, address: str = ""):
        self.resolver = normalize_address(
            resolver or os.environ["ESCROW_ORACLE_RESOLVER"], "resolver"
        )
        self._proposals: dict[ProposalId, Proposal] = {}
        self._lock = threading.Lock()
        self.events = EventLog(emitter=address)

    @classmethod
    def from_env(cls) -> "OptimisticOracle":
        return cls()

    # -- views --------------------------------------------------------------

    def get_proposal(self, proposal_id: ProposalId) -> Optional[Proposal]:
        """Return a copy of the proposal for *proposal_id*, or ``None``."""
        proposal = self._proposals.get(proposal_id)
        return replace(proposal) if proposal is not None else None

    def has_proposal(self, proposal_id: ProposalId) -> bool:
        return proposal_id in self._proposals

    def challenge_deadline(self, proposal_id: ProposalId) -> int:
        """First timestamp at which the proposal can no longer be disputed."""
        return self._lookup(proposal_id).timestamp + CHALLENGE_PERIOD

    def _lookup(self, proposal_id: ProposalId) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NoProposalExist(f"no proposal for id {proposal_id!r}")
        return proposal

    # -- operations ---------------------------------------------------------

    def propose(self, sender: str, proposal_id: ProposalId, outcome: Outcome | int, now: int) -> Proposal:
        outcome = _final_outcome(outcome)
        sender = normalize_address(sender, "sender")
        with self._lock:
            if proposal_id in self._proposals:
                raise AlreadyProposed(f"id {proposal_id!r} already has a proposal")
            proposal = Proposal(proposer=sender, outcome=outcome, timestamp=now)
            self._proposals[proposal_id] = proposal
            self.events.emit("Proposed", id=proposal_id, outcome=outcome)
        _LOG.info("proposed id=%r outcome=%s by=%s", proposal_id, outcome.name, sender)
        return replace(proposal)

    def dispute(self, sender: str, proposal_id: ProposalId, now: int) -> None:
        sender = normalize_address(sender, "sender")
        with self._lock:
            proposal = self._lookup(proposal_id)
            if proposal.disputed:
                raise AlreadyDisputed(f"id {proposal_id!r} already disputed")
            if now >= proposal.timestamp + CHALLENGE_PERIOD:
                raise ChallengeWindowClosed(
                    f"challenge window for {proposal_id!r} closed at "
                    f"{proposal.timestamp + CHALLENGE_PERIOD}"
                )
            proposal.disputed = True
            self.events.emit("Disputed", id=proposal_id)
        _LOG.info("disputed id=%r by=%s", proposal_id, sender)

    def finalize(self, proposal_id: ProposalId, now: int) -> Outcome:
        """Resolve an undisputed proposal after the challenge window, unchanged."""
        with self._lock:
            proposal = self._lookup(proposal_id)
            if proposal.resolved:
                raise AlreadyResolved(f"id {proposal_id!r} already resolved")
            if proposal.disputed:
                raise Disputed(f"id {proposal_id!r} is disputed")
            if now < proposal.timestamp + CHALLENGE_PERIOD:
                raise ChallengeWindowNotClosed(
                    f"challenge window for {proposal_id!r} open until "
                    f"{proposal.timestamp + CHALLENGE_PERIOD}"
                )
            proposal.resolved = True
            self.events.emit("Resolved", id=proposal_id, outcome=proposal.outcome)
        _LOG.info("finalized id=%r outcome=%s", proposal_id, proposal.outcome.name)
        return proposal.outcome

    def resolve_dispute(self, sender: str, proposal_id: ProposalId, final_outcome: Outcome | int) -> None:
        """Resolver overrides the outcome of a disputed proposal."""
        sender = normalize_address(sender, "sender")
        if sender != self.resolver:
            raise NotResolver(f"{sender} is not the resolver")
        final_outcome = _final_outcome(final_outcome)
        with self._lock:
            proposal = self._lookup(proposal_id)
            if not proposal.disputed:
                raise NotDisputed(f"id {proposal_id!r} was not disputed")
            if proposal.resolved:
                raise AlreadyResolved(f"id {proposal_id!r} already resolved")
            proposal.outcome = final_outcome
            proposal.resolved = True
            self.events.emit("Resolved", id=proposal_id, outcome=final_outcome)
        _LOG.info("resolved dispute id=%r outcome=%s", proposal_id, final_outcome.name)
