"""escrowkit: arbitrated escrow deals and an optimistic dispute registry."""

from .escrow import (
    DealState,
    EscrowDeal,
    EscrowFactory,
    InMemoryToken,
    NativeLedger,
    SignatureVerifier,
    oracle_message_digest,
    sign_oracle_resolution,
)
from .events import Event, EventLog
from .identity import ZERO_ADDRESS, Identity, normalize_address
from .optimistic import CHALLENGE_PERIOD, OptimisticOracle
from .types import Outcome, Proposal
from .errors import (
    EscrowKitError,
    AuthorizationError,
    StateError,
    ValidationError,
    TimingError,
    PaymentError,
    IntegrityError,
    IdentityError,
    CanonicalizationError,
)

__all__ = [
    "CHALLENGE_PERIOD",
    "DealState",
    "EscrowDeal",
    "EscrowFactory",
    "Event",
    "EventLog",
    "Identity",
    "InMemoryToken",
    "NativeLedger",
    "OptimisticOracle",
    "Outcome",
    "Proposal",
    "SignatureVerifier",
    "ZERO_ADDRESS",
    "normalize_address",
    "oracle_message_digest",
    "sign_oracle_resolution",
    "EscrowKitError",
    "AuthorizationError",
    "StateError",
    "ValidationError",
    "TimingError",
    "PaymentError",
    "IntegrityError",
    "IdentityError",
    "CanonicalizationError",
]
