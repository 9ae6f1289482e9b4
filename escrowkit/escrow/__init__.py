"""Two-party escrow deals with arbitration and oracle-signed settlement."""

from .deal import EscrowDeal
from .factory import EscrowFactory
from .payout import (
    FungibleToken,
    InMemoryToken,
    NativeLedger,
    NativePayout,
    PayoutChannel,
    TokenPayout,
    open_channel,
)
from .signature import SignatureVerifier, oracle_message_digest, sign_oracle_resolution
from .types import DealDetails, DealState, DealTerms

__all__ = [
    "DealDetails",
    "DealState",
    "DealTerms",
    "EscrowDeal",
    "EscrowFactory",
    "FungibleToken",
    "InMemoryToken",
    "NativeLedger",
    "NativePayout",
    "PayoutChannel",
    "SignatureVerifier",
    "TokenPayout",
    "open_channel",
    "oracle_message_digest",
    "sign_oracle_resolution",
]
