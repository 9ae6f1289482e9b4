"""Oracle message digests and signer recovery.

The digest binds a resolution to one deal:

    digest = keccak256(abi.encodePacked(address deal, bool toBeneficiary, uint256 nonce))

The oracle signs it as an EIP-191 personal message, so standard wallets and
``cast wallet sign`` produce compatible signatures.
"""

from __future__ import annotations

import logging

from hexbytes import HexBytes
from web3 import Web3

from ..errors import BadOracleSignature, InvalidNonce
from ..identity import Identity, normalize_address

_LOG = logging.getLogger(__name__)

UINT256_MAX = 2**256 - 1


def oracle_message_digest(deal_address: str, to_beneficiary: bool, nonce: int) -> HexBytes:
    """Return the 32-byte digest an oracle signs for a resolution."""
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        raise InvalidNonce(f"nonce must be an integer, got {type(nonce).__name__}")
    if nonce < 0 or nonce > UINT256_MAX:
        raise InvalidNonce("nonce out of uint256 range")
    return Web3.solidity_keccak(
        ["address", "bool", "uint256"],
        [normalize_address(deal_address, "deal_address"), bool(to_beneficiary), nonce],
    )


def sign_oracle_resolution(
    identity: Identity, deal_address: str, to_beneficiary: bool, nonce: int
) -> bytes:
    """Produce the signature an off-chain oracle submits to ``oracle_resolve``."""
    return identity.sign_digest(oracle_message_digest(deal_address, to_beneficiary, nonce))


class SignatureVerifier:
    """Stateless signer recovery over EIP-191 wrapped digests."""

    def recover(self, digest: bytes, signature: bytes | str) -> str:
        """Return the checksum address that produced *signature*.

        Raises:
            BadOracleSignature: If the signature cannot be parsed or recovered.
        """
        try:
            raw = HexBytes(signature)
        except (TypeError, ValueError) as e:
            raise BadOracleSignature(f"Signature is not valid hex: {e}") from e
        signer = Identity.recover(bytes(digest), raw)
        _LOG.debug("recovered signer=%s digest=%s", signer, HexBytes(digest).hex())
        return signer

    def is_signed_by(self, digest: bytes, signature: bytes | str, expected: str) -> bool:
        return self.recover(digest, signature) == normalize_address(expected, "expected")
