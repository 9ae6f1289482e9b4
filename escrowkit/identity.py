"""secp256k1 identity: address normalization, key generation, signing and recovery."""

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import is_address
from web3 import Web3

from .errors import BadOracleSignature, IdentityError, InvalidAddress

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: str, field_name: str = "address") -> str:
    """Return the EIP-55 checksum form of *value*.

    Raises:
        InvalidAddress: If *value* is not a 20-byte hex address.
    """
    if not isinstance(value, str) or not is_address(value):
        raise InvalidAddress(f"{field_name} is not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


class Identity:
    """An EVM signing identity backed by a secp256k1 private key."""

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def generate(cls) -> "Identity":
        """Generate a new random keypair (in-memory only)."""
        return cls(Account.create())

    @classmethod
    def from_key(cls, private_key: bytes | str) -> "Identity":
        """Wrap an existing 32-byte private key (raw bytes or 0x-hex)."""
        try:
            return cls(Account.from_key(private_key))
        except Exception as e:
            raise IdentityError(f"Invalid private key: {e}") from e

    @property
    def address(self) -> str:
        """EIP-55 checksum address of this identity."""
        return self._account.address

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a 32-byte digest as an EIP-191 personal message.

        Returns the 65-byte ``r || s || v`` signature.
        """
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return bytes(signed.signature)

    @staticmethod
    def recover(digest: bytes, signature: bytes) -> str:
        """Recover the checksum address that signed *digest*.

        Raises:
            BadOracleSignature: If the signature is malformed.
        """
        try:
            return Account.recover_message(
                encode_defunct(primitive=digest), signature=signature
            )
        except Exception as e:
            raise BadOracleSignature(f"Signature recovery failed: {e}") from e
