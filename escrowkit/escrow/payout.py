"""Custody and payout of a deal's locked amount.

Two asset kinds are supported:

* the native asset, held as balances in a shared :class:`NativeLedger`;
* any fungible token implementing :class:`FungibleToken`
  (``transfer`` / ``transfer_from`` returning ``bool``, ERC-20 style).

Recipients may register a receive hook that runs inside the transfer, after
the credit. A hook that raises makes the transfer fail and restores the
whole balance table (and token allowances) to what it was before the
transfer, including anything the hook itself moved. This mirrors a
reverting contract recipient on an EVM chain.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Protocol, runtime_checkable

from ..errors import InsufficientBalance, InvalidAmount, TransferFailed, WrongPaymentAmount
from ..identity import ZERO_ADDRESS, normalize_address

_LOG = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int], None]


def _require_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(f"amount must be a non-negative integer, got {amount!r}")
    return amount


class _Balances:
    """Balance table with per-recipient receive hooks."""

    def __init__(self):
        self._balances: dict[str, int] = {}
        self._hooks: dict[str, ReceiveHook] = {}

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def on_receive(self, address: str, hook: Optional[ReceiveHook]) -> None:
        """Install (or with ``None`` remove) the receive hook for *address*."""
        address = normalize_address(address)
        if hook is None:
            self._hooks.pop(address, None)
        else:
            self._hooks[address] = hook

    def _credit(self, to: str, amount: int) -> None:
        self._balances[to] = self._balances.get(to, 0) + amount

    def _snapshot(self) -> dict:
        return {"balances": dict(self._balances)}

    def _restore(self, snapshot: dict) -> None:
        self._balances = snapshot["balances"]

    def _move(self, sender: str, to: str, amount: int) -> None:
        sender = normalize_address(sender, "sender")
        to = normalize_address(to, "to")
        _require_amount(amount)
        if to == ZERO_ADDRESS:
            raise TransferFailed("transfer to the zero address")
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalance(
                f"{sender} holds {available}, needs {amount}"
            )
        hook = self._hooks.get(to)
        snapshot = self._snapshot() if hook is not None else None
        self._balances[sender] = available - amount
        self._credit(to, amount)

        if hook is None:
            return
        try:
            hook(sender, amount)
        except Exception as e:
            # Anything the hook moved is undone along with the credit.
            self._restore(snapshot)
            raise TransferFailed(f"recipient {to} rejected transfer: {e}") from e


class NativeLedger(_Balances):
    """Native-asset balances for every address in one environment."""

    def mint(self, to: str, amount: int) -> None:
        self._credit(normalize_address(to, "to"), _require_amount(amount))

    def transfer(self, sender: str, to: str, amount: int) -> None:
        """Move *amount* from *sender* to *to* or raise; never partial."""
        self._move(sender, to, amount)
        _LOG.debug("native transfer %s -> %s amount=%s", sender, to, amount)


@runtime_checkable
class FungibleToken(Protocol):
    address: str

    def balance_of(self, address: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


class InMemoryToken(_Balances):
    """ERC-20-like token with explicit caller arguments."""

    def __init__(self, address: str, symbol: str = "TKN"):
        super().__init__()
        self.address = normalize_address(address, "token")
        self.symbol = symbol
        self._allowances: dict[tuple[str, str], int] = {}

    def mint(self, to: str, amount: int) -> None:
        self._credit(normalize_address(to, "to"), _require_amount(amount))

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        key = (normalize_address(owner, "owner"), normalize_address(spender, "spender"))
        self._allowances[key] = _require_amount(amount)
        return True

    def _snapshot(self) -> dict:
        snapshot = super()._snapshot()
        snapshot["allowances"] = dict(self._allowances)
        return snapshot

    def _restore(self, snapshot: dict) -> None:
        super()._restore(snapshot)
        self._allowances = snapshot["allowances"]

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move *amount* from *owner* on behalf of *spender*.

        The allowance is spent only once the move, hooks included, has gone
        through; if it no longer covers *amount* by then, everything is undone.
        """
        key = (normalize_address(owner, "owner"), normalize_address(spender, "spender"))
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            raise TransferFailed(f"allowance {allowed} below {amount}")
        snapshot = self._snapshot()
        self._move(owner, to, amount)
        remaining = self._allowances.get(key, 0) - amount
        if remaining < 0:
            self._restore(snapshot)
            raise TransferFailed(f"allowance of {spender} changed during transfer")
        self._allowances[key] = remaining
        return True


class PayoutChannel(ABC):
    """Moves one fixed amount into and out of a custody address."""

    def __init__(self, custody: str, amount: int):
        self.custody = normalize_address(custody, "custody")
        self.amount = amount

    @property
    @abstractmethod
    def asset(self) -> Optional[str]:
        """Token address, or ``None`` for the native asset."""

    @abstractmethod
    def balance(self) -> int:
        """Amount currently held by the custody address."""

    @abstractmethod
    def collect(self, payer: str, value: int) -> None:
        """Pull exactly ``amount`` from *payer* into custody."""

    @abstractmethod
    def pay(self, recipient: str) -> None:
        """Send exactly ``amount`` from custody to *recipient*."""


class NativePayout(PayoutChannel):
    def __init__(self, ledger: NativeLedger, custody: str, amount: int):
        super().__init__(custody, amount)
        self.ledger = ledger

    @property
    def asset(self) -> Optional[str]:
        return None

    def balance(self) -> int:
        return self.ledger.balance_of(self.custody)

    def collect(self, payer: str, value: int) -> None:
        if value != self.amount:
            raise WrongPaymentAmount(f"expected {self.amount}, got {value}")
        self.ledger.transfer(payer, self.custody, self.amount)

    def pay(self, recipient: str) -> None:
        try:
            self.ledger.transfer(self.custody, recipient, self.amount)
        except InsufficientBalance as e:
            raise TransferFailed(str(e)) from e


class TokenPayout(PayoutChannel):
    def __init__(self, token: FungibleToken, custody: str, amount: int):
        super().__init__(custody, amount)
        self.token = token

    @property
    def asset(self) -> Optional[str]:
        return normalize_address(self.token.address, "asset")

    def balance(self) -> int:
        return self.token.balance_of(self.custody)

    def collect(self, payer: str, value: int) -> None:
        if value != 0:
            raise WrongPaymentAmount(f"token deal received native value {value}")
        if not self.token.transfer_from(self.custody, payer, self.custody, self.amount):
            raise TransferFailed(f"token {self.asset} transfer_from returned false")

    def pay(self, recipient: str) -> None:
        if not self.token.transfer(self.custody, recipient, self.amount):
            raise TransferFailed(f"token {self.asset} transfer returned false")
        _LOG.debug("token transfer %s -> %s amount=%s", self.custody, recipient, self.amount)


def open_channel(
    asset: Optional[FungibleToken], amount: int, custody: str, ledger: Optional[NativeLedger]
) -> PayoutChannel:
    """Build the payout channel for *asset* (``None`` selects the native asset)."""
    if asset is None:
        if ledger is None:
            raise ValueError("native deals require a NativeLedger")
        return NativePayout(ledger, custody, amount)
    if not isinstance(asset, FungibleToken):
        raise TypeError(f"unsupported asset type: {type(asset)!r}")
    return TokenPayout(asset, custody, amount)
