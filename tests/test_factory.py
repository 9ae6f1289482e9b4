"""Tests for EscrowFactory validation, address derivation and configuration."""

import pytest

from escrowkit.errors import InvalidAmount, InvalidBeneficiary, InvalidDeadline
from escrowkit.escrow import DealState, EscrowFactory, InMemoryToken, NativeLedger
from escrowkit.identity import ZERO_ADDRESS

ARBITRATOR = "0x3333333333333333333333333333333333333333"
ORACLE = "0x7777777777777777777777777777777777777777"
DEPOSITOR = "0x1111111111111111111111111111111111111111"
BENEFICIARY = "0x2222222222222222222222222222222222222222"
TOKEN_ADDRESS = "0x6666666666666666666666666666666666666666"
NOW = 1_700_000_000


@pytest.fixture
def factory():
    ledger = NativeLedger()
    ledger.mint(DEPOSITOR, 1_000)
    return EscrowFactory(arbitrator=ARBITRATOR, oracle_signer=ORACLE, ledger=ledger)


class TestCreateEscrow:
    def test_creates_bound_deal(self, factory):
        deal = factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 100, NOW + 60, now=NOW)
        assert deal.state == DealState.CREATED
        assert deal.depositor == DEPOSITOR
        assert deal.beneficiary == BENEFICIARY
        assert deal.arbitrator == ARBITRATOR
        assert deal.oracle_signer == ORACLE
        assert factory.get_deal(deal.address) is deal

    def test_emits_creation_event(self, factory):
        deal = factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 100, NOW + 60, now=NOW)
        ev = factory.events.last()
        assert ev.name == "EscrowCreated"
        assert ev.args == {
            "escrowAddress": deal.address,
            "depositor": DEPOSITOR,
            "beneficiary": BENEFICIARY,
            "asset": None,
            "amount": 100,
            "deadline": NOW + 60,
        }

    def test_token_asset(self, factory):
        token = InMemoryToken(TOKEN_ADDRESS)
        deal = factory.create_escrow(DEPOSITOR, BENEFICIARY, token, 5, NOW + 60, now=NOW)
        assert deal.asset == TOKEN_ADDRESS
        assert factory.events.last().args["asset"] == TOKEN_ADDRESS

    def test_addresses_are_unique_and_deterministic(self, factory):
        a = factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 1, NOW + 60, now=NOW)
        b = factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 1, NOW + 60, now=NOW)
        assert a.address != b.address
        assert len(factory.deals) == 2

        other = EscrowFactory(arbitrator=ARBITRATOR, oracle_signer=ORACLE)
        assert other.create_escrow(DEPOSITOR, BENEFICIARY, None, 1, NOW + 60, now=NOW).address == a.address

    def test_deals_share_factory_ledger(self, factory):
        deal = factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 100, NOW + 60, now=NOW)
        deal.fund(DEPOSITOR, value=100)
        assert factory.ledger.balance_of(deal.address) == 100


class TestValidation:
    @pytest.mark.parametrize("beneficiary", [ZERO_ADDRESS, DEPOSITOR, "0x1234", "", None])
    def test_bad_beneficiary(self, factory, beneficiary):
        with pytest.raises(InvalidBeneficiary):
            factory.create_escrow(DEPOSITOR, beneficiary, None, 1, NOW + 60, now=NOW)

    @pytest.mark.parametrize("amount", [0, -5, True, 1.5])
    def test_bad_amount(self, factory, amount):
        with pytest.raises(InvalidAmount):
            factory.create_escrow(DEPOSITOR, BENEFICIARY, None, amount, NOW + 60, now=NOW)

    @pytest.mark.parametrize("deadline", [NOW, NOW - 1, 0])
    def test_deadline_must_be_future(self, factory, deadline):
        with pytest.raises(InvalidDeadline):
            factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 1, deadline, now=NOW)

    def test_failed_validation_creates_nothing(self, factory):
        with pytest.raises(InvalidAmount):
            factory.create_escrow(DEPOSITOR, BENEFICIARY, None, 0, NOW + 60, now=NOW)
        assert factory.deals == []
        assert len(factory.events) == 0


class TestConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ESCROW_ARBITRATOR", ARBITRATOR)
        monkeypatch.setenv("ESCROW_ORACLE_SIGNER", ORACLE)
        factory = EscrowFactory.from_env()
        assert factory.arbitrator == ARBITRATOR
        assert factory.oracle_signer == ORACLE

    def test_constructor_args_win(self, monkeypatch):
        monkeypatch.setenv("ESCROW_ARBITRATOR", ORACLE)
        monkeypatch.setenv("ESCROW_ORACLE_SIGNER", ORACLE)
        assert EscrowFactory(arbitrator=ARBITRATOR).arbitrator == ARBITRATOR

    def test_missing_env(self, monkeypatch):
        monkeypatch.delenv("ESCROW_ARBITRATOR", raising=False)
        with pytest.raises(KeyError):
            EscrowFactory(oracle_signer=ORACLE)
