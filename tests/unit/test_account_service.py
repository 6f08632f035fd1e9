"""Tests for AccountApplicationService: balance, deposit, withdraw, transfer, history."""

from decimal import Decimal

import pytest

from config.settings import settings
from src.tm_account.application.schemas import cursor_decode, cursor_encode
from src.tm_account.application.service import AccountApplicationService
from src.tm_clearing.domain.fee import FEE_RATES
from src.tm_common.errors import (
    InsufficientBalanceError,
    ValidationError,
    WalletNotFoundError,
)


@pytest.fixture
def service(wallet_repo, tx_repo, valuation) -> AccountApplicationService:
    return AccountApplicationService(wallet_repo=wallet_repo, tx_repo=tx_repo, valuation=valuation)


class TestBalance:
    async def test_portfolio_value_at_current_price(self, service, store, fake_db) -> None:
        store.add_wallet("alice", fiat="10", tokens="1000")
        balance = await service.get_balance(fake_db, "alice")
        assert balance.token_value == Decimal("3.5")
        assert balance.portfolio_value == Decimal("13.5")
        assert balance.price_degraded is False

    async def test_degraded_price_is_flagged(self, service, store, supply_repo, fake_db) -> None:
        store.add_wallet("alice", tokens="1000")
        supply_repo.fail_reads = True
        balance = await service.get_balance(fake_db, "alice")
        assert balance.price_degraded is True
        assert balance.token_value == Decimal("3.5")

    async def test_missing_wallet(self, service, fake_db) -> None:
        with pytest.raises(WalletNotFoundError):
            await service.get_balance(fake_db, "nobody")


class TestDeposit:
    async def test_credits_and_records(self, service, store, fake_db) -> None:
        store.add_wallet("alice")
        result = await service.deposit(fake_db, "alice", Decimal("100"))
        assert result.fiat_balance == Decimal("100")
        assert result.transaction.type == "DEPOSIT"
        assert result.transaction.gateway == "Wallet"
        assert fake_db.commits == 1

    async def test_below_smallest_unit(self, service, store, fake_db) -> None:
        store.add_wallet("alice")
        with pytest.raises(ValidationError):
            await service.deposit(fake_db, "alice", Decimal("0.000000001"))


class TestWithdraw:
    async def test_fee_goes_to_admin_wallet(self, service, store, fake_db) -> None:
        store.add_wallet("alice", fiat="100")

        result = await service.withdraw(fake_db, "alice", Decimal("50"))

        assert result.fiat_balance == Decimal("50")
        assert result.transaction.type == "WITHDRAW"
        assert result.transaction.fee_amount == Decimal("5")
        assert result.transaction.net_amount == Decimal("45")
        assert store.wallets[settings.ADMIN_WALLET_USER_ID].fiat_balance == Decimal("5")
        fee_tx = [t for t in store.transactions if t.type == "FEE"]
        assert len(fee_tx) == 1
        assert fee_tx[0].reference_id == result.transaction.id

    async def test_insufficient_funds_rolls_back(self, service, store, fake_db) -> None:
        store.add_wallet("alice", fiat="10")
        with pytest.raises(InsufficientBalanceError):
            await service.withdraw(fake_db, "alice", Decimal("50"))
        assert store.wallets["alice"].fiat_balance == Decimal("10")
        assert store.wallets[settings.ADMIN_WALLET_USER_ID].fiat_balance == Decimal("0")
        assert store.transactions == []
        assert fake_db.rollbacks == 1


class TestTransfer:
    async def test_moves_tokens_without_fee(self, service, store, fake_db) -> None:
        store.add_wallet("alice", fiat="7", tokens="100")
        store.add_wallet("bob", tokens="5")

        result = await service.transfer(fake_db, "alice", "bob", Decimal("40"), "rent")

        assert result.token_balance == Decimal("60")
        assert result.fiat_balance == Decimal("7")
        assert store.wallets["bob"].token_balance == Decimal("45")
        assert store.wallets[settings.ADMIN_WALLET_USER_ID].token_balance == Decimal("0")
        [tx] = store.transactions
        assert tx.type == "TRANSFER"
        assert tx.user_id == "alice"
        assert tx.reference_id == "bob"
        assert tx.token_amount == Decimal("40")
        assert tx.fee_amount == Decimal("0")
        assert tx.description == "rent"
        assert fake_db.commits == 1

    async def test_fee_is_paid_to_admin_in_tokens(
        self, service, store, fake_db, monkeypatch
    ) -> None:
        monkeypatch.setitem(FEE_RATES, "transfer", Decimal("0.05"))
        store.add_wallet("alice", tokens="100")
        store.add_wallet("bob")

        result = await service.transfer(fake_db, "alice", "bob", Decimal("40"))

        assert result.transaction.fee_amount == Decimal("2")
        assert store.wallets["alice"].token_balance == Decimal("60")
        assert store.wallets["bob"].token_balance == Decimal("38")
        assert store.wallets[settings.ADMIN_WALLET_USER_ID].token_balance == Decimal("2")
        assert [t.type for t in store.transactions] == ["TRANSFER", "FEE"]
        assert store.transactions[1].reference_id == store.transactions[0].id

    async def test_insufficient_tokens_rolls_back(self, service, store, fake_db) -> None:
        store.add_wallet("alice", tokens="10")
        store.add_wallet("bob")
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await service.transfer(fake_db, "alice", "bob", Decimal("10.5"))
        assert exc_info.value.code == 2001
        assert store.wallets["alice"].token_balance == Decimal("10")
        assert store.wallets["bob"].token_balance == Decimal("0")
        assert store.transactions == []
        assert fake_db.rollbacks == 1

    async def test_unknown_recipient_rolls_back(self, service, store, fake_db) -> None:
        store.add_wallet("alice", tokens="10")
        with pytest.raises(WalletNotFoundError):
            await service.transfer(fake_db, "alice", "ghost", Decimal("1"))
        assert store.wallets["alice"].token_balance == Decimal("10")
        assert store.transactions == []
        assert fake_db.rollbacks == 1

    async def test_cannot_send_to_self(self, service, store, fake_db) -> None:
        store.add_wallet("alice", tokens="10")
        with pytest.raises(ValidationError):
            await service.transfer(fake_db, "alice", "alice", Decimal("1"))
        assert store.transactions == []
        assert fake_db.commits == 0

    async def test_below_smallest_unit(self, service, store, fake_db) -> None:
        store.add_wallet("alice", tokens="10")
        store.add_wallet("bob")
        with pytest.raises(ValidationError):
            await service.transfer(fake_db, "alice", "bob", Decimal("0.000000001"))
        assert store.wallets["bob"].token_balance == Decimal("0")


class TestTransactionHistory:
    async def test_paginates_with_opaque_cursor(self, service, store, fake_db) -> None:
        store.add_wallet("alice")
        for amount in ("1", "2", "3"):
            await service.deposit(fake_db, "alice", Decimal(amount))

        first = await service.list_transactions(fake_db, "alice", None, 2, None)
        assert [i.amount for i in first.items] == [Decimal("3"), Decimal("2")]
        assert first.has_more is True
        assert first.next_cursor is not None

        second = await service.list_transactions(fake_db, "alice", first.next_cursor, 2, None)
        assert [i.amount for i in second.items] == [Decimal("1")]
        assert second.has_more is False

    async def test_filters_by_type(self, service, store, fake_db) -> None:
        store.add_wallet("alice")
        await service.deposit(fake_db, "alice", Decimal("100"))
        await service.withdraw(fake_db, "alice", Decimal("10"))
        page = await service.list_transactions(fake_db, "alice", None, 10, "withdraw")
        assert [i.type for i in page.items] == ["WITHDRAW"]


def test_cursor_round_trip_and_garbage() -> None:
    assert cursor_decode(cursor_encode("12345")) == "12345"
    assert cursor_decode("not-a-cursor!!") is None
    assert cursor_decode(None) is None
