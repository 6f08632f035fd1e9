"""In-memory fakes for the repository protocols.

Every fake reads and writes one shared ``FakeStore``. ``FakeDb`` snapshots the
store when a transaction begins (or after a commit) and restores the snapshot
on rollback, so tests observe real all-or-nothing behaviour without PostgreSQL.
"""

import copy
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from src.tm_account.domain.models import Transaction, Wallet
from src.tm_clearing.domain.settlement import OrderSettlement
from src.tm_common.errors import (
    InsufficientBalanceError,
    InsufficientReserveError,
    InternalError,
    SupplyExhaustedError,
    SupplyNotInitializedError,
    WalletNotFoundError,
)
from src.tm_common.id_generator import generate_id
from src.tm_matching.engine.engine import MatchingEngine
from src.tm_order.domain.models import Order
from src.tm_supply.domain.models import SupplyMint, SupplyTransfer, TokenSupply
from src.tm_valuation.engine.valuation import ValuationEngine

ADMIN_WALLET = "ADMIN_WALLET"
BASE_VALUE = Decimal("0.0035")
_T0 = datetime(2026, 1, 1, tzinfo=UTC)


def db_error() -> OperationalError:
    return OperationalError("UPDATE ...", {}, Exception("connection reset"))


class FakeStore:
    def __init__(self) -> None:
        self.wallets: dict[str, Wallet] = {}
        self.transactions: list[Transaction] = []
        self.orders: dict[str, Order] = {}
        self.transfers: list[SupplyTransfer] = []
        self.mints: list[SupplyMint] = []
        self.supply: TokenSupply | None = TokenSupply(
            total_supply=Decimal("10000000"),
            remaining_supply=Decimal("10000000"),
            user_supply_remaining=Decimal("2000000"),
            admin_reserve=Decimal("8000000"),
        )
        self._clock = 0
        self.add_wallet(ADMIN_WALLET)

    # -- state helpers ----------------------------------------------------

    def add_wallet(self, user_id: str, fiat: str = "0", tokens: str = "0") -> Wallet:
        wallet = Wallet(user_id=user_id, fiat_balance=Decimal(fiat), token_balance=Decimal(tokens))
        self.wallets[user_id] = wallet
        return wallet

    def add_order(
        self,
        user_id: str,
        order_type: str,
        amount: str,
        limit_price: str | None,
        price_type: str = "LIMIT",
        status: str = "PENDING",
        order_id: str | None = None,
    ) -> Order:
        self._clock += 1
        order = Order(
            id=order_id or generate_id(),
            user_id=user_id,
            order_type=order_type,
            price_type=price_type,
            amount=Decimal(amount),
            token_amount=Decimal(amount),
            limit_price=Decimal(limit_price) if limit_price is not None else None,
            status=status,
            created_at=_T0 + timedelta(seconds=self._clock),
        )
        self.orders[order.id] = order
        return order

    def distribute(self, tokens: str) -> None:
        """Pretend ``tokens`` were already sold to users (moves the price)."""
        assert self.supply is not None
        qty = Decimal(tokens)
        self.supply = replace(
            self.supply,
            remaining_supply=self.supply.remaining_supply - qty,
            user_supply_remaining=self.supply.user_supply_remaining - qty,
        )

    def snapshot(self) -> Any:
        return copy.deepcopy(
            (
                self.wallets,
                self.transactions,
                self.orders,
                self.transfers,
                self.mints,
                self.supply,
            )
        )

    def restore(self, snap: Any) -> None:
        (
            self.wallets,
            self.transactions,
            self.orders,
            self.transfers,
            self.mints,
            self.supply,
        ) = copy.deepcopy(snap)


class _FakeTransaction:
    def __init__(self, db: "FakeDb") -> None:
        self._db = db

    async def __aenter__(self) -> "FakeDb":
        self._db._snap = self._db.store.snapshot()
        return self._db

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc_type is not None:
            await self._db.rollback()
        else:
            await self._db.commit()
        return False


class FakeDb:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self._snap = store.snapshot()
        self.commits = 0
        self.rollbacks = 0

    def begin(self) -> _FakeTransaction:
        return _FakeTransaction(self)

    async def commit(self) -> None:
        self._snap = self.store.snapshot()
        self.commits += 1

    async def rollback(self) -> None:
        self.store.restore(self._snap)
        self.rollbacks += 1

    async def __aenter__(self) -> "FakeDb":
        return self

    async def __aexit__(self, *exc: Any) -> bool:
        return False


class FakeSessionFactory:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.sessions: list[FakeDb] = []

    def __call__(self) -> FakeDb:
        db = FakeDb(self.store)
        self.sessions.append(db)
        return db


class FakeWalletRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def _get(self, user_id: str) -> Wallet:
        wallet = self.store.wallets.get(user_id)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        return wallet

    async def create_wallet(self, user_id: str, db: Any) -> Wallet:
        return self.store.add_wallet(user_id)

    async def get_wallet(self, user_id: str, db: Any, for_update: bool = False) -> Wallet | None:
        wallet = self.store.wallets.get(user_id)
        return replace(wallet) if wallet else None

    async def credit_fiat(self, user_id: str, amount: Decimal, db: Any) -> Wallet:
        wallet = self._get(user_id)
        wallet.fiat_balance += amount
        return replace(wallet)

    async def debit_fiat(self, user_id: str, amount: Decimal, db: Any) -> Wallet:
        wallet = self._get(user_id)
        if wallet.fiat_balance < amount:
            raise InsufficientBalanceError("fiat", amount, wallet.fiat_balance)
        wallet.fiat_balance -= amount
        return replace(wallet)

    async def credit_tokens(self, user_id: str, amount: Decimal, db: Any) -> Wallet:
        wallet = self._get(user_id)
        wallet.token_balance += amount
        return replace(wallet)

    async def debit_tokens(self, user_id: str, amount: Decimal, db: Any) -> Wallet:
        wallet = self._get(user_id)
        if wallet.token_balance < amount:
            raise InsufficientBalanceError("token", amount, wallet.token_balance)
        wallet.token_balance -= amount
        return replace(wallet)

    async def sum_token_balances(self, db: Any) -> Decimal:
        return sum((w.token_balance for w in self.store.wallets.values()), Decimal("0"))


class FakeTransactionRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    async def append(self, tx: Transaction, db: Any) -> Transaction:
        saved = replace(tx, id=tx.id or generate_id(), created_at=datetime.now(UTC))
        self.store.transactions.append(saved)
        return saved

    async def list_by_user(
        self, user_id: str, tx_type: str | None, limit: int, cursor_id: str | None, db: Any
    ) -> list[Transaction]:
        rows = [
            t for t in self.store.transactions
            if t.user_id == user_id
            and (tx_type is None or t.type == tx_type)
            and (cursor_id is None or t.id < cursor_id)
        ]
        return sorted(rows, key=lambda t: t.id, reverse=True)[:limit]

    async def sum_fees(self, db: Any) -> tuple[Decimal, int]:
        fees = [t.amount for t in self.store.transactions if t.type == "FEE"]
        return sum(fees, Decimal("0")), len(fees)


class FakeSupplyRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.fail_reads = False

    def _supply(self) -> TokenSupply:
        if self.fail_reads:
            raise db_error()
        if self.store.supply is None:
            raise SupplyNotInitializedError()
        return self.store.supply

    async def get_supply(self, db: Any, for_update: bool = False) -> TokenSupply:
        return replace(self._supply())

    async def deduct(self, tokens: Decimal, db: Any) -> TokenSupply:
        supply = self._supply()
        if supply.user_supply_remaining < tokens:
            raise SupplyExhaustedError(tokens, supply.user_supply_remaining)
        self.store.supply = replace(
            supply,
            remaining_supply=supply.remaining_supply - tokens,
            user_supply_remaining=supply.user_supply_remaining - tokens,
        )
        return replace(self.store.supply)

    async def restore(self, tokens: Decimal, db: Any) -> TokenSupply:
        supply = self._supply()
        if supply.remaining_supply + tokens > supply.total_supply:
            raise InternalError("restore exceeds total supply")
        self.store.supply = replace(
            supply,
            remaining_supply=supply.remaining_supply + tokens,
            user_supply_remaining=supply.user_supply_remaining + tokens,
        )
        return replace(self.store.supply)

    async def transfer_from_reserve(
        self, admin_id: str, amount: Decimal, reason: str | None, db: Any
    ) -> tuple[TokenSupply, SupplyTransfer]:
        supply = self._supply()
        if supply.admin_reserve < amount:
            raise InsufficientReserveError(amount, supply.admin_reserve)
        self.store.supply = replace(
            supply,
            admin_reserve=supply.admin_reserve - amount,
            user_supply_remaining=supply.user_supply_remaining + amount,
        )
        transfer = SupplyTransfer(
            id=generate_id(), admin_id=admin_id, amount=amount, reason=reason,
            created_at=datetime.now(UTC),
        )
        self.store.transfers.append(transfer)
        return replace(self.store.supply), transfer

    async def list_transfers(self, limit: int, db: Any) -> list[SupplyTransfer]:
        return list(reversed(self.store.transfers))[:limit]

    async def mint(
        self, admin_id: str, amount: Decimal, reason: str | None, db: Any
    ) -> tuple[TokenSupply, SupplyMint]:
        supply = self._supply()
        self.store.supply = replace(
            supply,
            total_supply=supply.total_supply + amount,
            remaining_supply=supply.remaining_supply + amount,
            admin_reserve=supply.admin_reserve + amount,
        )
        mint = SupplyMint(
            id=generate_id(), admin_id=admin_id, amount=amount, reason=reason,
            previous_total_supply=supply.total_supply,
            new_total_supply=self.store.supply.total_supply,
            created_at=datetime.now(UTC),
        )
        self.store.mints.append(mint)
        return replace(self.store.supply), mint

    async def list_mints(self, limit: int, db: Any) -> list[SupplyMint]:
        return list(reversed(self.store.mints))[:limit]


class FakeOrderRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        # Order ids whose next fill raises a driver-level error
        self.fail_fill_ids: set[str] = set()

    async def save(self, order: Order, db: Any) -> None:
        self.store.orders[order.id] = replace(order)

    async def get_by_id(self, order_id: str, db: Any, for_update: bool = False) -> Order | None:
        order = self.store.orders.get(order_id)
        if order is None:
            return None
        return replace(order)

    async def list_pending_limit(self, db: Any) -> list[Order]:
        pending = [
            replace(o) for o in self.store.orders.values()
            if o.status == "PENDING" and o.price_type == "LIMIT"
        ]
        return sorted(pending, key=lambda o: (o.created_at, o.id))

    async def mark_filled(
        self, order_id: str, executed_price: Decimal, executed_at: datetime, db: Any
    ) -> bool:
        if order_id in self.fail_fill_ids:
            raise db_error()
        order = self.store.orders.get(order_id)
        if order is None or order.status != "PENDING":
            return False
        order.status = "FILLED"
        order.executed_price = executed_price
        order.executed_at = executed_at
        return True

    async def mark_canceled(
        self, order_id: str, reason: str, canceled_at: datetime, db: Any
    ) -> bool:
        order = self.store.orders.get(order_id)
        if order is None or order.status != "PENDING":
            return False
        order.status = "CANCELED"
        order.cancel_reason = reason
        order.canceled_at = canceled_at
        return True

    async def list_by_user(
        self,
        user_id: str,
        statuses: list[str] | None,
        order_type: str | None,
        limit: int,
        cursor_id: str | None,
        db: Any,
    ) -> list[Order]:
        rows = [
            replace(o) for o in self.store.orders.values()
            if o.user_id == user_id
            and (statuses is None or o.status in statuses)
            and (order_type is None or o.order_type == order_type)
            and (cursor_id is None or o.id < cursor_id)
        ]
        return sorted(rows, key=lambda o: o.id, reverse=True)[:limit]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def session_factory(store: FakeStore) -> FakeSessionFactory:
    return FakeSessionFactory(store)


@pytest.fixture
def fake_db(store: FakeStore) -> FakeDb:
    return FakeDb(store)


@pytest.fixture
def wallet_repo(store: FakeStore) -> FakeWalletRepository:
    return FakeWalletRepository(store)


@pytest.fixture
def tx_repo(store: FakeStore) -> FakeTransactionRepository:
    return FakeTransactionRepository(store)


@pytest.fixture
def supply_repo(store: FakeStore) -> FakeSupplyRepository:
    return FakeSupplyRepository(store)


@pytest.fixture
def order_repo(store: FakeStore) -> FakeOrderRepository:
    return FakeOrderRepository(store)


@pytest.fixture
def valuation(supply_repo: FakeSupplyRepository) -> ValuationEngine:
    return ValuationEngine(supply_repo=supply_repo, base_value=BASE_VALUE)


@pytest.fixture
def settlement(
    wallet_repo: FakeWalletRepository,
    tx_repo: FakeTransactionRepository,
    supply_repo: FakeSupplyRepository,
) -> OrderSettlement:
    return OrderSettlement(wallet_repo, tx_repo, supply_repo, restore_on_sell=True)


@pytest.fixture
def engine(
    session_factory: FakeSessionFactory,
    order_repo: FakeOrderRepository,
    wallet_repo: FakeWalletRepository,
    valuation: ValuationEngine,
    settlement: OrderSettlement,
) -> MatchingEngine:
    return MatchingEngine(
        session_factory=session_factory,  # type: ignore[arg-type]
        order_repo=order_repo,
        wallet_repo=wallet_repo,
        valuation=valuation,
        settlement=settlement,
    )
