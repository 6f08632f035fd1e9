"""Fee revenue collection: credit the admin wallet and record a FEE transaction."""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tm_account.domain.models import Transaction
from src.tm_account.domain.repository import (
    TransactionRepositoryProtocol,
    WalletRepositoryProtocol,
)
from src.tm_account.infrastructure.persistence import TransactionRepository, WalletRepository
from src.tm_common.decimals import ZERO
from src.tm_common.enums import SettlementGateway, TransactionStatus, TransactionType
from src.tm_common.id_generator import generate_id

logger = logging.getLogger(__name__)


async def credit_fee_to_admin(
    amount: Decimal,
    db: AsyncSession,
    reference_id: str | None = None,
    description: str | None = None,
    wallet_repo: WalletRepositoryProtocol | None = None,
    tx_repo: TransactionRepositoryProtocol | None = None,
    asset: str = "fiat",
) -> None:
    """Add ``amount`` to the admin wallet inside the caller's transaction.

    ``asset`` is "fiat" for order and withdrawal fees, "token" for fees charged
    on token transfers; a token fee is recorded in token_amount with zero fiat.
    No deduplication: call at most once per settlement. Zero amounts are a no-op.
    """
    if amount <= ZERO:
        return
    wallets = wallet_repo or WalletRepository()
    ledger = tx_repo or TransactionRepository()
    admin_id = settings.ADMIN_WALLET_USER_ID

    if asset == "token":
        await wallets.credit_tokens(admin_id, amount, db)
        fiat, tokens = ZERO, amount
    else:
        await wallets.credit_fiat(admin_id, amount, db)
        fiat, tokens = amount, ZERO
    await ledger.append(
        Transaction(
            id=generate_id(),
            user_id=admin_id,
            type=TransactionType.FEE.value,
            amount=fiat,
            fee_amount=ZERO,
            net_amount=fiat,
            token_amount=tokens,
            price=None,
            status=TransactionStatus.COMPLETED.value,
            gateway=SettlementGateway.FEE_COLLECTION.value,
            reference_id=reference_id,
            description=description or "Fee revenue",
        ),
        db,
    )
    logger.info("Credited %s fee %s to admin wallet (ref=%s)", asset, amount, reference_id)
