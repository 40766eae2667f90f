"""Wallets and the append-only transaction history."""

from typing import Any

from beanie import UpdateResponse
from beanie.operators import Inc
from pymongo.errors import DuplicateKeyError

from rewards_api.core.config import get_settings
from rewards_api.core.exceptions import BadRequestError, require
from rewards_api.core.logging import get_logger
from rewards_api.core.money import positive_amount, round_amount
from rewards_api.core.pagination import Page, paginate
from rewards_api.models.transaction import Transaction
from rewards_api.models.wallet import Wallet

log = get_logger(__name__)

TRANSACTION_TYPES = ("credit", "debit")
TRANSACTION_STATUSES = ("success", "pending", "failed")


async def get_or_create_wallet(chat_id: str) -> Wallet:
    """Return the wallet for chat_id, creating a zero-balance one on first access.

    Concurrent first accesses race on the unique chat_id index; the loser
    re-reads the winner's wallet instead of failing.
    """
    require(chatId=chat_id)
    wallet = await Wallet.find_one(Wallet.chat_id == chat_id)
    if wallet:
        return wallet
    wallet = Wallet(chat_id=chat_id, currency=get_settings().default_currency)
    try:
        await wallet.insert()
    except DuplicateKeyError:
        winner = await Wallet.find_one(Wallet.chat_id == chat_id)
        if winner is None:
            raise
        return winner
    log.info("wallet_created", chat_id=chat_id)
    return wallet


async def list_transactions(chat_id: str, limit: int = 20, offset: int = 0) -> Page[Transaction]:
    """Newest first."""
    require(chatId=chat_id)
    limit, offset = paginate(limit, offset)
    items = (
        await Transaction.find(Transaction.chat_id == chat_id)
        .sort(-Transaction.timestamp)
        .skip(offset)
        .limit(limit)
        .to_list()
    )
    total = await Transaction.find(Transaction.chat_id == chat_id).count()
    return Page[Transaction](items=items, limit=limit, offset=offset, total=total)


async def record_transaction(
    chat_id: str,
    type: str,
    amount: float,
    description: str = "",
    status: str = "success",
    metadata: dict[str, Any] | None = None,
    balance_after: float | None = None,
    idempotency_key: str | None = None,
) -> Transaction:
    """Append an immutable history record. Does not touch the wallet."""
    require(chatId=chat_id)
    if type not in TRANSACTION_TYPES:
        raise BadRequestError(f"Invalid transaction type: {type}")
    if status not in TRANSACTION_STATUSES:
        raise BadRequestError(f"Invalid transaction status: {status}")
    amount = positive_amount(amount)
    txn = Transaction(
        chat_id=chat_id,
        type=type,
        amount=amount,
        description=description,
        status=status,
        metadata=metadata or {},
        balance_after=balance_after,
        idempotency_key=idempotency_key,
    )
    await txn.insert()
    return txn


async def apply_transaction(
    chat_id: str,
    type: str,
    amount: float,
    description: str = "",
    metadata: dict[str, Any] | None = None,
    idempotency_key: str | None = None,
) -> Transaction:
    """
    Move money on the wallet and log it.
    The balance update is a single conditional $inc: debits only match while
    balance >= amount, so the balance never goes negative.
    Idempotency: a repeated idempotency_key returns the first Transaction and moves nothing.
    """
    if type not in TRANSACTION_TYPES:
        raise BadRequestError(f"Invalid transaction type: {type}")
    amount = positive_amount(amount)
    if idempotency_key:
        existing = await Transaction.find_one(
            Transaction.chat_id == chat_id,
            Transaction.idempotency_key == idempotency_key,
        )
        if existing:
            return existing

    await get_or_create_wallet(chat_id)
    if type == "debit":
        query = Wallet.find_one(Wallet.chat_id == chat_id, Wallet.balance >= amount)
        delta = -amount
    else:
        query = Wallet.find_one(Wallet.chat_id == chat_id)
        delta = amount
    wallet = await query.update(Inc({Wallet.balance: delta}), response_type=UpdateResponse.NEW_DOCUMENT)
    if wallet is None:
        raise BadRequestError("Insufficient balance", details={"amount": amount})

    txn = await record_transaction(
        chat_id,
        type,
        amount,
        description=description,
        status="success",
        metadata=metadata,
        balance_after=round_amount(wallet.balance),
        idempotency_key=idempotency_key,
    )
    log.info("wallet_transaction", chat_id=chat_id, type=type, amount=amount, balance_after=txn.balance_after)
    return txn
