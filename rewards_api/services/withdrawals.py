"""Withdrawal requests: pending at creation, settled externally."""

from datetime import datetime

from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import Set
from bson.errors import InvalidId

from rewards_api.core.audit import log_event
from rewards_api.core.config import get_settings
from rewards_api.core.exceptions import BadRequestError, ConflictError, NotFoundError, require
from rewards_api.core.logging import get_logger
from rewards_api.core.money import positive_amount, round_amount
from rewards_api.core.pagination import Page, paginate
from rewards_api.models.withdrawal import Withdrawal

log = get_logger(__name__)

TERMINAL_STATUSES = ("completed", "failed")


async def initiate_withdrawal(chat_id: str, amount: float | None, vpa: str | None) -> Withdrawal:
    """
    Record a pending withdrawal. net_amount = amount - fee with no floor.
    No wallet debit or Transaction happens here; settlement reconciles that.
    """
    require(chatId=chat_id, amount=amount, vpa=vpa)
    chat_id = chat_id.strip()
    amount = positive_amount(amount)
    fee = round_amount(get_settings().withdrawal_fee)
    wd = Withdrawal(
        chat_id=chat_id,
        amount=amount,
        vpa=vpa.strip(),
        fee=fee,
        net_amount=round_amount(amount - fee),
        status="pending",
    )
    await wd.insert()
    log.info("withdrawal_initiated", chat_id=chat_id, withdrawal_id=str(wd.id), amount=amount, net_amount=wd.net_amount)
    await log_event(chat_id, "withdrawal_initiated", "withdrawal", str(wd.id), {"amount": amount, "vpa": wd.vpa})
    return wd


async def list_withdrawals(chat_id: str, limit: int = 10, offset: int = 0) -> Page[Withdrawal]:
    require(chatId=chat_id)
    limit, offset = paginate(limit, offset)
    items = (
        await Withdrawal.find(Withdrawal.chat_id == chat_id)
        .sort(-Withdrawal.initiated_at)
        .skip(offset)
        .limit(limit)
        .to_list()
    )
    total = await Withdrawal.find(Withdrawal.chat_id == chat_id).count()
    return Page[Withdrawal](items=items, limit=limit, offset=offset, total=total)


async def settle_withdrawal(
    withdrawal_id: str,
    status: str,
    transaction_id: str | None = None,
    failure_reason: str | None = None,
) -> Withdrawal:
    """Move a pending withdrawal to completed or failed. Terminal states never change."""
    require(withdrawal_id=withdrawal_id, status=status)
    if status not in TERMINAL_STATUSES:
        raise BadRequestError(f"Invalid settlement status: {status}")
    try:
        oid = PydanticObjectId(withdrawal_id)
    except (InvalidId, TypeError) as e:
        raise BadRequestError("Invalid withdrawal id") from e

    updated = await Withdrawal.find_one(
        Withdrawal.id == oid,
        Withdrawal.status == "pending",
    ).update(
        Set({
            Withdrawal.status: status,
            Withdrawal.completed_at: datetime.utcnow(),
            Withdrawal.transaction_id: transaction_id,
            Withdrawal.failure_reason: failure_reason if status == "failed" else None,
        }),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is None:
        existing = await Withdrawal.get(oid)
        if existing is None:
            raise NotFoundError("Withdrawal not found")
        raise ConflictError("Withdrawal already settled", details={"status": existing.status})
    log.info("withdrawal_settled", chat_id=updated.chat_id, withdrawal_id=withdrawal_id, status=status)
    await log_event(updated.chat_id, "withdrawal_settled", "withdrawal", withdrawal_id, {"status": status})
    return updated
