"""Referral graph: inviter records, invitee linkage, commission accrual."""

from typing import Any

from beanie import UpdateResponse
from beanie.operators import Push
from pymongo.errors import DuplicateKeyError

from rewards_api.core.audit import log_event
from rewards_api.core.config import get_settings
from rewards_api.core.exceptions import NotFoundError, require
from rewards_api.core.logging import get_logger
from rewards_api.core.money import format_amount, round_amount
from rewards_api.core.pagination import Page, paginate
from rewards_api.models.referral import Referral, ReferredUser
from rewards_api.models.user import User
from rewards_api.services import wallets as wallets_service

log = get_logger(__name__)


def referral_link(code: str) -> str:
    return f"{get_settings().referral_link_base}{code}"


async def get_or_create_referral(inviter: User) -> Referral:
    """At most one Referral per inviter; a lost creation race re-reads the winner."""
    ref = await Referral.find_one(Referral.chat_id == inviter.chat_id)
    if ref:
        return ref
    ref = Referral(chat_id=inviter.chat_id, referral_code=inviter.referral_code)
    try:
        await ref.insert()
    except DuplicateKeyError:
        winner = await Referral.find_one(Referral.chat_id == inviter.chat_id)
        if winner is None:
            raise
        return winner
    return ref


async def link_invitee(code: str, invitee: User) -> Referral | None:
    """
    Append invitee under the inviter owning `code`.
    Unknown codes and self-referrals are ignored. The append is a single $push
    that only matches while the invitee is absent, so concurrent links to the
    same inviter never lose entries and never duplicate one.
    Returns the updated record, or None when nothing was appended.
    """
    inviter = await User.find_one(User.referral_code == code)
    if inviter is None or inviter.chat_id == invitee.chat_id:
        log.info("referral_code_ignored", ref=code, chat_id=invitee.chat_id)
        return None
    await get_or_create_referral(inviter)
    entry = ReferredUser(user_id=invitee.chat_id, username=invitee.username or "")
    updated = await Referral.find_one(
        Referral.chat_id == inviter.chat_id,
        {"referred_users.user_id": {"$ne": invitee.chat_id}},
    ).update(
        Push({Referral.referred_users: entry.model_dump()}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is not None:
        log.info("referral_linked", inviter=inviter.chat_id, invitee=invitee.chat_id, ref=code)
    return updated


async def get_referral_summary(chat_id: str) -> dict[str, Any]:
    require(chatId=chat_id)
    user = await User.find_one(User.chat_id == chat_id)
    if not user:
        raise NotFoundError("User not found")
    ref = await Referral.find_one(Referral.chat_id == chat_id)
    referred = ref.referred_users if ref else []
    return {
        "code": user.referral_code,
        "link": referral_link(user.referral_code),
        "total_referrals": len(referred),
        "successful_referrals": sum(1 for r in referred if r.is_active),
        "total_earned": format_amount(ref.total_earned if ref else 0),
        "pending_earned": format_amount(ref.pending_earned if ref else 0),
        "commission_per_referral": format_amount(get_settings().referral_commission),
    }


async def list_referred_users(chat_id: str, limit: int = 20, offset: int = 0) -> Page[ReferredUser]:
    """Slice of the inviter's list in join order; out-of-range pages are empty."""
    require(chatId=chat_id)
    limit, offset = paginate(limit, offset)
    ref = await Referral.find_one(Referral.chat_id == chat_id)
    referred = ref.referred_users if ref else []
    return Page[ReferredUser](
        items=referred[offset:offset + limit],
        limit=limit,
        offset=offset,
        total=len(referred),
    )


async def grant_referral_commission(invitee_chat_id: str) -> Referral | None:
    """
    Activate the invitee's entry and credit the inviter the configured commission.
    Runs at most once per invitee: activation is conditional on is_active being
    false, and the wallet credit carries idempotency key referral_reward_<invitee>.
    Returns None if the entry was already active.
    """
    require(chatId=invitee_chat_id)
    ref = await Referral.find_one({"referred_users.user_id": invitee_chat_id})
    if ref is None:
        raise NotFoundError("Referral entry not found")
    # referred_users is append-only, so the index of an entry is stable
    idx = next(i for i, r in enumerate(ref.referred_users) if r.user_id == invitee_chat_id)
    commission = round_amount(get_settings().referral_commission)
    entry_path = f"referred_users.{idx}"

    activated = await Referral.find_one(
        {"_id": ref.id, f"{entry_path}.user_id": invitee_chat_id, f"{entry_path}.is_active": False}
    ).update(
        {
            "$set": {f"{entry_path}.is_active": True},
            "$inc": {f"{entry_path}.earned_amount": commission, "total_earned": commission},
        },
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if activated is None:
        return None

    try:
        await wallets_service.apply_transaction(
            ref.chat_id,
            "credit",
            commission,
            description="Referral commission",
            metadata={"invitee": invitee_chat_id},
            idempotency_key=f"referral_reward_{invitee_chat_id}",
        )
    except Exception:
        log.exception("referral_commission_reverted", inviter=ref.chat_id, invitee=invitee_chat_id)
        await Referral.find_one({"_id": ref.id}).update(
            {
                "$set": {f"{entry_path}.is_active": False},
                "$inc": {f"{entry_path}.earned_amount": -commission, "total_earned": -commission},
            }
        )
        raise
    log.info("referral_commission_granted", inviter=ref.chat_id, invitee=invitee_chat_id, amount=commission)
    await log_event(ref.chat_id, "referral_commission_granted", "referral", str(ref.id), {"invitee": invitee_chat_id, "amount": commission})
    return activated
