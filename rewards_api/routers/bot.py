"""Privileged bot channel: the only path that creates referral linkage."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from rewards_api.core.exceptions import AppError, InternalFailureError, require
from rewards_api.core.logging import get_logger
from rewards_api.core.money import format_amount
from rewards_api.services import referrals as referrals_service
from rewards_api.services import users as user_service
from rewards_api.services import withdrawals as withdrawals_service

log = get_logger(__name__)

router = APIRouter()


class BotReferRequest(BaseModel):
    chat_id: str | None = Field(None, alias="chatId")
    username: str | None = None
    avatar: str | None = None
    ref: str | None = None


class ActivateReferralRequest(BaseModel):
    chat_id: str | None = Field(None, alias="chatId")  # invitee


class SettleWithdrawalRequest(BaseModel):
    withdrawal_id: str
    status: str
    transaction_id: str | None = None
    failure_reason: str | None = None


@router.post("/refer")
async def bot_refer(body: BotReferRequest):
    """Create or update a user arriving from the bot; links the inviter for new users."""
    require(chatId=body.chat_id)
    try:
        user = await user_service.create_user_from_referral(
            body.chat_id,
            username=body.username,
            avatar=body.avatar,
            ref=body.ref,
        )
    except AppError:
        raise
    except Exception as e:
        log.exception("bot_refer_failed", chat_id=body.chat_id, ref=body.ref)
        raise InternalFailureError() from e
    return {
        "success": True,
        "referral_code": user.referral_code,
        "referred_by": user.referred_by or None,
    }


@router.post("/referral/activate")
async def bot_activate_referral(body: ActivateReferralRequest):
    """Mark the invitee's referral successful and pay the inviter's commission once."""
    require(chatId=body.chat_id)
    ref = await referrals_service.grant_referral_commission(body.chat_id.strip())
    if ref is None:
        return {"success": True, "granted": False}
    return {
        "success": True,
        "granted": True,
        "inviter": ref.chat_id,
        "total_earned": format_amount(ref.total_earned),
    }


@router.post("/withdraw/settle")
async def bot_settle_withdrawal(body: SettleWithdrawalRequest):
    """Settlement callback: pending -> completed | failed."""
    wd = await withdrawals_service.settle_withdrawal(
        body.withdrawal_id,
        body.status,
        transaction_id=body.transaction_id,
        failure_reason=body.failure_reason,
    )
    return {
        "success": True,
        "id": str(wd.id),
        "status": wd.status,
        "completed_at": wd.completed_at.isoformat() if wd.completed_at else None,
        "transaction_id": wd.transaction_id,
        "failure_reason": wd.failure_reason,
    }
