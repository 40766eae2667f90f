from fastapi import APIRouter, Depends, Query

from rewards_api.core.money import format_amount
from rewards_api.deps import get_chat_id
from rewards_api.services import referrals as referrals_service

router = APIRouter()


@router.get("")
async def referral_summary(chat_id: str = Depends(get_chat_id)):
    """Own code, deep link, referral counts and earnings."""
    return await referrals_service.get_referral_summary(chat_id)


@router.get("/users")
async def referral_users(
    chat_id: str = Depends(get_chat_id),
    limit: int = Query(20),
    offset: int = Query(0),
):
    page = await referrals_service.list_referred_users(chat_id, limit, offset)
    return {
        "referrals": [
            {
                "user_id": u.user_id,
                "username": u.username,
                "joined_at": u.joined_at.isoformat(),
                "status": "active" if u.is_active else "pending",
                "earned_amount": format_amount(u.earned_amount),
                "is_active": u.is_active,
            }
            for u in page.items
        ],
        "total": page.total,
    }
