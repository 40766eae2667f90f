from fastapi import APIRouter, Depends, Query

from rewards_api.deps import get_chat_id
from rewards_api.services import users as user_service

router = APIRouter()


@router.get("/info")
async def user_info(
    chat_id: str = Depends(get_chat_id),
    username: str | None = Query(None),
    avatar: str | None = Query(None),
):
    """Resolve or create the user. Never sets referral linkage."""
    user = await user_service.resolve_or_create_user(chat_id, username, avatar)
    return {
        "user_id": user.chat_id,
        "username": user.username,
        "avatar": user.avatar,
        "created_at": user.created_at.isoformat(),
        "status": user.status,
        "referral_code": user.referral_code,
        "referred_by": user.referred_by or None,
    }
