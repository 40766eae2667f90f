from fastapi import APIRouter, Depends, Query

from rewards_api.deps import get_chat_id
from rewards_api.services import upi as upi_service

router = APIRouter()


@router.get("")
async def upi_upsert(
    chat_id: str = Depends(get_chat_id),
    vpa: str | None = Query(None),
    bank_name: str | None = Query(None),
):
    """Create or update the UPI link; only supplied fields change."""
    link = await upi_service.upsert_upi(chat_id, vpa=vpa, bank_name=bank_name)
    return {
        "vpa": link.vpa,
        "is_verified": link.is_verified,
        "linked_at": link.linked_at.isoformat() if link.linked_at else None,
        "bank_name": link.bank_name,
    }
