from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from rewards_api.core.config import get_settings
from rewards_api.core.money import format_amount
from rewards_api.deps import get_chat_id
from rewards_api.services import withdrawals as withdrawals_service

router = APIRouter()


class InitiateWithdrawalRequest(BaseModel):
    chat_id: str | None = Field(None, alias="chatId")
    amount: float | None = None
    vpa: str | None = None


@router.post("/initiate")
async def withdraw_initiate(body: InitiateWithdrawalRequest):
    wd = await withdrawals_service.initiate_withdrawal(body.chat_id, body.amount, body.vpa)
    return {
        "withdrawal_id": str(wd.id),
        "amount": format_amount(wd.amount),
        "fee": format_amount(wd.fee),
        "net_amount": format_amount(wd.net_amount),
        "estimated_time": get_settings().withdrawal_eta,
        "status": wd.status,
    }


@router.get("/history")
async def withdraw_history(
    chat_id: str = Depends(get_chat_id),
    limit: int = Query(10),
    offset: int = Query(0),
):
    page = await withdrawals_service.list_withdrawals(chat_id, limit, offset)
    return {
        "withdrawals": [
            {
                "id": str(w.id),
                "amount": format_amount(w.amount),
                "status": w.status,
                "vpa": w.vpa,
                "initiated_at": w.initiated_at.isoformat(),
                "completed_at": w.completed_at.isoformat() if w.completed_at else None,
                "transaction_id": w.transaction_id,
                "failure_reason": w.failure_reason,
            }
            for w in page.items
        ],
        "total": page.total,
    }
