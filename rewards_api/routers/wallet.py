from fastapi import APIRouter, Depends, Query

from rewards_api.core.money import format_amount
from rewards_api.deps import get_chat_id
from rewards_api.services import wallets as wallets_service

router = APIRouter()


@router.get("/balance")
async def wallet_balance(chat_id: str = Depends(get_chat_id)):
    wallet = await wallets_service.get_or_create_wallet(chat_id)
    return {
        "balance": format_amount(wallet.balance),
        "available_balance": format_amount(wallet.balance),
        "pending_balance": format_amount(wallet.pending_balance),
        "currency": wallet.currency,
    }


@router.get("/transactions")
async def wallet_transactions(
    chat_id: str = Depends(get_chat_id),
    limit: int = Query(20),
    offset: int = Query(0),
):
    """Transaction history, newest first."""
    page = await wallets_service.list_transactions(chat_id, limit, offset)
    return {
        "transactions": [
            {
                "id": str(t.id),
                "type": t.type,
                "amount": format_amount(t.amount),
                "description": t.description,
                "status": t.status,
                "timestamp": t.timestamp.isoformat(),
                "metadata": t.metadata,
            }
            for t in page.items
        ],
        "total": page.total,
    }
