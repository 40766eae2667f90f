from datetime import datetime
from typing import Any, Literal

from beanie import Document
from pydantic import Field


class Transaction(Document):
    chat_id: str
    type: Literal["credit", "debit"]
    amount: float
    description: str = ""
    status: Literal["success", "pending", "failed"] = "success"
    balance_after: float | None = None
    idempotency_key: str | None = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    class Settings:
        name = "transactions"
        indexes = [
            [("chat_id", 1), ("timestamp", -1)],
            [("chat_id", 1), ("idempotency_key", 1)],
        ]
