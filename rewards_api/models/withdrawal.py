from datetime import datetime
from typing import Literal

from beanie import Document
from pydantic import Field


class Withdrawal(Document):
    chat_id: str
    amount: float
    vpa: str
    fee: float
    net_amount: float  # amount - fee; not floored
    status: Literal["pending", "completed", "failed"] = "pending"
    initiated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    transaction_id: str | None = None
    failure_reason: str | None = None

    class Settings:
        name = "withdrawals"
        indexes = [
            [("chat_id", 1), ("initiated_at", -1)],
            [("status", 1)],
        ]
