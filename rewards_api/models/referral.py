from datetime import datetime

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class ReferredUser(BaseModel):
    user_id: str  # invitee chat_id
    username: str = ""
    joined_at: datetime = Field(default_factory=datetime.utcnow)
    earned_amount: float = 0.0
    is_active: bool = False


class Referral(Document):
    """Inviter's referral record. referred_users is append-only."""
    chat_id: Indexed(str, unique=True)  # inviter
    referral_code: Indexed(str)
    referred_users: list[ReferredUser] = Field(default_factory=list)
    total_earned: float = 0.0
    pending_earned: float = 0.0

    class Settings:
        name = "referrals"
