from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class User(Document):
    chat_id: Indexed(str, unique=True)
    username: str | None = None
    avatar: str | None = None
    status: str = "active"
    referral_code: Indexed(str, unique=True)  # assigned once at creation
    referred_by: str | None = None  # inviter's code; only the bot path sets it, only on insert
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
