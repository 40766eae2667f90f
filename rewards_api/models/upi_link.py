from datetime import datetime

from beanie import Document, Indexed


class UpiLink(Document):
    chat_id: Indexed(str, unique=True)
    vpa: str | None = None
    bank_name: str | None = None
    is_verified: bool = False  # true once a vpa has been supplied
    linked_at: datetime | None = None

    class Settings:
        name = "upi_links"
