from beanie import Document, Indexed


class Wallet(Document):
    """One per chat_id; balance moves only together with a Transaction."""
    chat_id: Indexed(str, unique=True)
    balance: float = 0.0  # debits are conditional on balance >= amount
    pending_balance: float = 0.0
    currency: str = "INR"

    class Settings:
        name = "wallets"
