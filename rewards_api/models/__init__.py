from rewards_api.models.user import User
from rewards_api.models.wallet import Wallet
from rewards_api.models.transaction import Transaction
from rewards_api.models.upi_link import UpiLink
from rewards_api.models.referral import Referral, ReferredUser
from rewards_api.models.withdrawal import Withdrawal
from rewards_api.models.audit_log import AuditLog

__all__ = [
    "User",
    "Wallet",
    "Transaction",
    "UpiLink",
    "Referral",
    "ReferredUser",
    "Withdrawal",
    "AuditLog",
]
