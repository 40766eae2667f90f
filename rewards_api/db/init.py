import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from rewards_api.core.config import get_settings
from rewards_api.models.audit_log import AuditLog
from rewards_api.models.referral import Referral
from rewards_api.models.transaction import Transaction
from rewards_api.models.upi_link import UpiLink
from rewards_api.models.user import User
from rewards_api.models.wallet import Wallet
from rewards_api.models.withdrawal import Withdrawal

DOCUMENT_MODELS = [
    User,
    Wallet,
    Transaction,
    UpiLink,
    Referral,
    Withdrawal,
    AuditLog,
]


def _use_tls(uri: str) -> bool:
    """True if URI uses TLS (Atlas or explicit tls=true). Avoids TLS for plain mongodb:// in CI."""
    return "mongodb+srv://" in uri or "tls=true" in uri.lower()


def create_client() -> AsyncIOMotorClient:
    settings = get_settings()
    # Atlas in Docker: tlsCAFile + tlsDisableOCSPEndpointCheck avoid TLSV1_ALERT_INTERNAL_ERROR
    kwargs = {}
    if _use_tls(settings.mongodb_uri):
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsDisableOCSPEndpointCheck"] = True
    return AsyncIOMotorClient(settings.mongodb_uri, **kwargs)


async def init_db(client=None) -> None:
    """Register documents and build indexes; unique indexes back every chat_id key."""
    settings = get_settings()
    if client is None:
        client = create_client()
    database = client[settings.mongodb_db_name]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
