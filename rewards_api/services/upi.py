"""UPI payout address linking (merge-update per chat_id)."""

from datetime import datetime

from pymongo.errors import DuplicateKeyError

from rewards_api.core.audit import log_event
from rewards_api.core.exceptions import require
from rewards_api.core.logging import get_logger
from rewards_api.models.upi_link import UpiLink

log = get_logger(__name__)


async def get_upi(chat_id: str) -> UpiLink | None:
    return await UpiLink.find_one(UpiLink.chat_id == chat_id)


async def upsert_upi(chat_id: str, vpa: str | None = None, bank_name: str | None = None) -> UpiLink:
    """
    Create or merge-update the chat's UPI link.
    Only supplied fields overwrite. Supplying a vpa always re-verifies and
    refreshes linked_at, even when it equals the stored one.
    """
    require(chatId=chat_id)
    vpa = vpa.strip() if vpa and vpa.strip() else None
    bank_name = bank_name.strip() if bank_name and bank_name.strip() else None

    link = await get_upi(chat_id)
    if link is None:
        link = UpiLink(
            chat_id=chat_id,
            vpa=vpa,
            bank_name=bank_name,
            is_verified=bool(vpa),
            linked_at=datetime.utcnow() if vpa else None,
        )
        try:
            await link.insert()
        except DuplicateKeyError:
            link = await get_upi(chat_id)
            if link is None:
                raise
        else:
            log.info("upi_linked", chat_id=chat_id, verified=link.is_verified)
            await log_event(chat_id, "upi_linked", "upi", chat_id, {"vpa": vpa})
            return link

    updates = {}
    if vpa:
        updates[UpiLink.vpa] = vpa
        updates[UpiLink.is_verified] = True
        updates[UpiLink.linked_at] = datetime.utcnow()
    if bank_name:
        updates[UpiLink.bank_name] = bank_name
    if updates:
        await link.set(updates)
        if vpa:
            log.info("upi_relinked", chat_id=chat_id)
            await log_event(chat_id, "upi_relinked", "upi", chat_id, {"vpa": vpa})
    return link
