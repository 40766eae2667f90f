"""Identity registry: chat_id-keyed users and their onboarding."""

from rewards_api.core.audit import log_event
from rewards_api.core.exceptions import ConflictError, require
from rewards_api.core.logging import get_logger
from rewards_api.models.user import User
from rewards_api.services import referral_codes
from rewards_api.services import referrals as referrals_service
from rewards_api.services import wallets as wallets_service

log = get_logger(__name__)

ONBOARD_ATTEMPTS = 3


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def get_user(chat_id: str) -> User | None:
    return await User.find_one(User.chat_id == chat_id)


async def _merge_profile(user: User, username: str | None, avatar: str | None) -> User:
    """Last write wins for display fields; empty values never overwrite."""
    updates = {}
    if username and username != user.username:
        updates[User.username] = username
    if avatar and avatar != user.avatar:
        updates[User.avatar] = avatar
    if updates:
        await user.set(updates)
    return user


async def _onboard(
    chat_id: str,
    username: str | None,
    avatar: str | None,
    referred_by: str | None,
) -> User | None:
    """
    Create user, provision wallet, link referral. If a step after the insert
    fails the user is deleted again so a retry starts clean.
    Returns None if another request created the user first.
    """
    user = await referral_codes.insert_user_with_code(
        chat_id,
        username=username,
        avatar=avatar,
        referred_by=referred_by,
    )
    if user is None:
        return None
    linked = None
    try:
        await wallets_service.get_or_create_wallet(chat_id)
        if referred_by:
            linked = await referrals_service.link_invitee(referred_by, user)
    except Exception:
        log.exception("onboarding_rolled_back", chat_id=chat_id)
        await user.delete()
        raise
    log.info("user_created", chat_id=chat_id, referral_code=user.referral_code, referred_by=referred_by)
    # audit writes stay outside the compensated steps: the user and its link are already final
    await log_event(chat_id, "user_created", "user", chat_id, {"referred_by": referred_by})
    if linked is not None:
        await log_event(linked.chat_id, "referral_linked", "referral", str(linked.id), {"invitee": chat_id})
    return user


async def _resolve(
    chat_id: str,
    username: str | None,
    avatar: str | None,
    referred_by: str | None,
) -> User:
    require(chatId=chat_id)
    chat_id = chat_id.strip()
    username, avatar = _clean(username), _clean(avatar)
    user = await get_user(chat_id)
    attempts = 0
    while user is None:
        # a concurrent winner may roll back its onboarding, leaving nothing to re-read
        if attempts >= ONBOARD_ATTEMPTS:
            raise ConflictError("Could not create user", details={"attempts": attempts})
        attempts += 1
        created = await _onboard(chat_id, username, avatar, referred_by)
        if created is not None:
            return created
        user = await get_user(chat_id)
    # existing user: referral_code and referred_by are never touched
    return await _merge_profile(user, username, avatar)


async def resolve_or_create_user(
    chat_id: str,
    username: str | None = None,
    avatar: str | None = None,
) -> User:
    """Client entry point. Never sets referred_by."""
    return await _resolve(chat_id, username, avatar, referred_by=None)


async def create_user_from_referral(
    chat_id: str,
    username: str | None = None,
    avatar: str | None = None,
    ref: str | None = None,
) -> User:
    """
    Bot entry point and the only path that sets referred_by, and only for a
    user created by this call. Unknown codes are stored as given but link nothing.
    """
    return await _resolve(chat_id, username, avatar, referred_by=_clean(ref))
