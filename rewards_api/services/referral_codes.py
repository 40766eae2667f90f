"""Referral code allocation against the unique users.referral_code index."""

import secrets
from typing import Any

from pymongo.errors import DuplicateKeyError

from rewards_api.core.config import get_settings
from rewards_api.core.exceptions import ConflictError
from rewards_api.core.logging import get_logger
from rewards_api.models.user import User

log = get_logger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Uniform 6-digit numeric code in [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


async def insert_user_with_code(chat_id: str, **fields: Any) -> User | None:
    """
    Insert a new User holding a freshly reserved referral code.
    The insert itself is the reservation: a code collision fails on the unique
    index and we draw again, up to REFERRAL_CODE_ATTEMPTS times.
    Returns None when a concurrent request already created this chat_id.
    """
    attempts = get_settings().referral_code_attempts
    for _ in range(attempts):
        code = generate_code()
        user = User(chat_id=chat_id, referral_code=code, **fields)
        try:
            await user.insert()
            return user
        except DuplicateKeyError:
            if await User.find_one(User.chat_id == chat_id):
                return None
            log.info("referral_code_collision", code=code)
    raise ConflictError("Could not allocate a unique referral code", details={"attempts": attempts})
