"""Shared FastAPI dependencies."""

from fastapi import Query

from rewards_api.core.exceptions import require


async def get_chat_id(chat_id: str | None = Query(None, alias="chatId")) -> str:
    """Dependency: chatId query parameter, 400 MISSING_PARAMETER when absent."""
    require(chatId=chat_id)
    return chat_id.strip()
