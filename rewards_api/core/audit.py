"""Audit log for balance, referral and payout events."""

from typing import Any

from rewards_api.models.audit_log import AuditLog


async def log_event(
    chat_id: str | None,
    event_type: str,
    entity_type: str,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Append to audit_logs collection."""
    await AuditLog(
        chat_id=chat_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata or {},
    ).insert()
