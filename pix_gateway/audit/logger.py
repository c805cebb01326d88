"""
Immutable audit trail for transaction lifecycle events.

Every creation and every webhook application gets an append-only audit log
entry with:
  - Transaction kind and ID
  - Action (created, status_changed, event_replayed, event_ignored)
  - Details (provider, identifiers, old/new status)
  - Timestamp (UTC)

Alongside the audit rows, each transaction keeps its own webhook history in
``metadata["webhooks"]``; ``append_webhook_entry`` builds the next version of
that map without discarding earlier entries.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.models.transaction import AuditLog

logger = logging.getLogger("pix_gateway.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    transaction_kind: Optional[str] = None,
    transaction_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an immutable audit log entry.

    Args:
        session: Database session.
        action: What happened (e.g. "created", "status_changed", "event_ignored").
        transaction_kind: "charge" or "withdrawal".
        transaction_id: The platform id of the transaction.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    serialized = json.dumps(details, default=str) if details else None
    entry = AuditLog(
        transaction_kind=transaction_kind,
        transaction_id=transaction_id,
        action=action,
        details=serialized,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | %s=%s action=%s | %s",
        transaction_kind or "transaction",
        transaction_id or "-",
        action,
        serialized[:200] if serialized else "",
    )
    return entry


def append_webhook_entry(
    existing: Optional[dict[str, Any]],
    event: dict[str, Any],
    ignored: bool = False,
) -> dict[str, Any]:
    """
    Return a new metadata map with one more dated webhook entry.

    A fresh dict is returned (rather than mutating ``existing``) so the JSON
    column registers the change.
    """
    metadata = dict(existing or {})
    received_at = datetime.now(timezone.utc).isoformat()
    entry: dict[str, Any] = {"received_at": received_at, "event": event}
    if ignored:
        entry["ignored"] = True

    metadata["webhooks"] = [*metadata.get("webhooks", []), entry]
    metadata["last_webhook_at"] = received_at
    return metadata
