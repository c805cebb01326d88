"""
Transaction state engine: applies normalized webhook events to stored records.

For each event:

  1. Locate the transaction by ``external_id``, then by the alternate id
     (pix_id / withdraw_id) the event carries. No match is not an error: the
     engine returns None and the job runner completes without retrying.
  2. Take the per-transaction write lock and re-read the row (``FOR UPDATE``
     where the database supports it), so concurrent appliers for the same
     transaction run one at a time while different transactions proceed in
     parallel.
  3. Check the transition. Statuses only move forward: PENDING -> PROCESSING
     -> terminal. A terminal status is never replaced by a different one
     unless ``allow_terminal_regression`` is set.
  4. Update status and the kind-specific fields the event supplies, append a
     dated entry to the metadata history, write an audit row and commit.

Re-applying the same event is harmless: status and fields end up identical,
only the metadata history grows.
"""

import asyncio
import logging
import weakref
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.audit.logger import append_webhook_entry, log_event
from pix_gateway.config import settings
from pix_gateway.errors import WebhookProcessingFailed
from pix_gateway.models.enums import TransactionKind, is_terminal, status_rank
from pix_gateway.models.transaction import TRANSACTION_MODELS, Charge, Withdrawal
from pix_gateway.webhooks.base import NormalizedEvent

logger = logging.getLogger("pix_gateway.state")

Transaction = Union[Charge, Withdrawal]

_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def transaction_lock(kind: TransactionKind, transaction_id: str) -> asyncio.Lock:
    """The single-writer lock for one transaction."""
    key = f"{kind.value}:{transaction_id}"
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


def is_allowed_transition(current: str, new: str, allow_terminal_regression: bool = False) -> bool:
    """Whether an event may move a transaction from ``current`` to ``new``."""
    if new == current:
        return True
    if allow_terminal_regression:
        return True
    if is_terminal(current):
        return False
    return status_rank(new) >= status_rank(current)


async def find_transaction(session: AsyncSession, event: NormalizedEvent) -> Optional[Transaction]:
    """Look the transaction up by external id, then by the event's alternate id."""
    model = TRANSACTION_MODELS[event.kind]
    for identifier in event.identifiers:
        result = await session.execute(
            select(model).where(model.external_id == identifier).limit(1)
        )
        transaction = result.scalars().first()
        if transaction is not None:
            return transaction
    return None


def _apply_fields(transaction: Transaction, event: NormalizedEvent) -> None:
    if event.amount is not None:
        transaction.amount = event.amount

    if isinstance(transaction, Charge):
        if event.payer_name is not None:
            transaction.payer_name = event.payer_name
        if event.payer_document is not None:
            transaction.payer_cpf = event.payer_document
        if event.payment_date is not None:
            transaction.payment_date = event.payment_date
    else:
        if event.bank_account is not None:
            transaction.bank_account = event.bank_account
        if event.requested_at is not None:
            transaction.requested_at = event.requested_at
        if event.completed_at is not None:
            transaction.completed_at = event.completed_at


async def apply_event(
    session: AsyncSession,
    event: NormalizedEvent,
    provider_name: str = "-",
    allow_terminal_regression: Optional[bool] = None,
) -> Optional[Transaction]:
    """
    Apply a normalized event to the matching stored transaction.

    Returns:
        The updated transaction, or None when the event identifies no
        known transaction.

    Raises:
        WebhookProcessingFailed: Lookup or persistence failed.
    """
    if allow_terminal_regression is None:
        allow_terminal_regression = settings.allow_terminal_regression

    if not event.identifiers:
        logger.warning(
            "Webhook without a usable identifier | provider=%s kind=%s",
            provider_name,
            event.kind.value,
        )
        return None

    try:
        transaction = await find_transaction(session, event)
    except SQLAlchemyError as e:
        raise WebhookProcessingFailed(
            f"Lookup failed for {event.kind.value} {event.identifiers}: {e}",
            provider_name=provider_name,
            kind=event.kind.value,
            external_id=event.external_id,
            payload=event.to_dict(),
        ) from e

    if transaction is None:
        logger.warning(
            "No %s found for webhook | provider=%s identifiers=%s",
            event.kind.value,
            provider_name,
            event.identifiers,
        )
        return None

    transaction_id = transaction.id
    async with transaction_lock(event.kind, transaction_id):
        try:
            await session.refresh(transaction, with_for_update=True)

            old_status = transaction.status
            new_status = event.status or old_status

            if not is_allowed_transition(old_status, new_status, allow_terminal_regression):
                transaction.meta = append_webhook_entry(transaction.meta, event.to_dict(), ignored=True)
                action = "event_ignored"
                logger.warning(
                    "Ignoring %s -> %s for %s %s | provider=%s external_id=%s",
                    old_status,
                    new_status,
                    event.kind.value,
                    transaction.id,
                    provider_name,
                    transaction.external_id,
                )
            else:
                transaction.status = new_status
                _apply_fields(transaction, event)
                transaction.meta = append_webhook_entry(transaction.meta, event.to_dict())
                action = "status_changed" if new_status != old_status else "event_replayed"
                logger.info(
                    "%s %s updated via webhook | provider=%s external_id=%s old_status=%s new_status=%s",
                    event.kind.value.capitalize(),
                    transaction.id,
                    provider_name,
                    transaction.external_id,
                    old_status,
                    new_status,
                )

            await log_event(session, action, event.kind.value, transaction.id, details={
                "provider": provider_name,
                "external_id": transaction.external_id,
                "old_status": old_status,
                "new_status": new_status,
            })
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(
                "Failed to persist webhook for %s %s | provider=%s error=%r",
                event.kind.value,
                transaction_id,
                provider_name,
                e,
            )
            raise WebhookProcessingFailed(
                f"Could not update {event.kind.value} {transaction_id}: {e}",
                provider_name=provider_name,
                kind=event.kind.value,
                external_id=event.external_id,
                payload=event.to_dict(),
            ) from e

    return transaction
