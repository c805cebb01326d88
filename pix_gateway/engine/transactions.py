"""
Transaction service: originates charges and withdrawals through the owner's
provider.

The flow for each creation:

  1. Validation (amount, bank account)
  2. Adapter resolution (owner's provider -> registered adapter)
  3. Provider call (request builder -> outbound transport)
  4. External id extraction from the provider's response
  5. Persist as PENDING, audit, commit
  6. Schedule a simulated confirmation webhook when simulation is enabled

A failed provider call aborts the creation: nothing is written. A storage
failure after the provider accepted the call is logged with the provider's
external id and raised as ``TransactionPersistFailed``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.audit.logger import log_event
from pix_gateway.database import SessionFactory, async_session
from pix_gateway.engine.simulation import schedule_simulation
from pix_gateway.engine.validation import validate_charge_request, validate_withdrawal_request
from pix_gateway.errors import ProviderCallFailed, TransactionPersistFailed
from pix_gateway.models.enums import TransactionKind
from pix_gateway.models.transaction import TRANSACTION_MODELS, Charge, Owner, Withdrawal
from pix_gateway.providers.base import ChargeRequest, WithdrawalRequest
from pix_gateway.providers.identifiers import extract_external_id
from pix_gateway.providers.registry import resolve_for_owner
from pix_gateway.providers.transport import OutboundTransport

logger = logging.getLogger("pix_gateway.transactions")


def _creation_metadata(body: dict) -> dict:
    return {
        "provider_response": body,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


async def _persist(
    session: AsyncSession,
    transaction,
    kind: TransactionKind,
    provider_name: str,
    external_id: str,
    amount,
) -> None:
    session.add(transaction)
    try:
        await session.flush()
        await log_event(session, "created", kind.value, transaction.id, details={
            "provider": provider_name,
            "external_id": external_id,
            "amount": amount,
        })
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(
            "Could not store %s accepted by provider | provider=%s external_id=%s error=%r",
            kind.value,
            provider_name,
            external_id,
            e,
        )
        raise TransactionPersistFailed(
            f"{provider_name} accepted the {kind.value} but it could not be stored",
            provider_name=provider_name,
            kind=kind.value,
            external_id=external_id,
        ) from e


async def create_charge(
    session: AsyncSession,
    owner: Owner,
    request: ChargeRequest,
    transport: Optional[OutboundTransport] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Charge:
    """
    Create a PIX charge with the owner's provider and store it as PENDING.

    Raises:
        ValidationFailed: The request is malformed.
        ProviderNotFound: The owner has no usable provider.
        ProviderCallFailed: The provider rejected or never answered the call.
        TransactionPersistFailed: The provider accepted the call but storing failed.
    """
    validate_charge_request(request)
    adapter = resolve_for_owner(owner, transport=transport)

    try:
        response = await adapter.create_charge(request)
    except ProviderCallFailed as e:
        logger.error("Charge creation failed for owner %s | provider=%s error=%s", owner.id, adapter.name, e)
        raise

    external_id = extract_external_id(response.body, TransactionKind.CHARGE)

    charge = Charge(
        owner_id=owner.id,
        provider_id=owner.provider_id,
        provider=owner.provider,
        external_id=external_id,
        amount=request.amount,
        status="PENDING",
        payer_name=request.payer_name,
        payer_cpf=request.payer_document,
        meta=_creation_metadata(response.body),
    )
    await _persist(session, charge, TransactionKind.CHARGE, adapter.name, external_id, request.amount)

    logger.info(
        "Charge %s created | owner=%s provider=%s external_id=%s amount=%s",
        charge.id,
        owner.id,
        adapter.name,
        external_id,
        request.amount,
    )

    schedule_simulation(session_factory or async_session, TransactionKind.CHARGE, charge.id)
    return charge


async def create_withdrawal(
    session: AsyncSession,
    owner: Owner,
    request: WithdrawalRequest,
    transport: Optional[OutboundTransport] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Withdrawal:
    """
    Create a bank withdrawal with the owner's provider and store it as PENDING.

    Raises:
        ValidationFailed: The request is malformed.
        ProviderNotFound: The owner has no usable provider.
        ProviderCallFailed: The provider rejected or never answered the call.
        TransactionPersistFailed: The provider accepted the call but storing failed.
    """
    validate_withdrawal_request(request)
    adapter = resolve_for_owner(owner, transport=transport)

    try:
        response = await adapter.create_withdrawal(request)
    except ProviderCallFailed as e:
        logger.error("Withdrawal creation failed for owner %s | provider=%s error=%s", owner.id, adapter.name, e)
        raise

    external_id = extract_external_id(response.body, TransactionKind.WITHDRAWAL)

    withdrawal = Withdrawal(
        owner_id=owner.id,
        provider_id=owner.provider_id,
        provider=owner.provider,
        external_id=external_id,
        amount=request.amount,
        status="PENDING",
        bank_account=request.bank_account.to_dict(),
        requested_at=datetime.now(timezone.utc),
        meta=_creation_metadata(response.body),
    )
    await _persist(session, withdrawal, TransactionKind.WITHDRAWAL, adapter.name, external_id, request.amount)

    logger.info(
        "Withdrawal %s created | owner=%s provider=%s external_id=%s amount=%s",
        withdrawal.id,
        owner.id,
        adapter.name,
        external_id,
        request.amount,
    )

    schedule_simulation(session_factory or async_session, TransactionKind.WITHDRAWAL, withdrawal.id)
    return withdrawal


async def list_transactions(session: AsyncSession, kind: TransactionKind, owner_id: str, limit: int = 50):
    model = TRANSACTION_MODELS[kind]
    result = await session.execute(
        select(model)
        .where(model.owner_id == owner_id)
        .order_by(model.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()


async def get_transaction(session: AsyncSession, kind: TransactionKind, owner_id: str, transaction_id: str):
    """One of the owner's transactions, or None."""
    model = TRANSACTION_MODELS[kind]
    transaction = await session.get(model, transaction_id)
    if transaction is None or transaction.owner_id != owner_id:
        return None
    return transaction
