"""
Inbound provider webhooks and the dead-letter view.

POST /webhooks/{provider_name}/{kind}  - Accept a webhook (kind: pix | withdraw).
GET  /webhook-failures                 - Deliveries the job runner gave up on.

Webhooks are acknowledged with 202 once the provider is known and the kind
tag is valid; normalization and the status update run as a background job.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.api.dependencies import get_session_factory, get_transport
from pix_gateway.database import SessionFactory, get_session
from pix_gateway.engine.jobs import dispatch, run_webhook_job
from pix_gateway.errors import NormalizationFailed
from pix_gateway.models.enums import TransactionKind
from pix_gateway.models.transaction import WebhookFailure
from pix_gateway.providers.registry import resolve_by_name
from pix_gateway.providers.transport import OutboundTransport

router = APIRouter(tags=["webhooks"])


class WebhookAccepted(BaseModel):
    success: bool = True
    message: str
    provider: str
    kind: str


class WebhookFailureEntry(BaseModel):
    id: int
    provider_name: str
    kind: str
    external_id: Optional[str]
    error_code: str
    error_message: Optional[str]
    attempts: int
    payload: Optional[Any] = None
    created_at: Optional[str]


@router.post("/webhooks/{provider_name}/{kind}", response_model=WebhookAccepted, status_code=202)
async def receive_webhook(
    provider_name: str,
    kind: str,
    payload: Any = Body(...),
    session: AsyncSession = Depends(get_session),
    transport: Optional[OutboundTransport] = Depends(get_transport),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Queue a provider webhook for ingestion."""
    adapter = await resolve_by_name(session, provider_name, transport=transport)

    try:
        transaction_kind = TransactionKind.from_webhook_tag(kind)
    except ValueError as e:
        raise NormalizationFailed(str(e), provider_name=adapter.name, kind=kind, payload=payload) from e

    dispatch(
        run_webhook_job(session_factory, adapter.name, payload, transaction_kind.webhook_tag, transport=transport),
        name=f"webhook-{adapter.name}-{transaction_kind.webhook_tag}",
    )
    return WebhookAccepted(
        message="Webhook accepted for processing",
        provider=adapter.name,
        kind=transaction_kind.webhook_tag,
    )


@router.get("/webhook-failures", response_model=list[WebhookFailureEntry])
async def list_webhook_failures(
    provider: Optional[str] = Query(None, description="Filter by provider name"),
    limit: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
):
    """Dead-lettered webhook deliveries, newest first."""
    stmt = select(WebhookFailure)
    if provider:
        stmt = stmt.where(WebhookFailure.provider_name == provider)
    stmt = stmt.order_by(WebhookFailure.created_at.desc(), WebhookFailure.id.desc()).limit(limit)

    result = await session.execute(stmt)
    return [
        WebhookFailureEntry(
            id=f.id,
            provider_name=f.provider_name,
            kind=f.kind,
            external_id=f.external_id,
            error_code=f.error_code,
            error_message=f.error_message,
            attempts=f.attempts,
            payload=f.payload,
            created_at=f.created_at.isoformat() if f.created_at else None,
        )
        for f in result.scalars().all()
    ]
