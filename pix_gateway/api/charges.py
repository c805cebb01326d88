"""
PIX charge endpoints.

POST /charges       - Create a charge through the owner's provider.
GET  /charges       - List the owner's charges.
GET  /charges/{id}  - Get a single charge with its metadata history.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.api.dependencies import get_owner, get_session_factory, get_transport
from pix_gateway.database import SessionFactory, get_session
from pix_gateway.engine.transactions import create_charge, get_transaction, list_transactions
from pix_gateway.models.enums import TransactionKind
from pix_gateway.models.transaction import Charge, Owner
from pix_gateway.providers.base import ChargeRequest
from pix_gateway.providers.transport import OutboundTransport

router = APIRouter(prefix="/charges", tags=["charges"])


class ChargeCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payer_name: Optional[str] = Field(None, max_length=200)
    payer_document: Optional[str] = Field(
        None, max_length=20, validation_alias=AliasChoices("payer_document", "payer_cpf")
    )
    description: Optional[str] = Field(None, max_length=255)
    order_id: Optional[str] = Field(None, max_length=100)
    expires_in: Optional[int] = Field(None, gt=0)


class ChargeSummary(BaseModel):
    id: str
    external_id: Optional[str]
    amount: float
    status: str
    payer_name: Optional[str]
    created_at: Optional[str]


class ChargeDetail(ChargeSummary):
    provider: Optional[str]
    payer_cpf: Optional[str]
    payment_date: Optional[str]
    metadata: Optional[dict] = None
    updated_at: Optional[str]


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _charge_to_summary(c: Charge) -> ChargeSummary:
    return ChargeSummary(
        id=c.id,
        external_id=c.external_id,
        amount=float(c.amount),
        status=c.status,
        payer_name=c.payer_name,
        created_at=_iso(c.created_at),
    )


def _charge_to_detail(c: Charge) -> ChargeDetail:
    return ChargeDetail(
        **_charge_to_summary(c).model_dump(),
        provider=c.provider.name if c.provider else None,
        payer_cpf=c.payer_cpf,
        payment_date=_iso(c.payment_date),
        metadata=c.meta,
        updated_at=_iso(c.updated_at),
    )


@router.post("", response_model=ChargeDetail, status_code=201)
async def post_charge(
    body: ChargeCreate,
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
    transport: Optional[OutboundTransport] = Depends(get_transport),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """
    Create a PIX charge.

    The charge is stored as PENDING once the provider acknowledges it; its
    final status arrives later by webhook.
    """
    request = ChargeRequest(
        amount=body.amount,
        payer_name=body.payer_name,
        payer_document=body.payer_document,
        description=body.description,
        order_id=body.order_id,
        expires_in=body.expires_in,
    )
    charge = await create_charge(session, owner, request, transport=transport, session_factory=session_factory)
    return _charge_to_detail(charge)


@router.get("", response_model=list[ChargeSummary])
async def list_charges(
    limit: int = Query(50, ge=1, le=500),
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
):
    """List the owner's charges, newest first."""
    charges = await list_transactions(session, TransactionKind.CHARGE, owner.id, limit=limit)
    return [_charge_to_summary(c) for c in charges]


@router.get("/{charge_id}", response_model=ChargeDetail)
async def get_charge(
    charge_id: str,
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
):
    charge = await get_transaction(session, TransactionKind.CHARGE, owner.id, charge_id)
    if not charge:
        raise HTTPException(status_code=404, detail=f"Charge not found: {charge_id}")
    return _charge_to_detail(charge)
