"""
Bank withdrawal endpoints.

POST /withdrawals       - Create a withdrawal through the owner's provider.
GET  /withdrawals       - List the owner's withdrawals.
GET  /withdrawals/{id}  - Get a single withdrawal with its metadata history.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.api.dependencies import get_owner, get_session_factory, get_transport
from pix_gateway.database import SessionFactory, get_session
from pix_gateway.engine.transactions import create_withdrawal, get_transaction, list_transactions
from pix_gateway.models.enums import AccountType, TransactionKind
from pix_gateway.models.transaction import Owner, Withdrawal
from pix_gateway.providers.base import BankAccount, WithdrawalRequest
from pix_gateway.providers.transport import OutboundTransport

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


class BankAccountIn(BaseModel):
    bank_code: str = Field(..., min_length=1, max_length=10)
    agency: str = Field(..., min_length=1, max_length=10)
    account: str = Field(..., min_length=1, max_length=20)
    account_type: AccountType
    account_holder_name: Optional[str] = Field(None, max_length=200)
    account_holder_document: Optional[str] = Field(None, max_length=20)


class WithdrawalCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    bank_account: BankAccountIn


class WithdrawalSummary(BaseModel):
    id: str
    external_id: Optional[str]
    amount: float
    status: str
    bank_account: Optional[dict]
    created_at: Optional[str]


class WithdrawalDetail(WithdrawalSummary):
    provider: Optional[str]
    requested_at: Optional[str]
    completed_at: Optional[str]
    metadata: Optional[dict] = None
    updated_at: Optional[str]


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _withdrawal_to_summary(w: Withdrawal) -> WithdrawalSummary:
    return WithdrawalSummary(
        id=w.id,
        external_id=w.external_id,
        amount=float(w.amount),
        status=w.status,
        bank_account=w.bank_account,
        created_at=_iso(w.created_at),
    )


def _withdrawal_to_detail(w: Withdrawal) -> WithdrawalDetail:
    return WithdrawalDetail(
        **_withdrawal_to_summary(w).model_dump(),
        provider=w.provider.name if w.provider else None,
        requested_at=_iso(w.requested_at),
        completed_at=_iso(w.completed_at),
        metadata=w.meta,
        updated_at=_iso(w.updated_at),
    )


@router.post("", response_model=WithdrawalDetail, status_code=201)
async def post_withdrawal(
    body: WithdrawalCreate,
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
    transport: Optional[OutboundTransport] = Depends(get_transport),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Create a bank withdrawal. Stored as PENDING until the provider reports back."""
    account = body.bank_account
    request = WithdrawalRequest(
        amount=body.amount,
        bank_account=BankAccount(
            bank_code=account.bank_code,
            agency=account.agency,
            account=account.account,
            account_type=account.account_type,
            holder_name=account.account_holder_name,
            holder_document=account.account_holder_document,
        ),
    )
    withdrawal = await create_withdrawal(
        session, owner, request, transport=transport, session_factory=session_factory
    )
    return _withdrawal_to_detail(withdrawal)


@router.get("", response_model=list[WithdrawalSummary])
async def list_withdrawals(
    limit: int = Query(50, ge=1, le=500),
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
):
    withdrawals = await list_transactions(session, TransactionKind.WITHDRAWAL, owner.id, limit=limit)
    return [_withdrawal_to_summary(w) for w in withdrawals]


@router.get("/{withdrawal_id}", response_model=WithdrawalDetail)
async def get_withdrawal(
    withdrawal_id: str,
    owner: Owner = Depends(get_owner),
    session: AsyncSession = Depends(get_session),
):
    withdrawal = await get_transaction(session, TransactionKind.WITHDRAWAL, owner.id, withdrawal_id)
    if not withdrawal:
        raise HTTPException(status_code=404, detail=f"Withdrawal not found: {withdrawal_id}")
    return _withdrawal_to_detail(withdrawal)
