"""SQLAlchemy models for the PIX gateway."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from pix_gateway.models.enums import (
    COMPLETED_STATUSES,
    FAILED_STATUSES,
    PAID_STATUSES,
    TransactionKind,
)


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class Provider(Base):
    """
    A sub-acquirer the platform can route transactions through.

    ``config`` is an opaque map: extra ``headers``, auth material, the
    ``mock_response_header`` marker used by sandbox mocks, and provider-specific
    keys such as ``seller_id``. Rows are owned by platform configuration and are
    read-only to the adapter layer.
    """

    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    base_url = Column(String(500), nullable=False)
    config = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    owners = relationship("Owner", back_populates="provider", lazy="raise")


class Owner(Base):
    """A tenant of the platform. Its configured provider handles its transactions."""

    __tablename__ = "owners"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True)

    provider = relationship("Provider", back_populates="owners", lazy="selectin")


class Charge(Base):
    """
    A PIX charge (cobrança) originated through a provider.

    Created as PENDING right after the provider acknowledges it; afterwards only
    the state engine mutates it. ``meta`` accumulates the provider's creation
    response and an append-only history of webhook applications.
    """

    __tablename__ = "charges"

    kind = TransactionKind.CHARGE

    id = Column(String(12), primary_key=True, default=_new_id)
    owner_id = Column(String(50), ForeignKey("owners.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    external_id = Column(String(100), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    payer_name = Column(String(200), nullable=True)
    payer_cpf = Column(String(20), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    provider = relationship("Provider", lazy="selectin")

    def is_pending(self) -> bool:
        return self.status == "PENDING"

    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES

    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES


class Withdrawal(Base):
    """A bank withdrawal (saque) originated through a provider."""

    __tablename__ = "withdrawals"

    kind = TransactionKind.WITHDRAWAL

    id = Column(String(12), primary_key=True, default=_new_id)
    owner_id = Column(String(50), ForeignKey("owners.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    external_id = Column(String(100), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    bank_account = Column(JSON, nullable=False)
    requested_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    provider = relationship("Provider", lazy="selectin")

    def is_pending(self) -> bool:
        return self.status == "PENDING"

    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES


TRANSACTION_MODELS = {
    TransactionKind.CHARGE: Charge,
    TransactionKind.WITHDRAWAL: Withdrawal,
}


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every creation and every webhook application (applied, replayed or
    ignored) gets an entry. These are append-only and never modified.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_kind = Column(String(20), nullable=True, index=True)
    transaction_id = Column(String(12), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)


class WebhookFailure(Base):
    """
    Dead-letter record for a webhook delivery that could not be applied.

    Written once the job runner gives up, so operators can query and replay it.
    """

    __tablename__ = "webhook_failures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_name = Column(String(100), nullable=False, index=True)
    kind = Column(String(20), nullable=False)
    external_id = Column(String(100), nullable=True, index=True)
    error_code = Column(String(50), nullable=False)
    error_message = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
