"""
Provider adapter contract and the canonical data it exchanges.

Every sub-acquirer the platform ships with implements ``ProviderAdapter``:
create a PIX charge, create a bank withdrawal, and ingest that provider's
webhooks. Request builders and webhook normalizers are plain functions; the
adapter composes them with the outbound transport.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.models.enums import AccountType


@dataclass(frozen=True)
class ProviderConfig:
    """Read-only snapshot of a provider row, taken when an adapter is resolved."""

    name: str
    base_url: str
    config: Mapping[str, Any] = field(default_factory=dict)
    active: bool = True
    id: Optional[int] = None

    @classmethod
    def from_model(cls, provider) -> "ProviderConfig":
        return cls(
            id=provider.id,
            name=provider.name,
            base_url=provider.base_url,
            config=MappingProxyType(dict(provider.config or {})),
            active=bool(provider.active),
        )


@dataclass(frozen=True)
class BankAccount:
    """Destination account for a withdrawal. Structurally validated upstream."""

    bank_code: str
    agency: str
    account: str
    account_type: AccountType
    holder_name: Optional[str] = None
    holder_document: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "bank_code": self.bank_code,
            "agency": self.agency,
            "account": self.account,
            "account_type": AccountType(self.account_type).value,
        }
        if self.holder_name is not None:
            data["account_holder_name"] = self.holder_name
        if self.holder_document is not None:
            data["account_holder_document"] = self.holder_document
        return data


@dataclass(frozen=True)
class ChargeRequest:
    """Canonical request to create a PIX charge."""

    amount: Decimal
    payer_name: Optional[str] = None
    payer_document: Optional[str] = None
    description: Optional[str] = None
    order_id: Optional[str] = None
    expires_in: Optional[int] = None  # Seconds


@dataclass(frozen=True)
class WithdrawalRequest:
    """Canonical request to create a bank withdrawal."""

    amount: Decimal
    bank_account: BankAccount


@dataclass(frozen=True)
class ProviderRequest:
    """What a request builder produces: where to send, what, and with which headers."""

    resource: str
    payload: dict[str, Any]
    headers: dict[str, str]
    mock_response_name: Optional[str] = None
    method: str = "POST"


@dataclass
class ProviderResponse:
    """Decoded provider response to a create call."""

    status_code: int
    body: dict[str, Any]


class ProviderAdapter(ABC):
    """Capability contract shared by all provider adapters."""

    def __init__(self, provider: ProviderConfig):
        self.provider = provider

    @property
    def name(self) -> str:
        return self.provider.name

    @abstractmethod
    async def create_charge(self, request: ChargeRequest) -> ProviderResponse:
        """
        Create a PIX charge with the provider.

        Raises:
            ProviderCallFailed: On a non-2xx response or a transport error.
        """
        ...

    @abstractmethod
    async def create_withdrawal(self, request: WithdrawalRequest) -> ProviderResponse:
        """
        Create a bank withdrawal with the provider.

        Raises:
            ProviderCallFailed: On a non-2xx response or a transport error.
        """
        ...

    @abstractmethod
    async def ingest_webhook(self, session: AsyncSession, payload: Any, kind: str):
        """
        Normalize a raw webhook payload and apply it to the stored transaction.

        Returns the updated transaction, or None when no transaction matches.

        Raises:
            NormalizationFailed: The payload shape is unrecoverable.
            WebhookProcessingFailed: Lookup or persistence failed (retryable).
        """
        ...
