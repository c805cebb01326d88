"""
Canonical webhook event and the helpers every provider normalizer shares.

Normalizers are forgiving by contract: unknown statuses become PENDING,
malformed timestamps and amounts are logged and dropped. Only a payload that
is not a JSON object at all is rejected with ``NormalizationFailed``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

from pix_gateway.errors import NormalizationFailed
from pix_gateway.models.enums import TransactionKind

logger = logging.getLogger("pix_gateway.webhooks")


@dataclass
class NormalizedEvent:
    """Provider-agnostic webhook event, consumed once by the state engine."""

    kind: TransactionKind
    external_id: Optional[str]
    status: Optional[str]
    alternate_id: Optional[str] = None  # pix_id / withdraw_id
    amount: Optional[Decimal] = None
    payer_name: Optional[str] = None
    payer_document: Optional[str] = None
    payment_date: Optional[datetime] = None
    bank_account: Optional[dict[str, Any]] = None
    requested_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def identifiers(self) -> list[str]:
        """Usable identifiers, in lookup order, without blanks or duplicates."""
        ids: list[str] = []
        for value in (self.external_id, self.alternate_id):
            if value and value not in ids:
                ids.append(value)
        return ids

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation, stored in the transaction's webhook history."""
        return {
            "kind": self.kind.value,
            "external_id": self.external_id,
            "alternate_id": self.alternate_id,
            "status": self.status,
            "amount": str(self.amount) if self.amount is not None else None,
            "payer_name": self.payer_name,
            "payer_document": self.payer_document,
            "payment_date": _iso(self.payment_date),
            "bank_account": self.bank_account,
            "requested_at": _iso(self.requested_at),
            "completed_at": _iso(self.completed_at),
            "raw_metadata": self.raw_metadata,
        }


Normalize = Callable[[dict[str, Any]], NormalizedEvent]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def map_status(table: Mapping[str, str], value: Any, provider_name: str = "-") -> str:
    """Case-insensitive lookup; anything outside the table normalizes to PENDING."""
    key = str(value).strip().upper() if value is not None else ""
    mapped = table.get(key)
    if mapped is None:
        logger.warning("Unknown status %r from %s, treating as PENDING", value, provider_name)
        return "PENDING"
    return mapped


def parse_timestamp(value: Any, field_name: str, provider_name: str = "-") -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Malformed values are logged and become None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            logger.warning(
                "%s: could not parse %s=%r (%s), ignoring it", provider_name, field_name, value, e
            )
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_amount(value: Any, provider_name: str = "-") -> Optional[Decimal]:
    """Finite, non-negative amount, or None. Anything else is logged and dropped."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.warning("%s: could not parse amount %r, ignoring it", provider_name, value)
        return None
    if not amount.is_finite() or amount < 0:
        logger.warning("%s: rejecting amount %r, ignoring it", provider_name, value)
        return None
    return amount


def optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class WebhookNormalizer:
    """A provider's pair of normalizers, dispatched by transaction kind."""

    provider_name: str
    charge: Normalize
    withdrawal: Normalize

    def normalize(self, payload: Any, kind: TransactionKind) -> NormalizedEvent:
        if not isinstance(payload, dict):
            raise NormalizationFailed(
                f"{self.provider_name} webhook payload must be a JSON object, got {type(payload).__name__}",
                provider_name=self.provider_name,
                kind=kind.value,
                payload=payload,
            )

        normalize = self.charge if kind is TransactionKind.CHARGE else self.withdrawal
        event = normalize(payload)
        logger.info(
            "Normalized %s webhook | provider=%s external_id=%s status=%s",
            kind.value,
            self.provider_name,
            event.external_id,
            event.status,
        )
        return event
