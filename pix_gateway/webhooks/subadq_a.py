"""
SubadqA webhook normalizer.

SubadqA posts flat payloads. The transaction id it returned on creation comes
back as ``transaction_id``; ``pix_id`` / ``withdraw_id`` are its secondary ids.

    {"event": "pix_payment_confirmed", "transaction_id": "...", "pix_id": "...",
     "status": "CONFIRMED", "amount": 125.5, "payer_name": "...",
     "payer_cpf": "...", "payment_date": "2025-01-01T12:00:00Z", "metadata": {...}}

    {"event": "withdraw_completed", "withdraw_id": "...", "transaction_id": "...",
     "status": "SUCCESS", "amount": 50.0, "requested_at": "...",
     "completed_at": "...", "metadata": {...}}
"""

from typing import Any

from pix_gateway.models.enums import TransactionKind
from pix_gateway.webhooks.base import (
    NormalizedEvent,
    WebhookNormalizer,
    map_status,
    optional_str,
    parse_amount,
    parse_timestamp,
)

PROVIDER = "SubadqA"

CHARGE_STATUS_MAP = {
    "CONFIRMED": "CONFIRMED",
    "PAID": "PAID",
    "PENDING": "PENDING",
    "PROCESSING": "PROCESSING",
    "CANCELLED": "CANCELLED",
    "CANCELED": "CANCELLED",
    "FAILED": "FAILED",
}

WITHDRAWAL_STATUS_MAP = {
    "SUCCESS": "SUCCESS",
    "DONE": "DONE",
    "PENDING": "PENDING",
    "PROCESSING": "PROCESSING",
    "FAILED": "FAILED",
    "CANCELLED": "CANCELLED",
    "CANCELED": "CANCELLED",
}


def _metadata(payload: dict[str, Any]) -> dict[str, Any]:
    metadata = payload.get("metadata")
    data = dict(metadata) if isinstance(metadata, dict) else {}
    if payload.get("event"):
        data["event"] = payload["event"]
    return data


def normalize_charge(payload: dict[str, Any]) -> NormalizedEvent:
    return NormalizedEvent(
        kind=TransactionKind.CHARGE,
        external_id=optional_str(payload.get("transaction_id") or payload.get("id")),
        alternate_id=optional_str(payload.get("pix_id")),
        status=map_status(CHARGE_STATUS_MAP, payload.get("status", "PENDING"), PROVIDER),
        amount=parse_amount(payload.get("amount"), PROVIDER),
        payer_name=optional_str(payload.get("payer_name")),
        payer_document=optional_str(payload.get("payer_cpf")),
        payment_date=parse_timestamp(payload.get("payment_date"), "payment_date", PROVIDER),
        raw_metadata=_metadata(payload),
    )


def normalize_withdrawal(payload: dict[str, Any]) -> NormalizedEvent:
    bank_account = payload.get("bank_account")
    return NormalizedEvent(
        kind=TransactionKind.WITHDRAWAL,
        external_id=optional_str(payload.get("transaction_id") or payload.get("id")),
        alternate_id=optional_str(payload.get("withdraw_id")),
        status=map_status(WITHDRAWAL_STATUS_MAP, payload.get("status", "PENDING"), PROVIDER),
        amount=parse_amount(payload.get("amount"), PROVIDER),
        bank_account=bank_account if isinstance(bank_account, dict) else None,
        requested_at=parse_timestamp(payload.get("requested_at"), "requested_at", PROVIDER),
        completed_at=parse_timestamp(payload.get("completed_at"), "completed_at", PROVIDER),
        raw_metadata=_metadata(payload),
    )


normalizer = WebhookNormalizer(
    provider_name=PROVIDER,
    charge=normalize_charge,
    withdrawal=normalize_withdrawal,
)
