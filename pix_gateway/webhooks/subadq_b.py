"""
SubadqB webhook normalizer.

SubadqB nests the transaction under ``data`` and signs the envelope with a
detached top-level ``signature``:

    {"type": "pix.status_update",
     "data": {"id": "PX1", "status": "PAID", "value": 50.0,
              "payer": {"name": "Bob", "document": "1"},
              "confirmed_at": "2025-01-01T00:00:00Z"},
     "signature": "ab12"}

Withdrawals carry ``amount``, ``bank_account``, ``requested_at`` and
``processed_at`` under ``data``, and report completion as ``DONE``.
"""

import logging
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

logger = logging.getLogger("pix_gateway.webhooks")

PROVIDER = "SubadqB"

CHARGE_STATUS_MAP = {
    "CONFIRMED": "CONFIRMED",
    "PAID": "PAID",
    "PENDING": "PENDING",
    "PROCESSING": "PROCESSING",
    "CANCELLED": "CANCELLED",
    "FAILED": "FAILED",
}

WITHDRAWAL_STATUS_MAP = {
    "SUCCESS": "SUCCESS",
    "DONE": "SUCCESS",
    "PENDING": "PENDING",
    "PROCESSING": "PROCESSING",
    "FAILED": "FAILED",
    "CANCELLED": "CANCELLED",
}


def _data(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data", payload)
    if not isinstance(data, dict):
        logger.warning("%s: 'data' is not an object, reading the envelope instead", PROVIDER)
        return payload
    return data


def _metadata(payload: dict[str, Any]) -> dict[str, Any]:
    metadata = payload.get("metadata")
    merged = dict(metadata) if isinstance(metadata, dict) else {}
    merged["signature"] = payload.get("signature")
    if payload.get("type"):
        merged["type"] = payload["type"]
    return merged


def normalize_charge(payload: dict[str, Any]) -> NormalizedEvent:
    data = _data(payload)
    external_id = optional_str(data.get("id"))

    payer = data.get("payer")
    payer_name = payer_document = None
    if isinstance(payer, dict):
        payer_name = optional_str(payer.get("name"))
        payer_document = optional_str(payer.get("document"))

    amount = data.get("value")
    if amount is None:
        amount = data.get("amount")

    return NormalizedEvent(
        kind=TransactionKind.CHARGE,
        external_id=external_id,
        alternate_id=external_id,
        status=map_status(CHARGE_STATUS_MAP, data.get("status", "PENDING"), PROVIDER),
        amount=parse_amount(amount, PROVIDER),
        payer_name=payer_name,
        payer_document=payer_document,
        payment_date=parse_timestamp(data.get("confirmed_at"), "confirmed_at", PROVIDER),
        raw_metadata=_metadata(payload),
    )


def normalize_withdrawal(payload: dict[str, Any]) -> NormalizedEvent:
    data = _data(payload)
    external_id = optional_str(data.get("id"))
    bank_account = data.get("bank_account")

    return NormalizedEvent(
        kind=TransactionKind.WITHDRAWAL,
        external_id=external_id,
        alternate_id=external_id,
        status=map_status(WITHDRAWAL_STATUS_MAP, data.get("status", "PENDING"), PROVIDER),
        amount=parse_amount(data.get("amount"), PROVIDER),
        bank_account=bank_account if isinstance(bank_account, dict) else None,
        requested_at=parse_timestamp(data.get("requested_at"), "requested_at", PROVIDER),
        completed_at=parse_timestamp(data.get("processed_at"), "processed_at", PROVIDER),
        raw_metadata=_metadata(payload),
    )


normalizer = WebhookNormalizer(
    provider_name=PROVIDER,
    charge=normalize_charge,
    withdrawal=normalize_withdrawal,
)
