"""External identifier extraction from provider create responses."""

import logging
import secrets
import time
from typing import Any

from pix_gateway.models.enums import TransactionKind

logger = logging.getLogger("pix_gateway.identifiers")

ID_FIELDS = {
    TransactionKind.CHARGE: ("id", "transaction_id", "pix_id", "charge_id", "external_id"),
    TransactionKind.WITHDRAWAL: ("id", "transaction_id", "withdraw_id", "transfer_id", "external_id"),
}

PLACEHOLDER_PREFIX = "TEMP_"


def placeholder_id() -> str:
    """Locally unique stand-in id: unix time plus a random suffix."""
    return f"{PLACEHOLDER_PREFIX}{int(time.time())}_{secrets.token_hex(8)}"


def is_placeholder(external_id: str) -> bool:
    return external_id.startswith(PLACEHOLDER_PREFIX)


def extract_external_id(body: dict[str, Any], kind: TransactionKind) -> str:
    """
    Pick the provider's identifier out of a create response.

    Fields are tried in preference order; the first non-empty one wins. When
    none is present a placeholder is generated and a warning logged: such a
    transaction can only be reconciled through the platform's own id.
    """
    for field in ID_FIELDS[kind]:
        value = body.get(field)
        if value is not None and value != "":
            return str(value)

    external_id = placeholder_id()
    logger.warning(
        "No external id in %s create response, using placeholder %s | response=%s",
        kind.value,
        external_id,
        body,
    )
    return external_id
