"""Enumerations for the PIX gateway domain model."""

from enum import Enum


class TransactionKind(str, Enum):
    """The two kinds of transaction a provider can originate."""

    CHARGE = "charge"
    WITHDRAWAL = "withdrawal"

    @classmethod
    def from_webhook_tag(cls, tag: str) -> "TransactionKind":
        """Map the inbound webhook kind tag (``pix`` / ``withdraw``) to a kind."""
        normalized = (tag or "").strip().lower()
        if normalized in WEBHOOK_TAGS:
            return WEBHOOK_TAGS[normalized]
        raise ValueError(f"Unknown webhook kind: {tag!r}")

    @property
    def webhook_tag(self) -> str:
        return "pix" if self is TransactionKind.CHARGE else "withdraw"


WEBHOOK_TAGS = {
    "pix": TransactionKind.CHARGE,
    "charge": TransactionKind.CHARGE,
    "withdraw": TransactionKind.WITHDRAWAL,
    "withdrawal": TransactionKind.WITHDRAWAL,
}


class ChargeStatus(str, Enum):
    """Lifecycle states for a PIX charge."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class WithdrawalStatus(str, Enum):
    """Lifecycle states for a bank withdrawal."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    DONE = "DONE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class AccountType(str, Enum):
    """Bank account types accepted for withdrawals."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


PENDING_STATUSES = {"PENDING"}
IN_FLIGHT_STATUSES = {"PROCESSING"}

# CONFIRMED/PAID are the same "paid" outcome; SUCCESS/DONE the same "completed" one.
PAID_STATUSES = {ChargeStatus.CONFIRMED.value, ChargeStatus.PAID.value}
COMPLETED_STATUSES = {WithdrawalStatus.SUCCESS.value, WithdrawalStatus.DONE.value}
FAILED_STATUSES = {"FAILED", "CANCELLED"}

TERMINAL_STATUSES = PAID_STATUSES | COMPLETED_STATUSES | FAILED_STATUSES


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def status_rank(status: str) -> int:
    """Position of a status along the lifecycle: pending < in flight < terminal."""
    if status in TERMINAL_STATUSES:
        return 2
    if status in IN_FLIGHT_STATUSES:
        return 1
    return 0
