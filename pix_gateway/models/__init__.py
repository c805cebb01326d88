from pix_gateway.models.enums import AccountType, ChargeStatus, TransactionKind, WithdrawalStatus
from pix_gateway.models.transaction import (
    TRANSACTION_MODELS,
    AuditLog,
    Base,
    Charge,
    Owner,
    Provider,
    WebhookFailure,
    Withdrawal,
)

__all__ = [
    "Base",
    "Provider",
    "Owner",
    "Charge",
    "Withdrawal",
    "AuditLog",
    "WebhookFailure",
    "TRANSACTION_MODELS",
    "TransactionKind",
    "ChargeStatus",
    "WithdrawalStatus",
    "AccountType",
]
