"""
Precondition checks on canonical transaction requests.

Before a provider is contacted we verify:
  1. Amount is positive with at most two decimal places
  2. For withdrawals, bank code, agency and account are present
  3. For withdrawals, the account type is CHECKING or SAVINGS

The API schemas already enforce these for HTTP callers; the service runs them
again so programmatic callers get the same guarantees.
"""

from decimal import Decimal
from typing import Any

from pix_gateway.errors import ValidationFailed
from pix_gateway.models.enums import AccountType
from pix_gateway.providers.base import ChargeRequest, WithdrawalRequest

ACCOUNT_TYPES = {t.value for t in AccountType}


def _check_amount(amount: Any) -> None:
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise ValidationFailed(f"Invalid amount: {amount}", field="amount", value=str(amount))
    if amount <= 0:
        raise ValidationFailed(f"Amount must be positive: {amount}", field="amount", value=str(amount))
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationFailed(
            f"Amount has more than two decimal places: {amount}", field="amount", value=str(amount)
        )


def validate_charge_request(request: ChargeRequest) -> None:
    """Raise ValidationFailed unless ``request`` can be sent to a provider."""
    _check_amount(request.amount)

    if request.expires_in is not None and request.expires_in <= 0:
        raise ValidationFailed(
            f"expires_in must be positive: {request.expires_in}",
            field="expires_in",
            value=request.expires_in,
        )


def validate_withdrawal_request(request: WithdrawalRequest) -> None:
    """Raise ValidationFailed unless ``request`` can be sent to a provider."""
    _check_amount(request.amount)

    account = request.bank_account
    if account is None:
        raise ValidationFailed("Bank account is required", field="bank_account")

    for field_name in ("bank_code", "agency", "account"):
        if not getattr(account, field_name):
            raise ValidationFailed(
                f"Bank account {field_name} is required",
                field=f"bank_account.{field_name}",
            )

    account_type = getattr(account.account_type, "value", account.account_type)
    if account_type not in ACCOUNT_TYPES:
        raise ValidationFailed(
            f"Unknown account type: {account_type}",
            field="bank_account.account_type",
            value=account_type,
        )
