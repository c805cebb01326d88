"""Tests for transaction request validation."""

from decimal import Decimal

import pytest

from pix_gateway.engine.validation import validate_charge_request, validate_withdrawal_request
from pix_gateway.errors import ValidationFailed
from pix_gateway.models.enums import AccountType
from pix_gateway.providers.base import BankAccount, ChargeRequest, WithdrawalRequest


def _account(**overrides) -> BankAccount:
    fields = {"bank_code": "260", "agency": "0001", "account": "123", "account_type": AccountType.CHECKING}
    fields.update(overrides)
    return BankAccount(**fields)


class TestChargeValidation:
    def test_valid_charge(self):
        validate_charge_request(ChargeRequest(amount=Decimal("100.00"), payer_name="Alice"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00"), Decimal("NaN"), 10.0, None])
    def test_invalid_amounts(self, amount):
        with pytest.raises(ValidationFailed) as exc:
            validate_charge_request(ChargeRequest(amount=amount))
        assert exc.value.field == "amount"
        assert exc.value.http_status == 422

    def test_too_many_decimals(self):
        with pytest.raises(ValidationFailed):
            validate_charge_request(ChargeRequest(amount=Decimal("1.001")))

    def test_trailing_zeros_are_fine(self):
        validate_charge_request(ChargeRequest(amount=Decimal("1.500")))

    def test_non_positive_expiry(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_charge_request(ChargeRequest(amount=Decimal("1.00"), expires_in=0))
        assert exc.value.field == "expires_in"


class TestWithdrawalValidation:
    def test_valid_withdrawal(self):
        validate_withdrawal_request(WithdrawalRequest(amount=Decimal("10.00"), bank_account=_account()))

    @pytest.mark.parametrize("field", ["bank_code", "agency", "account"])
    def test_missing_bank_fields(self, field):
        with pytest.raises(ValidationFailed) as exc:
            validate_withdrawal_request(WithdrawalRequest(amount=Decimal("10.00"), bank_account=_account(**{field: ""})))
        assert exc.value.field == f"bank_account.{field}"

    def test_unknown_account_type(self):
        with pytest.raises(ValidationFailed) as exc:
            validate_withdrawal_request(
                WithdrawalRequest(amount=Decimal("10.00"), bank_account=_account(account_type="PAYMENT"))
            )
        assert exc.value.field == "bank_account.account_type"

    def test_account_type_as_string(self):
        validate_withdrawal_request(WithdrawalRequest(amount=Decimal("10.00"), bank_account=_account(account_type="SAVINGS")))

    def test_missing_account(self):
        with pytest.raises(ValidationFailed):
            validate_withdrawal_request(WithdrawalRequest(amount=Decimal("10.00"), bank_account=None))
