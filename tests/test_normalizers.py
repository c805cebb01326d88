"""Tests for provider webhook normalizers."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pix_gateway.errors import NormalizationFailed
from pix_gateway.models.enums import TransactionKind
from pix_gateway.webhooks import subadq_a, subadq_b


class TestSubadqACharge:
    def test_full_payload(self):
        event = subadq_a.normalize_charge({
            "event": "pix_payment_confirmed",
            "transaction_id": "TXN-1",
            "pix_id": "PIX-1",
            "status": "CONFIRMED",
            "amount": 125.5,
            "payer_name": "Alice",
            "payer_cpf": "12345678900",
            "payment_date": "2025-01-01T12:00:00Z",
            "metadata": {"source": "SubadqA"},
        })

        assert event.kind is TransactionKind.CHARGE
        assert event.external_id == "TXN-1"
        assert event.alternate_id == "PIX-1"
        assert event.status == "CONFIRMED"
        assert event.amount == Decimal("125.5")
        assert event.payer_name == "Alice"
        assert event.payer_document == "12345678900"
        assert event.payment_date == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert event.raw_metadata["source"] == "SubadqA"
        assert event.identifiers == ["TXN-1", "PIX-1"]

    def test_falls_back_to_id(self):
        event = subadq_a.normalize_charge({"id": "ID-9", "status": "PAID"})
        assert event.external_id == "ID-9"

    @pytest.mark.parametrize("raw, expected", [
        ("confirmed", "CONFIRMED"),
        ("Paid", "PAID"),
        ("pending", "PENDING"),
        ("PROCESSING", "PROCESSING"),
        ("cancelled", "CANCELLED"),
        ("canceled", "CANCELLED"),
        ("FAILED", "FAILED"),
    ])
    def test_status_table(self, raw, expected):
        assert subadq_a.normalize_charge({"transaction_id": "T", "status": raw}).status == expected

    def test_unknown_status_is_pending(self):
        event = subadq_a.normalize_charge({"transaction_id": "T", "status": "WEIRD"})
        assert event.status == "PENDING"

    def test_missing_status_is_pending(self):
        assert subadq_a.normalize_charge({"transaction_id": "T"}).status == "PENDING"

    def test_malformed_fields_are_dropped(self):
        event = subadq_a.normalize_charge({
            "transaction_id": "T",
            "status": "PAID",
            "amount": "twelve",
            "payment_date": "yesterday",
        })
        assert event.status == "PAID"
        assert event.amount is None
        assert event.payment_date is None

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity", "sNaN", "-5.00", float("nan")])
    def test_non_finite_or_negative_amount_is_dropped(self, amount):
        event = subadq_a.normalize_charge({"transaction_id": "T", "status": "PAID", "amount": amount})
        assert event.status == "PAID"
        assert event.amount is None


class TestSubadqAWithdrawal:
    def test_full_payload(self):
        event = subadq_a.normalize_withdrawal({
            "event": "withdraw_completed",
            "withdraw_id": "WD-1",
            "transaction_id": "TXN-2",
            "status": "SUCCESS",
            "amount": 50,
            "requested_at": "2025-01-01T10:00:00",
            "completed_at": "2025-01-01T10:05:00+00:00",
        })

        assert event.kind is TransactionKind.WITHDRAWAL
        assert event.external_id == "TXN-2"
        assert event.alternate_id == "WD-1"
        assert event.status == "SUCCESS"
        assert event.amount == Decimal("50")
        assert event.requested_at == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert event.completed_at == datetime(2025, 1, 1, 10, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw, expected", [
        ("success", "SUCCESS"),
        ("DONE", "DONE"),
        ("pending", "PENDING"),
        ("processing", "PROCESSING"),
        ("failed", "FAILED"),
        ("CANCELLED", "CANCELLED"),
        ("CANCELED", "CANCELLED"),
        ("bogus", "PENDING"),
    ])
    def test_status_table(self, raw, expected):
        assert subadq_a.normalize_withdrawal({"withdraw_id": "W", "status": raw}).status == expected


class TestSubadqBCharge:
    def test_nested_payload(self):
        event = subadq_b.normalize_charge({
            "type": "pix.status_update",
            "data": {
                "id": "PX1",
                "status": "PAID",
                "value": 50.0,
                "payer": {"name": "Bob", "document": "1"},
                "confirmed_at": "2025-01-01T00:00:00Z",
            },
            "signature": "ab12",
        })

        assert event.external_id == "PX1"
        assert event.alternate_id == "PX1"
        assert event.identifiers == ["PX1"]
        assert event.status == "PAID"
        assert event.amount == Decimal("50.0")
        assert event.payer_name == "Bob"
        assert event.payer_document == "1"
        assert event.payment_date == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert event.raw_metadata["signature"] == "ab12"
        assert event.raw_metadata["type"] == "pix.status_update"

    def test_amount_key_accepted(self):
        event = subadq_b.normalize_charge({"data": {"id": "PX2", "status": "PAID", "amount": "10.10"}})
        assert event.amount == Decimal("10.10")

    def test_data_not_an_object_reads_envelope(self):
        event = subadq_b.normalize_charge({"data": "oops", "id": "PX3", "status": "confirmed"})
        assert event.external_id == "PX3"
        assert event.status == "CONFIRMED"

    def test_canceled_spelling_is_unknown(self):
        assert subadq_b.normalize_charge({"data": {"id": "P", "status": "CANCELED"}}).status == "PENDING"


class TestSubadqBWithdrawal:
    def test_done_maps_to_success(self):
        event = subadq_b.normalize_withdrawal({
            "type": "withdraw.status_update",
            "data": {
                "id": "WDX1",
                "status": "done",
                "amount": 20,
                "bank_account": {"bank": "Nubank", "agency": "0001", "account": "1234567-8"},
                "processed_at": "2025-02-01T08:30:00Z",
            },
            "signature": "ff00",
        })

        assert event.external_id == "WDX1"
        assert event.status == "SUCCESS"
        assert event.bank_account == {"bank": "Nubank", "agency": "0001", "account": "1234567-8"}
        assert event.completed_at == datetime(2025, 2, 1, 8, 30, tzinfo=timezone.utc)


class TestDispatch:
    def test_dispatches_by_kind(self):
        event = subadq_b.normalizer.normalize({"data": {"id": "W", "status": "SUCCESS"}}, TransactionKind.WITHDRAWAL)
        assert event.kind is TransactionKind.WITHDRAWAL

    @pytest.mark.parametrize("payload", [["not", "an", "object"], "text", None, 42])
    def test_non_object_payload_fails(self, payload):
        with pytest.raises(NormalizationFailed) as exc:
            subadq_a.normalizer.normalize(payload, TransactionKind.CHARGE)
        assert exc.value.provider_name == "SubadqA"
        assert exc.value.kind == "charge"
        assert exc.value.code == "NORMALIZATION_FAILED"

    def test_event_to_dict_is_json_safe(self):
        event = subadq_a.normalize_charge({
            "transaction_id": "T", "status": "PAID", "amount": 1.5, "payment_date": "2025-01-01T00:00:00Z",
        })
        data = event.to_dict()
        assert data["amount"] == "1.5"
        assert data["payment_date"] == "2025-01-01T00:00:00+00:00"
        assert data["kind"] == "charge"
