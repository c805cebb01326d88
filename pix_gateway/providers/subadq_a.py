"""
SubadqA adapter.

Flat JSON dialect on both sides:
  - POST /pix/create   {amount, payer_name, payer_cpf, description}
  - POST /withdraw     {amount, bank_account}

Its sandbox picks canned responses by name, sent under the header the
provider config names in ``mock_response_header``.
"""

from datetime import datetime, timezone
from typing import Any

from pix_gateway.providers.base import ChargeRequest, ProviderConfig, ProviderRequest, WithdrawalRequest
from pix_gateway.providers.http_adapter import HttpProviderAdapter, build_headers
from pix_gateway.webhooks import subadq_a

DEFAULT_DESCRIPTION = "Cobrança PIX"

CHARGE_MOCK_RESPONSE = "[SUCESSO_PIX] pix_create"
WITHDRAWAL_MOCK_RESPONSE = "SUCESSO_WD"


def build_charge(request: ChargeRequest, provider: ProviderConfig) -> ProviderRequest:
    payload = {
        "amount": float(request.amount),
        "payer_name": request.payer_name,
        "payer_cpf": request.payer_document,
        "description": request.description or DEFAULT_DESCRIPTION,
    }
    return ProviderRequest(
        resource="/pix/create",
        payload=payload,
        headers=build_headers(provider.config, CHARGE_MOCK_RESPONSE),
        mock_response_name=CHARGE_MOCK_RESPONSE,
    )


def build_withdrawal(request: WithdrawalRequest, provider: ProviderConfig) -> ProviderRequest:
    payload = {
        "amount": float(request.amount),
        "bank_account": request.bank_account.to_dict(),
    }
    return ProviderRequest(
        resource="/withdraw",
        payload=payload,
        headers=build_headers(provider.config, WITHDRAWAL_MOCK_RESPONSE),
        mock_response_name=WITHDRAWAL_MOCK_RESPONSE,
    )


def simulate_charge(charge) -> dict[str, Any]:
    """A ``pix_payment_confirmed`` webhook for a pending charge."""
    return {
        "event": "pix_payment_confirmed",
        "transaction_id": charge.external_id or f"TXN{charge.id}",
        "pix_id": f"PIX{charge.id}",
        "status": "CONFIRMED",
        "amount": float(charge.amount),
        "payer_name": charge.payer_name or "Pagador Simulado",
        "payer_cpf": charge.payer_cpf or "12345678900",
        "payment_date": datetime.now(timezone.utc).isoformat(),
        "metadata": {
            "source": subadq_a.PROVIDER,
            "environment": "sandbox",
            "simulated": True,
        },
    }


def simulate_withdrawal(withdrawal) -> dict[str, Any]:
    """A ``withdraw_completed`` webhook for a pending withdrawal."""
    now = datetime.now(timezone.utc)
    requested_at = withdrawal.requested_at or withdrawal.created_at or now
    bank_account = withdrawal.bank_account or {}
    return {
        "event": "withdraw_completed",
        "withdraw_id": f"WD{withdrawal.id}",
        "transaction_id": withdrawal.external_id or f"TXN{withdrawal.id}",
        "status": "SUCCESS",
        "amount": float(withdrawal.amount),
        "requested_at": requested_at.isoformat(),
        "completed_at": now.isoformat(),
        "metadata": {
            "source": subadq_a.PROVIDER,
            "destination_bank": bank_account.get("bank_code") or bank_account.get("bank"),
            "simulated": True,
        },
    }


class SubadqAAdapter(HttpProviderAdapter):
    charge_builder = staticmethod(build_charge)
    withdrawal_builder = staticmethod(build_withdrawal)
    normalizer = subadq_a.normalizer
    charge_simulator = staticmethod(simulate_charge)
    withdrawal_simulator = staticmethod(simulate_withdrawal)
