"""
SubadqB adapter.

Charges go out with the merchant's ``seller_id`` (from the provider config)
and a nested payer; withdrawals share SubadqA's shape. Webhooks come back
nested under ``data`` with a detached ``signature``.
"""

import secrets
from datetime import datetime, timezone
from typing import Any

from pix_gateway.providers.base import ChargeRequest, ProviderConfig, ProviderRequest, WithdrawalRequest
from pix_gateway.providers.http_adapter import HttpProviderAdapter, build_headers
from pix_gateway.webhooks import subadq_b

DEFAULT_EXPIRES_IN = 3600  # Seconds

CHARGE_MOCK_RESPONSE = "SUCESSO_PIX"
WITHDRAWAL_MOCK_RESPONSE = "[SUCESSO_WD] withdraw"

SIMULATED_BANK_ACCOUNT = {"bank": "Nubank", "agency": "0001", "account": "1234567-8"}


def build_charge(request: ChargeRequest, provider: ProviderConfig) -> ProviderRequest:
    payload = {
        "seller_id": provider.config.get("seller_id"),
        "order_id": request.order_id,
        "amount": float(request.amount),
        "payer": {
            "name": request.payer_name,
            "cpf_cnpj": request.payer_document,
        },
        "expires_in": request.expires_in or DEFAULT_EXPIRES_IN,
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


def _signature() -> str:
    return secrets.token_hex(6)


def simulate_charge(charge) -> dict[str, Any]:
    return {
        "type": "pix.status_update",
        "data": {
            "id": charge.external_id or f"PX{charge.id}",
            "status": "PAID",
            "value": float(charge.amount),
            "payer": {
                "name": charge.payer_name or "Pagador Simulado",
                "document": charge.payer_cpf or "98765432100",
            },
            "confirmed_at": datetime.now(timezone.utc).isoformat(),
        },
        "signature": _signature(),
    }


def simulate_withdrawal(withdrawal) -> dict[str, Any]:
    return {
        "type": "withdraw.status_update",
        "data": {
            "id": withdrawal.external_id or f"WDX{withdrawal.id}",
            "status": "DONE",
            "amount": float(withdrawal.amount),
            "bank_account": withdrawal.bank_account or dict(SIMULATED_BANK_ACCOUNT),
            "processed_at": datetime.now(timezone.utc).isoformat(),
        },
        "signature": _signature(),
    }


class SubadqBAdapter(HttpProviderAdapter):
    charge_builder = staticmethod(build_charge)
    withdrawal_builder = staticmethod(build_withdrawal)
    normalizer = subadq_b.normalizer
    charge_simulator = staticmethod(simulate_charge)
    withdrawal_simulator = staticmethod(simulate_withdrawal)
