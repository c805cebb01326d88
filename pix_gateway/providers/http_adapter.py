"""
REST adapter shared by the shipped sub-acquirers.

A concrete provider adapter is this class plus four plain functions: a charge
builder, a withdrawal builder, a webhook normalizer and (for sandbox use) a
pair of simulated-webhook generators. The adapter executes what the builders
produce through the outbound transport and turns failures into
``ProviderCallFailed``.
"""

import logging
from typing import Any, Callable, Mapping, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.engine.state import apply_event
from pix_gateway.errors import GatewayError, NormalizationFailed, ProviderCallFailed, WebhookProcessingFailed
from pix_gateway.models.enums import TransactionKind
from pix_gateway.providers.base import (
    ChargeRequest,
    ProviderAdapter,
    ProviderConfig,
    ProviderRequest,
    ProviderResponse,
    WithdrawalRequest,
)
from pix_gateway.providers.transport import DEFAULT_HEADERS, OutboundTransport, resolve_url
from pix_gateway.webhooks.base import WebhookNormalizer

logger = logging.getLogger("pix_gateway.providers")


def build_headers(config: Mapping[str, Any], mock_response_name: Optional[str] = None) -> dict[str, str]:
    """
    JSON defaults overlaid by ``config["headers"]``.

    When the provider config names a ``mock_response_header``, the builder's
    mock response name is sent under it so sandbox servers know which canned
    response to return.
    """
    headers = dict(DEFAULT_HEADERS)
    configured = config.get("headers")
    if isinstance(configured, Mapping):
        headers.update({str(k): str(v) for k, v in configured.items()})

    marker = config.get("mock_response_header")
    if marker and mock_response_name:
        headers[str(marker)] = mock_response_name
    return headers


class HttpProviderAdapter(ProviderAdapter):
    """Composes a provider's builders and normalizer with the outbound transport."""

    charge_builder: Callable[[ChargeRequest, ProviderConfig], ProviderRequest]
    withdrawal_builder: Callable[[WithdrawalRequest, ProviderConfig], ProviderRequest]
    normalizer: WebhookNormalizer
    charge_simulator: Callable[..., dict[str, Any]]
    withdrawal_simulator: Callable[..., dict[str, Any]]

    def __init__(self, provider: ProviderConfig, transport: Optional[OutboundTransport] = None):
        super().__init__(provider)
        self.transport = transport or OutboundTransport()

    async def create_charge(self, request: ChargeRequest) -> ProviderResponse:
        return await self._execute("create_charge", self.charge_builder(request, self.provider))

    async def create_withdrawal(self, request: WithdrawalRequest) -> ProviderResponse:
        return await self._execute("create_withdrawal", self.withdrawal_builder(request, self.provider))

    async def _execute(self, operation: str, built: ProviderRequest) -> ProviderResponse:
        url = resolve_url(self.provider.base_url, built.resource)

        try:
            response = await self.transport.send(
                built.method, url, built.payload, built.headers, provider_name=self.name
            )
        except httpx.TransportError as e:
            raise ProviderCallFailed(
                f"{self.name} {operation} failed: {e!r}",
                provider_name=self.name,
                operation=operation,
                url=url,
            ) from e

        if not response.ok:
            logger.error(
                "Provider rejected request | provider=%s operation=%s url=%s status=%d body=%s",
                self.name,
                operation,
                url,
                response.status_code,
                response.body,
            )
            raise ProviderCallFailed(
                f"{self.name} {operation} returned HTTP {response.status_code}",
                provider_name=self.name,
                operation=operation,
                url=url,
                status_code=response.status_code,
                body=response.body,
            )

        return ProviderResponse(status_code=response.status_code, body=response.body)

    async def ingest_webhook(self, session: AsyncSession, payload: Any, kind: str):
        try:
            transaction_kind = TransactionKind.from_webhook_tag(kind)
        except ValueError as e:
            raise NormalizationFailed(
                str(e), provider_name=self.name, kind=str(kind), payload=payload
            ) from e

        event = self.normalizer.normalize(payload, transaction_kind)

        try:
            return await apply_event(session, event, provider_name=self.name)
        except GatewayError:
            raise
        except Exception as e:
            raise WebhookProcessingFailed(
                f"{self.name} webhook failed: {e!r}",
                provider_name=self.name,
                kind=transaction_kind.value,
                external_id=event.external_id,
                payload=payload,
            ) from e

    def simulated_webhook(self, transaction) -> dict[str, Any]:
        """A provider-shaped webhook payload confirming ``transaction``."""
        if transaction.kind is TransactionKind.CHARGE:
            return self.charge_simulator(transaction)
        return self.withdrawal_simulator(transaction)
