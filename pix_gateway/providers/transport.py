"""
Outbound HTTP transport for provider calls.

Wraps ``httpx.AsyncClient`` with a per-call timeout, bounded retry on
connection-level failures, and info/error logging of every attempt. HTTP
error statuses are returned to the caller untouched: deciding whether a 4xx or
5xx is a failure is the adapter's job.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from pix_gateway.config import settings
from pix_gateway.engine.retry import with_retry

logger = logging.getLogger("pix_gateway.transport")

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Failures raised before the request left this process. Anything else (read
# timeouts, dropped connections mid-response) may have reached the provider.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


@dataclass
class TransportResponse:
    status_code: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def resolve_url(base_url: str, resource: str) -> str:
    """
    Build the endpoint for a resource.

    Absolute URLs are used verbatim; anything else is joined to the base URL
    with exactly one slash between them.
    """
    if resource.startswith(("http://", "https://")):
        return resource
    if not resource:
        return base_url
    return f"{base_url.rstrip('/')}/{resource.lstrip('/')}"


def _decode_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {"raw": response.text}
    if isinstance(data, dict):
        return data
    return {"data": data}


class OutboundTransport:
    """
    Executes provider HTTP calls.

    Pass ``client`` to reuse a pooled ``httpx.AsyncClient`` (or a client wired
    to ``httpx.MockTransport`` in tests); otherwise a client is opened per call.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        self._client = client
        self._timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.http_max_retries
        self._base_delay = base_delay if base_delay is not None else settings.http_retry_base_delay
        self._max_delay = max_delay if max_delay is not None else settings.http_retry_max_delay

    async def get(self, url: str, headers: Optional[dict[str, str]] = None, provider_name: str = "-") -> TransportResponse:
        return await self.send("GET", url, None, headers, provider_name=provider_name)

    async def post(
        self,
        url: str,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        provider_name: str = "-",
    ) -> TransportResponse:
        return await self.send("POST", url, body, headers, provider_name=provider_name)

    async def send(
        self,
        method: str,
        url: str,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        provider_name: str = "-",
    ) -> TransportResponse:
        """
        Send a request, retrying only failures where nothing reached the provider.

        Raises:
            httpx.TransportError: When the request failed without a response.
        """
        merged_headers = {**DEFAULT_HEADERS, **(headers or {})}
        method = method.upper()

        try:
            return await with_retry(
                self._attempt,
                method,
                url,
                body,
                merged_headers,
                provider_name,
                retry_on=RETRYABLE_ERRORS,
                max_retries=self._max_retries,
                base_delay=self._base_delay,
                max_delay=self._max_delay,
                label=f"{provider_name} {method} {url}",
            )
        except httpx.TransportError as e:
            logger.error(
                "Provider request failed | provider=%s method=%s url=%s error=%r",
                provider_name,
                method,
                url,
                e,
            )
            raise

    async def _attempt(
        self,
        method: str,
        url: str,
        body: Optional[dict[str, Any]],
        headers: dict[str, str],
        provider_name: str,
    ) -> TransportResponse:
        logger.info(
            "Provider request | provider=%s method=%s url=%s headers=%s body=%s",
            provider_name,
            method,
            url,
            headers,
            body,
        )

        json_body = body if method != "GET" else None
        if self._client is not None:
            response = await self._client.request(
                method, url, json=json_body, headers=headers, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, json=json_body, headers=headers)

        result = TransportResponse(status_code=response.status_code, body=_decode_body(response))
        logger.info(
            "Provider response | provider=%s status=%d body=%s",
            provider_name,
            result.status_code,
            result.body,
        )
        return result
