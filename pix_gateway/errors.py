"""
Error kinds raised across the adapter boundary.

Each error carries a stable machine-readable ``code``, the HTTP status the API
surfaces it with, and a fixed set of typed context attributes so a failure can
be reconstructed without reading logs elsewhere.

A webhook that matches no stored transaction is *not* an error: the state
engine returns ``None`` for that case.
"""

from typing import Any, Optional

EXCERPT_LIMIT = 500


def excerpt(payload: Any, limit: int = EXCERPT_LIMIT) -> str:
    """Short printable excerpt of a raw payload for error context."""
    text = repr(payload)
    return text if len(text) <= limit else text[:limit] + "..."


class GatewayError(Exception):
    """Base class for all gateway errors."""

    code = "GATEWAY_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def context(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error_code": self.code,
            "context": self.context,
        }


class ProviderNotFound(GatewayError):
    """No active adapter could be resolved for the configured provider."""

    code = "PROVIDER_NOT_FOUND"
    http_status = 404

    def __init__(self, message: str, provider_name: Optional[str] = None, reason: str = "not_registered"):
        super().__init__(message)
        self.provider_name = provider_name
        self.reason = reason
        if reason == "inactive":
            self.http_status = 403

    @property
    def context(self) -> dict[str, Any]:
        return {"provider": self.provider_name, "reason": self.reason}


class ProviderCallFailed(GatewayError):
    """Outbound call returned a non-2xx status or failed at the transport level."""

    code = "PROVIDER_CALL_FAILED"
    http_status = 502

    def __init__(
        self,
        message: str,
        provider_name: str,
        operation: str,
        url: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.provider_name = provider_name
        self.operation = operation
        self.url = url
        self.status_code = status_code
        self.body = body

    @property
    def context(self) -> dict[str, Any]:
        return {
            "provider": self.provider_name,
            "operation": self.operation,
            "url": self.url,
            "status_code": self.status_code,
            "body": self.body,
        }


class ValidationFailed(GatewayError):
    """A canonical transaction request is malformed."""

    code = "VALIDATION_FAILED"
    http_status = 422

    def __init__(self, message: str, field: str, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    @property
    def context(self) -> dict[str, Any]:
        return {"field": self.field, "value": self.value}


class NormalizationFailed(GatewayError):
    """A webhook payload is structurally unrecoverable."""

    code = "NORMALIZATION_FAILED"
    http_status = 422

    def __init__(self, message: str, provider_name: str, kind: str, payload: Any = None):
        super().__init__(message)
        self.provider_name = provider_name
        self.kind = kind
        self.excerpt = excerpt(payload)

    @property
    def context(self) -> dict[str, Any]:
        return {"provider": self.provider_name, "kind": self.kind, "payload": self.excerpt}


class WebhookProcessingFailed(GatewayError):
    """Lookup or persistence failed while applying a webhook. Retryable."""

    code = "WEBHOOK_PROCESSING_FAILED"
    http_status = 500

    def __init__(
        self,
        message: str,
        provider_name: str,
        kind: str,
        external_id: Optional[str] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.provider_name = provider_name
        self.kind = kind
        self.external_id = external_id
        self.excerpt = excerpt(payload)

    @property
    def context(self) -> dict[str, Any]:
        return {
            "provider": self.provider_name,
            "kind": self.kind,
            "external_id": self.external_id,
            "payload": self.excerpt,
        }


class TransactionPersistFailed(GatewayError):
    """The provider accepted a creation but storing it failed."""

    code = "TRANSACTION_PERSIST_FAILED"
    http_status = 500

    def __init__(self, message: str, provider_name: str, kind: str, external_id: Optional[str] = None):
        super().__init__(message)
        self.provider_name = provider_name
        self.kind = kind
        self.external_id = external_id

    @property
    def context(self) -> dict[str, Any]:
        return {"provider": self.provider_name, "kind": self.kind, "external_id": self.external_id}
