from pix_gateway.webhooks.base import NormalizedEvent, WebhookNormalizer

__all__ = ["NormalizedEvent", "WebhookNormalizer"]
