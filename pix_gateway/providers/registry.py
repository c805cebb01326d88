"""
Adapter registry.

Maps a provider's configured name to the adapter class that speaks its
dialect. The table is static: only the shipped adapters can be resolved, and
every failure path raises ``ProviderNotFound`` rather than guessing.

Names are matched loosely: "SubadqA", "subadq-a" and "Subadq A" resolve to the
same adapter.
"""

import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pix_gateway.errors import ProviderNotFound
from pix_gateway.models.transaction import Owner, Provider
from pix_gateway.providers.base import ProviderAdapter, ProviderConfig
from pix_gateway.providers.subadq_a import SubadqAAdapter
from pix_gateway.providers.subadq_b import SubadqBAdapter
from pix_gateway.providers.transport import OutboundTransport

logger = logging.getLogger("pix_gateway.registry")

_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]+")


def normalize_provider_name(name: str) -> str:
    """Registry key for a provider name: alphanumerics only, case-folded."""
    return _NON_ALNUM.sub("", name or "").casefold()


REGISTRY: dict[str, type] = {
    "subadqa": SubadqAAdapter,
    "subadqb": SubadqBAdapter,
}


def resolve(provider, transport: Optional[OutboundTransport] = None) -> ProviderAdapter:
    """
    Build the adapter for a provider row or config snapshot.

    Raises:
        ProviderNotFound: The provider is inactive, or no valid adapter is
            registered under its name.
    """
    config = provider if isinstance(provider, ProviderConfig) else ProviderConfig.from_model(provider)

    if not config.active:
        logger.warning("Provider %s is inactive, refusing to resolve", config.name)
        raise ProviderNotFound(
            f"Provider {config.name} is inactive",
            provider_name=config.name,
            reason="inactive",
        )

    key = normalize_provider_name(config.name)
    adapter_cls = REGISTRY.get(key)
    if adapter_cls is None:
        logger.error("No adapter registered for provider %s (key=%s)", config.name, key)
        raise ProviderNotFound(
            f"No adapter registered for provider {config.name}",
            provider_name=config.name,
        )

    if not (isinstance(adapter_cls, type) and issubclass(adapter_cls, ProviderAdapter)):
        logger.error("Registered adapter for %s does not implement ProviderAdapter", config.name)
        raise ProviderNotFound(
            f"Adapter registered for {config.name} does not implement the adapter contract",
            provider_name=config.name,
            reason="invalid_adapter",
        )

    return adapter_cls(config, transport=transport)


def resolve_for_owner(owner: Owner, transport: Optional[OutboundTransport] = None) -> ProviderAdapter:
    """Resolve the adapter for an owner's configured provider."""
    if owner.provider is None:
        logger.warning("Owner %s has no provider configured", owner.id)
        raise ProviderNotFound(
            f"Owner {owner.id} has no provider configured",
            reason="not_configured",
        )
    return resolve(owner.provider, transport=transport)


async def resolve_by_name(
    session: AsyncSession,
    name: str,
    transport: Optional[OutboundTransport] = None,
) -> ProviderAdapter:
    """
    Resolve the adapter for an inbound webhook addressed to ``name``.

    The provider row is matched on its normalized name, so webhook URLs need
    not reproduce the stored spelling.
    """
    key = normalize_provider_name(name)
    result = await session.execute(select(Provider))
    for provider in result.scalars().all():
        if normalize_provider_name(provider.name) == key:
            return resolve(provider, transport=transport)

    logger.warning("Webhook addressed to unknown provider %r", name)
    raise ProviderNotFound(f"Provider {name} not found", provider_name=name)
