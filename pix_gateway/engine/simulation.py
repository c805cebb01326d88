"""
Sandbox webhook simulation.

After a transaction is created, the provider's adapter can generate the
webhook that provider would eventually send. The simulation waits a random
delay, checks the transaction is still PENDING (a real webhook may have won
the race) and then feeds the payload through the regular webhook job, so
normalizers and the state engine are exercised end to end.
"""

import asyncio
import logging
import random
from typing import Optional, Union

from pix_gateway.config import settings
from pix_gateway.database import SessionFactory
from pix_gateway.engine.jobs import dispatch, run_webhook_job
from pix_gateway.models.enums import TransactionKind
from pix_gateway.models.transaction import TRANSACTION_MODELS
from pix_gateway.providers.registry import resolve
from pix_gateway.providers.transport import OutboundTransport

logger = logging.getLogger("pix_gateway.simulation")


def simulation_delay() -> float:
    return random.uniform(settings.simulation_min_delay, settings.simulation_max_delay)


async def simulate_webhook(
    session_factory: SessionFactory,
    kind: Union[TransactionKind, str],
    transaction_id: str,
    delay: Optional[float] = None,
    transport: Optional[OutboundTransport] = None,
):
    """
    Deliver a simulated confirmation webhook for one transaction.

    Returns the job result, or None when the transaction is gone or no longer
    PENDING.
    """
    kind = TransactionKind(kind)
    delay = simulation_delay() if delay is None else delay
    if delay > 0:
        await asyncio.sleep(delay)

    model = TRANSACTION_MODELS[kind]
    async with session_factory() as session:
        transaction = await session.get(model, transaction_id)
        if transaction is None:
            logger.warning("Simulation target %s %s not found", kind.value, transaction_id)
            return None
        if not transaction.is_pending():
            logger.info(
                "Skipping simulation for %s %s: status is already %s",
                kind.value,
                transaction_id,
                transaction.status,
            )
            return None

        adapter = resolve(transaction.provider, transport=transport)
        payload = adapter.simulated_webhook(transaction)

    logger.info(
        "Simulating %s webhook | provider=%s transaction=%s",
        kind.webhook_tag,
        adapter.name,
        transaction_id,
    )
    return await run_webhook_job(session_factory, adapter.name, payload, kind.webhook_tag, transport=transport)


def schedule_simulation(
    session_factory: SessionFactory,
    kind: TransactionKind,
    transaction_id: str,
    delay: Optional[float] = None,
) -> Optional[asyncio.Task]:
    """Dispatch ``simulate_webhook`` in the background when simulation is enabled."""
    if not settings.simulate_webhooks:
        return None
    return dispatch(
        simulate_webhook(session_factory, kind, transaction_id, delay=delay),
        name=f"simulate-{kind.value}-{transaction_id}",
    )
