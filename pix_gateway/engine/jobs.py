"""
In-process units of work.

``dispatch`` schedules a coroutine as a background asyncio task and holds a
reference until it finishes. ``run_webhook_job`` is the webhook ingestion unit:

  - each attempt opens its own session and is bounded by
    ``settings.webhook_timeout_seconds``
  - processing failures and timeouts are retried up to
    ``settings.webhook_max_attempts`` attempts in total
  - a payload that cannot be normalized, or a provider that cannot be
    resolved, fails the delivery at once
  - a failed delivery is written to ``webhook_failures`` (dead letter)
  - a webhook that matches no transaction completes without retry
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

from sqlalchemy.exc import SQLAlchemyError

from pix_gateway.config import settings
from pix_gateway.database import SessionFactory
from pix_gateway.engine.retry import with_retry
from pix_gateway.errors import GatewayError, WebhookProcessingFailed
from pix_gateway.models.transaction import WebhookFailure
from pix_gateway.providers.registry import resolve_by_name
from pix_gateway.providers.transport import OutboundTransport

logger = logging.getLogger("pix_gateway.jobs")

_tasks: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Background job %s failed: %r", task.get_name(), error, exc_info=error)


def dispatch(coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
    """Run ``coro`` as a background unit of work."""
    task = asyncio.create_task(coro, name=name)
    _tasks.add(task)
    task.add_done_callback(_on_done)
    return task


def pending() -> list[asyncio.Task]:
    return [task for task in _tasks if not task.done()]


async def drain() -> None:
    """Wait for every dispatched job, including jobs those jobs dispatch."""
    while pending():
        await asyncio.gather(*pending(), return_exceptions=True)


async def shutdown() -> None:
    """Cancel outstanding jobs. Cancelled work leaves transactions PENDING."""
    tasks = pending()
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def record_failure(
    session_factory: SessionFactory,
    provider_name: str,
    kind: str,
    payload: Any,
    error: BaseException,
    attempts: int,
) -> None:
    """Write the dead-letter row for a delivery the runner gave up on."""
    if isinstance(error, GatewayError):
        error_code = error.code
        message = error.message
    else:
        error_code = "WEBHOOK_TIMEOUT" if isinstance(error, asyncio.TimeoutError) else type(error).__name__
        message = str(error) or repr(error)

    external_id = getattr(error, "external_id", None)

    logger.error(
        "Webhook dead-lettered | provider=%s kind=%s external_id=%s attempts=%d code=%s error=%s",
        provider_name,
        kind,
        external_id,
        attempts,
        error_code,
        message,
    )

    try:
        async with session_factory() as session:
            session.add(WebhookFailure(
                provider_name=provider_name,
                kind=str(kind),
                external_id=external_id,
                error_code=error_code,
                error_message=message,
                attempts=attempts,
                payload=payload if isinstance(payload, (dict, list)) else {"raw": repr(payload)},
            ))
            await session.commit()
    except SQLAlchemyError:
        logger.exception("Could not record webhook failure | provider=%s kind=%s", provider_name, kind)


async def run_webhook_job(
    session_factory: SessionFactory,
    provider_name: str,
    payload: Any,
    kind: str,
    transport: Optional[OutboundTransport] = None,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
    retry_delay: Optional[float] = None,
):
    """
    Ingest one webhook delivery.

    Returns:
        The updated transaction, or None when nothing matched or the delivery
        was dead-lettered.
    """
    max_attempts = max_attempts if max_attempts is not None else settings.webhook_max_attempts
    timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
    retry_delay = retry_delay if retry_delay is not None else settings.webhook_retry_delay

    attempts = 0

    async def attempt():
        nonlocal attempts
        attempts += 1
        try:
            async with session_factory() as session:
                adapter = await resolve_by_name(session, provider_name, transport=transport)
                return await asyncio.wait_for(adapter.ingest_webhook(session, payload, kind), timeout)
        except SQLAlchemyError as e:
            raise WebhookProcessingFailed(
                f"{provider_name} {kind} webhook could not reach the database: {e}",
                provider_name=provider_name,
                kind=kind,
                payload=payload,
            ) from e

    try:
        transaction = await with_retry(
            attempt,
            retry_on=(WebhookProcessingFailed, asyncio.TimeoutError),
            max_retries=max(max_attempts - 1, 0),
            base_delay=retry_delay,
            max_delay=retry_delay * 4,
            label=f"{provider_name} {kind} webhook",
        )
    except (GatewayError, asyncio.TimeoutError) as e:
        await record_failure(session_factory, provider_name, kind, payload, e, attempts)
        return None

    if transaction is None:
        logger.info("Webhook matched no transaction, completing | provider=%s kind=%s", provider_name, kind)
    return transaction
