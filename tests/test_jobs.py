"""Tests for the webhook job runner and background dispatch."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from pix_gateway.engine import jobs
from pix_gateway.engine.jobs import run_webhook_job
from pix_gateway.errors import WebhookProcessingFailed
from pix_gateway.models.transaction import Charge, Owner, WebhookFailure
from pix_gateway.providers import http_adapter

A_CONFIRMED = {
    "event": "pix_payment_confirmed",
    "transaction_id": "TXN-1",
    "pix_id": "PIX-1",
    "status": "CONFIRMED",
    "amount": 100.0,
    "payer_name": "Alice",
    "payer_cpf": "12345678900",
    "payment_date": "2025-01-01T12:00:00Z",
}


async def _charge(session, external_id="TXN-1") -> Charge:
    owner = await session.get(Owner, "owner-a")
    charge = Charge(
        owner_id=owner.id,
        provider_id=owner.provider_id,
        external_id=external_id,
        amount=Decimal("100.00"),
        status="PENDING",
        meta={},
    )
    session.add(charge)
    await session.commit()
    return charge


async def _failures(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(WebhookFailure).order_by(WebhookFailure.id))).scalars().all()


@pytest.mark.asyncio
async def test_job_applies_webhook(seeded_session, session_factory):
    charge = await _charge(seeded_session)

    result = await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix")

    assert result.id == charge.id
    assert result.status == "CONFIRMED"
    assert await _failures(session_factory) == []


@pytest.mark.asyncio
async def test_unknown_transaction_completes_without_retry(seeded_session, session_factory, monkeypatch):
    calls = []
    original = http_adapter.apply_event

    async def counting(*args, **kwargs):
        calls.append(args)
        return await original(*args, **kwargs)

    monkeypatch.setattr(http_adapter, "apply_event", counting)

    result = await run_webhook_job(session_factory, "SubadqA", {**A_CONFIRMED, "transaction_id": "NOPE", "pix_id": None}, "pix")

    assert result is None
    assert len(calls) == 1
    assert await _failures(session_factory) == []


@pytest.mark.asyncio
async def test_unparseable_payload_is_dead_lettered_at_once(seeded_session, session_factory):
    result = await run_webhook_job(session_factory, "SubadqB", ["not", "an", "object"], "pix", retry_delay=0)

    assert result is None
    failures = await _failures(session_factory)
    assert len(failures) == 1
    assert failures[0].error_code == "NORMALIZATION_FAILED"
    assert failures[0].attempts == 1
    assert failures[0].provider_name == "SubadqB"
    assert failures[0].payload == ["not", "an", "object"]


@pytest.mark.asyncio
async def test_unknown_kind_tag_is_dead_lettered(seeded_session, session_factory):
    await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "refund", retry_delay=0)

    failures = await _failures(session_factory)
    assert failures[0].error_code == "NORMALIZATION_FAILED"
    assert failures[0].kind == "refund"


@pytest.mark.asyncio
async def test_unknown_provider_is_dead_lettered(seeded_session, session_factory):
    await run_webhook_job(session_factory, "SubadqZ", A_CONFIRMED, "pix", retry_delay=0)

    failures = await _failures(session_factory)
    assert failures[0].error_code == "PROVIDER_NOT_FOUND"
    assert failures[0].attempts == 1


@pytest.mark.asyncio
async def test_processing_failures_are_retried_then_dead_lettered(seeded_session, session_factory, monkeypatch):
    calls = []

    async def broken(session, event, provider_name="-", allow_terminal_regression=None):
        calls.append(event)
        raise WebhookProcessingFailed(
            "database unavailable", provider_name=provider_name, kind=event.kind.value, external_id=event.external_id
        )

    monkeypatch.setattr(http_adapter, "apply_event", broken)

    result = await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix", max_attempts=3, retry_delay=0)

    assert result is None
    assert len(calls) == 3
    failures = await _failures(session_factory)
    assert len(failures) == 1
    assert failures[0].error_code == "WEBHOOK_PROCESSING_FAILED"
    assert failures[0].attempts == 3
    assert failures[0].external_id == "TXN-1"
    assert failures[0].payload["transaction_id"] == "TXN-1"


@pytest.mark.asyncio
async def test_provider_lookup_database_errors_are_retried_then_dead_lettered(seeded_session, session_factory, monkeypatch):
    lookups = []

    async def locked(session, name, transport=None):
        lookups.append(name)
        raise OperationalError("SELECT providers", {}, Exception("database is locked"))

    monkeypatch.setattr(jobs, "resolve_by_name", locked)

    result = await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix", max_attempts=3, retry_delay=0)

    assert result is None
    assert len(lookups) == 3
    failures = await _failures(session_factory)
    assert len(failures) == 1
    assert failures[0].error_code == "WEBHOOK_PROCESSING_FAILED"
    assert failures[0].attempts == 3
    assert "database is locked" in failures[0].error_message


@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped_and_retried(seeded_session, session_factory, monkeypatch):
    calls = []

    async def exploding(session, event, **kwargs):
        calls.append(event)
        raise KeyError("boom")

    monkeypatch.setattr(http_adapter, "apply_event", exploding)

    await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix", max_attempts=2, retry_delay=0)

    assert len(calls) == 2
    failures = await _failures(session_factory)
    assert failures[0].error_code == "WEBHOOK_PROCESSING_FAILED"


@pytest.mark.asyncio
async def test_timeouts_are_retried_then_dead_lettered(seeded_session, session_factory, monkeypatch):
    async def slow(session, event, **kwargs):
        await asyncio.sleep(5)

    monkeypatch.setattr(http_adapter, "apply_event", slow)

    result = await run_webhook_job(
        session_factory, "SubadqA", A_CONFIRMED, "pix", max_attempts=2, timeout=0.01, retry_delay=0
    )

    assert result is None
    failures = await _failures(session_factory)
    assert failures[0].error_code == "WEBHOOK_TIMEOUT"
    assert failures[0].attempts == 2


@pytest.mark.asyncio
async def test_transient_failure_then_success(seeded_session, session_factory, monkeypatch):
    charge = await _charge(seeded_session)
    original = http_adapter.apply_event
    calls = []

    async def flaky(session, event, **kwargs):
        calls.append(event)
        if len(calls) == 1:
            raise WebhookProcessingFailed("locked", provider_name="SubadqA", kind="charge")
        return await original(session, event, **kwargs)

    monkeypatch.setattr(http_adapter, "apply_event", flaky)

    result = await run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix", retry_delay=0)

    assert result.id == charge.id
    assert result.status == "CONFIRMED"
    assert await _failures(session_factory) == []


@pytest.mark.asyncio
async def test_dispatch_and_drain(seeded_session, session_factory):
    charge = await _charge(seeded_session)

    task = jobs.dispatch(run_webhook_job(session_factory, "SubadqA", A_CONFIRMED, "pix"), name="test-webhook")
    assert task in jobs.pending()

    await jobs.drain()

    assert task.done()
    assert jobs.pending() == []
    async with session_factory() as session:
        stored = await session.get(Charge, charge.id)
    assert stored.status == "CONFIRMED"
